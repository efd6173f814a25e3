import json
import os
import platform
import sys
import time
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Sequence

import importlib.metadata as importlib_metadata

@dataclass(frozen=True)
class RunManifest:
    """
    Everything needed to reproduce a render: the normalised config, the band
    plan the workers actually ran, and the interpreter and library versions
    (the compiled kernel's output depends on numba and numpy).
    """
    started_utc: str
    config: Dict[str, Any]
    python: Dict[str, Any]
    packages: Dict[str, str]
    git: Dict[str, Any]
    system: Dict[str, Any]
    render: Dict[str, Any]
    bands: List[Dict[str, Any]]

def _utc_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())

def _safe_pkg_version(name: str) -> Optional[str]:
    try:
        return importlib_metadata.version(name)
    except importlib_metadata.PackageNotFoundError:
        return None

def band_record(band) -> Dict[str, Any]:
    return {
        "index": band.index,
        "rows": [band.top, band.bottom],
        "bytes": [band.start, band.stop],
        "viewport": band.viewport.as_dict(),
    }

def build_manifest(
    *,
    config: Dict[str, Any],
    render_info: Dict[str, Any],
    bands: Sequence[Any],
    git_commit: Optional[str],
) -> RunManifest:
    pkgs = {}
    for name in ["numpy", "Pillow", "numba", "tqdm"]:
        v = _safe_pkg_version(name)
        if v:
            pkgs[name] = v

    return RunManifest(
        started_utc=_utc_iso(),
        config=config,
        python={"version": sys.version, "executable": sys.executable},
        packages=pkgs,
        git={"commit": git_commit},
        system={"platform": platform.platform(), "machine": platform.machine(), "cpu_count": os.cpu_count()},
        render=render_info,
        bands=[band_record(b) for b in bands],
    )

def write_manifest(path: str, manifest: RunManifest) -> None:
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(asdict(manifest), f, indent=2, sort_keys=True)
