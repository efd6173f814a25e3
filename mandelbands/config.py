import json
from typing import Any, Dict, Optional

from mandelbands.escape import DEFAULT_LIMIT, MAX_INTENSITY

DEFAULTS: Dict[str, Any] = {
    "width": 1000,
    "height": 750,
    "upper_left": [-1.20, 0.35],
    "lower_right": [-1.0, 0.20],
    "limit": DEFAULT_LIMIT,
    "max_intensity": MAX_INTENSITY,
    "workers": None,
    "output": "mandel.png",
}

def load_config(config_path: Optional[str]) -> Dict[str, Any]:
    if config_path:
        with open(config_path, "r", encoding="utf-8") as f:
            cfg = json.load(f)
        if not isinstance(cfg, dict):
            raise ValueError("Config JSON must be an object.")
        out = dict(DEFAULTS)
        out.update(cfg)
        return out
    return dict(DEFAULTS)

def _as_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an integer, got {value!r}.") from None

def _point(cfg: Dict[str, Any], name: str) -> complex:
    value = cfg[name]
    if isinstance(value, str):
        value = value.split(",")
    if not (isinstance(value, (list, tuple)) and len(value) == 2):
        raise ValueError(f"{name} must be [re, im].")
    try:
        return complex(float(value[0]), float(value[1]))
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be [re, im] numbers, got {value!r}.") from None

def normalise_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    required = ["width", "height", "upper_left", "lower_right", "limit", "output"]
    for r in required:
        if r not in cfg:
            raise ValueError(f"Missing config field: {r}")

    width = _as_int(cfg["width"], "width")
    height = _as_int(cfg["height"], "height")
    if width <= 0 or height <= 0:
        raise ValueError("width/height must be positive.")

    limit = _as_int(cfg["limit"], "limit")
    if limit <= 0:
        raise ValueError("limit must be positive.")

    max_intensity = _as_int(cfg.get("max_intensity", MAX_INTENSITY), "max_intensity")
    if not 0 < max_intensity <= 255:
        raise ValueError("max_intensity must be in 1..255.")

    workers = cfg.get("workers")
    if workers is not None:
        workers = _as_int(cfg["workers"], "workers")
        if workers < 1:
            raise ValueError("workers must be >= 1.")

    if cfg["output"] is None or not str(cfg["output"]).strip():
        raise ValueError("output must be a file path.")

    ul = _point(cfg, "upper_left")
    lr = _point(cfg, "lower_right")

    out = dict(cfg)
    out["width"] = width
    out["height"] = height
    out["limit"] = limit
    out["max_intensity"] = max_intensity
    out["workers"] = workers
    out["upper_left"] = [ul.real, ul.imag]
    out["lower_right"] = [lr.real, lr.imag]
    out["output"] = str(cfg["output"])
    return out
