from __future__ import annotations

import os
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Any, List, Optional, Tuple

import numpy as np
from PIL import Image
from tqdm import tqdm

from mandelbands.bands import Band, band_view, check_coverage, plan_bands, validate_bounds
from mandelbands.errors import InvalidRenderInput, RenderError
from mandelbands.escape import DEFAULT_LIMIT, MAX_INTENSITY
from mandelbands.geometry import Bounds, Viewport
from mandelbands.renderers.cpu_numba import render_band
from mandelbands.util.logging_setup import band_context, get_logger


def default_workers() -> int:
    return os.cpu_count() or 1


def allocate_pixels(bounds: Bounds) -> np.ndarray:
    width, height = bounds
    return np.zeros(width * height, dtype=np.uint8)


def _render_one(band: Band, pixels: np.ndarray, limit: int, max_intensity: int) -> Band:
    logger = get_logger()
    start = time.perf_counter()
    with band_context(band.index):
        render_band(band, band_view(pixels, band), limit, max_intensity)
        logger.debug("Band %s rows [%s, %s) done in %.1fms",
                     band.index, band.top, band.bottom, (time.perf_counter() - start) * 1000.0)
    return band


def _dispatch(bands: List[Band], pixels: np.ndarray, limit: int, max_intensity: int, progress: bool) -> None:
    logger = get_logger()
    failures: List[Tuple[Band, BaseException]] = []

    with ThreadPoolExecutor(max_workers=len(bands), thread_name_prefix="band") as pool:
        futures = {pool.submit(_render_one, band, pixels, limit, max_intensity): band for band in bands}
        # every band has finished once this loop ends
        for fut in tqdm(as_completed(futures), total=len(futures), desc="bands", unit="band", disable=not progress):
            exc = fut.exception()
            if exc is not None:
                band = futures[fut]
                logger.error("Band %s rows [%s, %s) failed: %r", band.index, band.top, band.bottom, exc,
                             exc_info=exc, extra={"band": band.index})
                failures.append((band, exc))

    if failures:
        failures.sort(key=lambda f: f[0].index)
        ids = ", ".join(str(b.index) for b, _ in failures)
        raise RenderError(f"{len(failures)} of {len(bands)} bands failed: {ids}", failures) from failures[0][1]


def render_into(
    pixels: np.ndarray,
    bounds: Bounds,
    viewport: Viewport,
    *,
    workers: int,
    limit: int = DEFAULT_LIMIT,
    max_intensity: int = MAX_INTENSITY,
    progress: bool = False,
) -> List[Band]:
    """
    Fill `pixels` (flat, row-major, width * height bytes) with the escape-time
    image of `viewport`. Each band writes only its own slice of the buffer.

    Raises RenderError when any band fails; the buffer must then be discarded.
    """
    logger = get_logger()
    bounds = validate_bounds(bounds)
    width, height = bounds
    if limit < 1:
        raise InvalidRenderInput(f"limit must be >= 1, got {limit}")
    if not 0 < max_intensity <= 255:
        raise InvalidRenderInput(f"max_intensity must be in 1..255, got {max_intensity}")
    if pixels.dtype != np.uint8 or pixels.ndim != 1 or pixels.shape[0] != width * height:
        raise InvalidRenderInput(
            f"pixels must be a flat uint8 buffer of {width * height} bytes, got {pixels.dtype} {pixels.shape}"
        )

    bands = plan_bands(bounds, viewport, workers)
    check_coverage(bands, bounds)
    logger.info("Render start size=%sx%s workers=%s bands=%s band_rows=%s limit=%s viewport=%s..%s",
                width, height, workers, len(bands), bands[0].height, limit,
                viewport.upper_left, viewport.lower_right)

    start = time.perf_counter()
    if len(bands) == 1:
        try:
            _render_one(bands[0], pixels, limit, max_intensity)
        except Exception as e:
            logger.exception("Band 0 rows [0, %s) failed", bands[0].bottom, extra={"band": 0})
            raise RenderError(f"Band 0 failed: {e!r}", [(bands[0], e)]) from e
    else:
        _dispatch(bands, pixels, limit, max_intensity, progress)

    logger.info("Render done in %.1fms", (time.perf_counter() - start) * 1000.0)
    return bands


def render_grid(
    bounds: Bounds,
    viewport: Viewport,
    *,
    workers: Optional[int] = None,
    limit: int = DEFAULT_LIMIT,
    max_intensity: int = MAX_INTENSITY,
    progress: bool = False,
) -> np.ndarray:
    """Allocate a zeroed buffer, render into it and return it (flat uint8, width * height bytes)."""
    bounds = validate_bounds(bounds)
    if workers is None:
        workers = default_workers()
    pixels = allocate_pixels(bounds)
    render_into(pixels, bounds, viewport, workers=workers, limit=limit,
                max_intensity=max_intensity, progress=progress)
    return pixels


def write_image(path: str, pixels: np.ndarray, bounds: Bounds) -> str:
    width, height = bounds
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)
    img = Image.fromarray(pixels.reshape(height, width))
    img.save(path, format="PNG", optimize=True)
    get_logger().info("Image written: %s (%sx%s grayscale)", path, width, height)
    return path


def render_info(bounds: Bounds, workers: int, bands: List[Band], limit: int, elapsed_ms: float) -> Dict[str, Any]:
    return {
        "width": bounds[0],
        "height": bounds[1],
        "workers": workers,
        "bands": len(bands),
        "band_rows": [b.height for b in bands],
        "limit": limit,
        "elapsed_ms": round(elapsed_ms, 3),
    }
