from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from mandelbands.errors import InvalidRenderInput, RenderError
from mandelbands.geometry import Bounds, Viewport, pixel_to_point


@dataclass(frozen=True)
class Band:
    """
    Rows [top, top + height) of a grid, plus the slice of the flat buffer that
    holds exactly those rows.

    `viewport` is the region of the plane this band covers, derived from the
    global grid; `global_viewport` and `grid` are kept so that a worker maps
    its local (col, row) without rounding drift between bands.
    """
    index: int
    top: int
    height: int
    width: int
    grid: Bounds
    global_viewport: Viewport
    viewport: Viewport

    @property
    def bottom(self) -> int:
        return self.top + self.height

    @property
    def start(self) -> int:
        return self.top * self.width

    @property
    def stop(self) -> int:
        return self.bottom * self.width

    @property
    def bounds(self) -> Bounds:
        return self.width, self.height

    def point(self, pixel: Tuple[int, int]) -> complex:
        col, row = pixel
        return self.global_viewport.point(self.grid, (col, self.top + row))


def validate_bounds(bounds: Bounds) -> Bounds:
    width, height = bounds
    if int(width) <= 0 or int(height) <= 0:
        raise InvalidRenderInput(f"Grid must have positive area, got {width}x{height}")
    return int(width), int(height)


def band_height(height: int, workers: int) -> int:
    if workers < 1:
        raise InvalidRenderInput(f"workers must be >= 1, got {workers}")
    return -(-height // workers)


def plan_bands(bounds: Bounds, viewport: Viewport, workers: int) -> List[Band]:
    """Split the grid into at most `workers` row bands of ceil(H / workers) rows; empty bands are dropped."""
    width, height = validate_bounds(bounds)
    rows = band_height(height, workers)
    bands: List[Band] = []
    for i in range(workers):
        top = i * rows
        if top >= height:
            break
        bottom = min(top + rows, height)
        sub = Viewport.derived(
            pixel_to_point((width, height), (0, top), viewport.upper_left, viewport.lower_right),
            pixel_to_point((width, height), (width, bottom), viewport.upper_left, viewport.lower_right),
        )
        bands.append(Band(
            index=len(bands), top=top, height=bottom - top, width=width,
            grid=(width, height), global_viewport=viewport, viewport=sub,
        ))
    return bands


def check_coverage(bands: List[Band], bounds: Bounds) -> None:
    """Raise RenderError unless the bands tile rows [0, H) exactly, in order, with no overlap."""
    width, height = bounds
    expected_top = 0
    for band in bands:
        if band.width != width:
            raise RenderError(f"Band {band.index} width {band.width} != grid width {width}")
        if band.height <= 0:
            raise RenderError(f"Band {band.index} is empty")
        if band.top != expected_top:
            raise RenderError(f"Band {band.index} starts at row {band.top}, expected {expected_top}")
        expected_top = band.bottom
    if expected_top != height:
        raise RenderError(f"Bands cover rows [0, {expected_top}), expected [0, {height})")


def band_view(pixels: np.ndarray, band: Band) -> np.ndarray:
    """The band's slice of the shared buffer. A view: writes land in `pixels`."""
    view = pixels[band.start:band.stop]
    if view.shape[0] != band.stop - band.start:
        raise RenderError(
            f"Band {band.index} needs bytes [{band.start}, {band.stop}) but the buffer holds {pixels.shape[0]}"
        )
    return view
