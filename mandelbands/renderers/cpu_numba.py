from __future__ import annotations

import numpy as np
from numba import njit

from mandelbands.escape import ESCAPE_NORM_SQR


# ------------------------------------------------------------
# Compiled escape-time loop. Same arithmetic, same evaluation
# order as escape.escape_time on Python complex numbers, so the
# two agree bit for bit. -1 stands for "did not escape".
# ------------------------------------------------------------
@njit(nogil=True)
def escape_count(cr, ci, limit):
    zr = 0.0
    zi = 0.0
    for i in range(limit):
        zr, zi = zr * zr - zi * zi + cr, zr * zi + zi * zr + ci
        if zr * zr + zi * zi > ESCAPE_NORM_SQR:
            return i
    return -1


@njit(nogil=True)
def fill_band(out, width, grid_height, top, rows, ul_re, ul_im, lr_re, lr_im, limit, max_intensity):
    """
    Fill `out` (the band's own slice, rows * width bytes) row by row.

    Local row r is global row top + r; points are mapped against the full
    grid so any band split yields the same bytes.
    """
    span_re = lr_re - ul_re
    span_im = ul_im - lr_im
    for row in range(rows):
        ci = ul_im - (top + row) * span_im / grid_height
        base = row * width
        for col in range(width):
            cr = ul_re + col * span_re / width
            count = escape_count(cr, ci, limit)
            if count < 0:
                out[base + col] = 0
            else:
                out[base + col] = max_intensity - min(count, max_intensity)


def render_band(band, pixels: np.ndarray, limit: int, max_intensity: int) -> None:
    """Render `band` into `pixels`, which must be exactly the band's slice of the shared buffer."""
    if pixels.shape[0] != band.height * band.width:
        raise ValueError(
            f"Band {band.index} slice has {pixels.shape[0]} bytes, expected {band.height * band.width}"
        )
    vp = band.global_viewport
    fill_band(
        pixels, band.width, band.grid[1], band.top, band.height,
        vp.upper_left.real, vp.upper_left.imag, vp.lower_right.real, vp.lower_right.imag,
        limit, max_intensity,
    )
