"""
Pure-Python escape-time evaluation.

This is the reference definition. Rendering goes through the compiled loop in
`mandelbands.renderers.cpu_numba`, which is fixed to the quadratic map and is
tested to agree with `escape_time` and `intensity` point for point. The
`step` strategy and the orbit formulation exist here only.
"""
from __future__ import annotations

from itertools import islice
from typing import Callable, Iterator, Optional

ESCAPE_NORM_SQR = 4.0
DEFAULT_LIMIT = 255
MAX_INTENSITY = 255

Step = Callable[[complex, complex], complex]


def quadratic(z: complex, c: complex) -> complex:
    return z * z + c


def _escaped(z: complex) -> bool:
    return z.real * z.real + z.imag * z.imag > ESCAPE_NORM_SQR


def escape_time(point: complex, limit: int, step: Step = quadratic) -> Optional[int]:
    """
    Iterate z <- step(z, point) from z = 0 at most `limit` times.

    Returns the 0-indexed iteration at which |z|^2 first exceeds 4.0, or None
    when the orbit stays bounded for the whole limit (point presumed in the set).
    """
    z = 0j
    for i in range(limit):
        z = step(z, point)
        if _escaped(z):
            return i
    return None


def orbit(point: complex, step: Step = quadratic) -> Iterator[complex]:
    """Infinite orbit 0, f(0), f(f(0)), ... of `point`."""
    z = 0j
    while True:
        yield z
        z = step(z, point)


def escape_time_orbit(point: complex, limit: int, step: Step = quadratic) -> Optional[int]:
    """
    Same result as `escape_time`, phrased over the orbit iterator.

    The orbit starts with the seed z0 = 0, so the value produced by iteration i
    sits at position i + 1 and `limit + 1` orbit elements are needed to see the
    last iteration.
    """
    for position, z in enumerate(islice(orbit(point, step), limit + 1)):
        if _escaped(z):
            return position - 1
    return None


def intensity(result: Optional[int], max_intensity: int = MAX_INTENSITY) -> int:
    """Grayscale byte for an escape result: bounded points are 0, early escapes are brightest."""
    if result is None:
        return 0
    return max_intensity - min(result, max_intensity)
