from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Tuple, TypeVar

from mandelbands.errors import InvalidRenderInput

T = TypeVar("T")

Bounds = Tuple[int, int]
Pixel = Tuple[int, int]


def pixel_to_point(bounds: Bounds, pixel: Pixel, upper_left: complex, lower_right: complex) -> complex:
    """
    Map a pixel (column, row) of a grid of `bounds` = (width, height) onto the
    complex plane region spanned by `upper_left` and `lower_right`.

    Rows grow downwards while the imaginary axis grows upwards, so the row
    offset is subtracted. (0, 0) maps exactly onto `upper_left`.
    The caller guarantees width > 0 and height > 0.
    """
    width = lower_right.real - upper_left.real
    height = upper_left.imag - lower_right.imag
    return complex(
        upper_left.real + pixel[0] * width / bounds[0],
        upper_left.imag - pixel[1] * height / bounds[1],
    )


@dataclass(frozen=True)
class Viewport:
    upper_left: complex
    lower_right: complex

    def __post_init__(self):
        ul = complex(self.upper_left)
        lr = complex(self.lower_right)
        object.__setattr__(self, "upper_left", ul)
        object.__setattr__(self, "lower_right", lr)
        if not (ul.real < lr.real and ul.imag > lr.imag):
            raise InvalidRenderInput(
                f"Degenerate viewport: upper_left {ul} must be strictly up and left of lower_right {lr}"
            )

    @classmethod
    def derived(cls, upper_left: complex, lower_right: complex) -> "Viewport":
        """
        A viewport computed from an already validated one, e.g. a band's rows.
        Skips the corner check: for very narrow regions neighbouring row
        edges may round to the same float.
        """
        vp = object.__new__(cls)
        object.__setattr__(vp, "upper_left", complex(upper_left))
        object.__setattr__(vp, "lower_right", complex(lower_right))
        return vp

    def point(self, bounds: Bounds, pixel: Pixel) -> complex:
        return pixel_to_point(bounds, pixel, self.upper_left, self.lower_right)

    def as_dict(self):
        return {
            "upper_left": [self.upper_left.real, self.upper_left.imag],
            "lower_right": [self.lower_right.real, self.lower_right.imag],
        }


def parse_pair(s: str, separator: str, convert: Callable[[str], T] = int) -> Optional[Tuple[T, T]]:
    """Parse "10x20" style strings. Returns None when either half is missing or unparsable."""
    index = s.find(separator)
    if index < 0:
        return None
    try:
        return convert(s[:index]), convert(s[index + 1:])
    except ValueError:
        return None


def parse_complex(s: str) -> Optional[complex]:
    pair = parse_pair(s, ",", float)
    if pair is None:
        return None
    return complex(pair[0], pair[1])
