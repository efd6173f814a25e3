import pytest

from mandelbands.errors import InvalidRenderInput
from mandelbands.geometry import Viewport, parse_complex, parse_pair, pixel_to_point


def test_parse_pair():
    assert parse_pair("", ",") is None
    assert parse_pair("10,", ",") is None
    assert parse_pair(",10", ",") is None
    assert parse_pair("10,20", ",") == (10, 20)
    assert parse_pair("10x20", "x") == (10, 20)
    assert parse_pair("0.5x1.5", "x", float) == (0.5, 1.5)


def test_parse_complex():
    assert parse_complex("1.25,-0.0625") == complex(1.25, -0.0625)
    assert parse_complex(",-0.0625") is None
    assert parse_complex("-0.0625,") is None
    assert parse_complex("abc,1") is None


def test_pixel_to_point():
    assert pixel_to_point((100, 200), (25, 175), complex(-1.0, 1.0), complex(1.0, -1.0)) == complex(-0.5, -0.75)


@pytest.mark.parametrize("bounds", [(1, 1), (100, 75), (1000, 750), (7, 3)])
def test_origin_maps_to_upper_left_exactly(bounds):
    ul, lr = complex(-1.20, 0.35), complex(-1.0, 0.20)
    assert pixel_to_point(bounds, (0, 0), ul, lr) == ul


def test_far_corner_approaches_lower_right():
    ul, lr = complex(-1.20, 0.35), complex(-1.0, 0.20)
    p = pixel_to_point((100, 75), (100, 75), ul, lr)
    assert p.real == pytest.approx(lr.real)
    assert p.imag == pytest.approx(lr.imag)


def test_rows_move_down_the_imaginary_axis():
    vp = Viewport(complex(-2, 1), complex(1, -1))
    top = vp.point((10, 10), (0, 0))
    below = vp.point((10, 10), (0, 1))
    assert below.imag < top.imag
    assert below.real == top.real


def test_viewport_is_frozen():
    vp = Viewport(complex(-2, 1), complex(1, -1))
    with pytest.raises(AttributeError):
        vp.upper_left = 0j


@pytest.mark.parametrize("ul, lr", [
    (complex(1, 1), complex(-1, -1)),
    (complex(-1, -1), complex(1, 1)),
    (complex(-1, 1), complex(-1, -1)),
    (complex(-1, 1), complex(1, 1)),
])
def test_degenerate_viewport_rejected(ul, lr):
    with pytest.raises(InvalidRenderInput):
        Viewport(ul, lr)
