import math

import pytest

from dcmview.errors import InvalidDimensions
from dcmview.layout import DEFAULT_CELL_SIZE, minimal_plan, plan
from dcmview.model import CapabilityLevel, LayoutPlan

BASIC = CapabilityLevel.BASIC
HIGH_RES = CapabilityLevel.HIGH_RES


def test_default_basic_takes_half_the_terminal():
    result = plan(512, 512, 80, 24)
    assert result == LayoutPlan(pixel_width=40, pixel_height=40, cols=40, rows=20)


def test_default_high_res_uses_cell_pixels():
    result = plan(512, 512, 80, 24, capability=HIGH_RES, cell_size=(10, 20))
    assert result == LayoutPlan(pixel_width=400, pixel_height=400, cols=40, rows=20)


def test_width_only_derives_height():
    result = plan(512, 512, 80, 24, requested_w=20)
    assert (result.cols, result.rows) == (20, 10)
    assert (result.pixel_width, result.pixel_height) == (20, 20)


def test_height_only_derives_width():
    result = plan(512, 512, 80, 24, requested_h=10)
    assert (result.cols, result.rows) == (20, 10)


def test_both_requested_fits_inside_box():
    result = plan(512, 512, 80, 24, requested_w=30, requested_h=5)
    assert result.rows == 5
    assert result.cols == 10


def test_tall_image_is_limited_by_terminal_rows():
    result = plan(100, 1000, 80, 24)
    assert result.rows == 24
    assert result.pixel_height == 48
    assert result.cols == 5


def test_request_larger_than_terminal_is_clamped():
    result = plan(1000, 100, 80, 24, requested_w=200)
    assert result.cols == 80


def test_small_terminal_keeps_minimum_width():
    result = plan(100, 100, 10, 24)
    assert result.cols == 8


def test_pixel_aspect_ratio_stretches_height():
    square = plan(100, 100, 80, 40, requested_w=20)
    tall = plan(100, 100, 80, 40, requested_w=20, pixel_aspect=2.0)
    assert tall.rows == 2 * square.rows


def test_derived_dimension_never_zero():
    result = plan(4000, 1, 80, 24, requested_w=10)
    assert result.rows == 1
    assert result.pixel_height == 2


@pytest.mark.parametrize("capability", [BASIC, HIGH_RES])
@pytest.mark.parametrize("image", [(1, 1), (512, 512), (3000, 20), (20, 3000), (640, 480)])
@pytest.mark.parametrize("terminal", [(1, 1), (20, 10), (80, 24), (300, 90)])
@pytest.mark.parametrize("request_", [(None, None), (10, None), (None, 7), (500, 500)])
def test_footprint_within_terminal(capability, image, terminal, request_):
    result = plan(*image, *terminal, *request_, capability=capability)
    assert 1 <= result.cols <= terminal[0]
    assert 1 <= result.rows <= terminal[1]
    assert result.pixel_width >= 1 and result.pixel_height >= 1
    if capability is BASIC:
        assert result.pixel_width == result.cols
        assert result.pixel_height == 2 * result.rows
    else:
        cell_w, cell_h = DEFAULT_CELL_SIZE
        assert result.cols == math.ceil(result.pixel_width / cell_w)
        assert result.rows == math.ceil(result.pixel_height / cell_h)


@pytest.mark.parametrize(
    "args, kwargs",
    [
        ((0, 10, 80, 24), {}),
        ((10, 10, 0, 24), {}),
        ((10, 10, 80, 24), {"requested_w": 0}),
        ((10, 10, 80, 24), {"requested_h": -3}),
        ((10, 10, 80, 24), {"pixel_aspect": 0}),
        ((10, 10, 80, 24), {"cell_size": (0, 20)}),
    ],
)
def test_invalid_dimensions(args, kwargs):
    with pytest.raises(InvalidDimensions):
        plan(*args, **kwargs)


def test_minimal_plan():
    assert minimal_plan(BASIC) == LayoutPlan(1, 2, 1, 1)
    assert minimal_plan(HIGH_RES, (8, 16)) == LayoutPlan(8, 16, 1, 1)
