import io

import numpy as np
import pytest

from dcmview.errors import EncodeError
from dcmview.halfblock import UPPER_HALF_BLOCK, HalfBlockEncoder, format_lines
from dcmview.model import LayoutPlan, NormalizedImage


def encode(image, plan):
    buf = io.BytesIO()
    HalfBlockEncoder().encode(image, plan, buf)
    return buf.getvalue().decode("utf-8")


def test_one_line_per_row_pair():
    image = NormalizedImage(np.full((6, 5), 100, dtype=np.uint8))
    out = encode(image, LayoutPlan(5, 6, 5, 3))
    lines = out.split("\n")
    assert len(lines) == 4  # three rows plus the trailing reset
    assert all(line.endswith("\033[0m") for line in lines[:3])
    assert all(line.count(UPPER_HALF_BLOCK) == 5 for line in lines[:3])
    assert lines[3] == "\033[0m"


def test_top_pixel_is_foreground_bottom_is_background():
    image = NormalizedImage(np.array([[255], [0]], dtype=np.uint8))
    out = encode(image, LayoutPlan(1, 2, 1, 1))
    assert out.startswith(f"\033[38;2;255;255;255m\033[48;2;0;0;0m{UPPER_HALF_BLOCK}")


def test_rgb_colours():
    pixels = np.array([[[255, 0, 0]], [[0, 0, 255]]], dtype=np.uint8)
    out = encode(NormalizedImage(pixels), LayoutPlan(1, 2, 1, 1))
    assert "\033[38;2;255;0;0m" in out
    assert "\033[48;2;0;0;255m" in out


def test_odd_height_last_row_uses_default_background():
    image = NormalizedImage(np.array([[10], [20], [30]], dtype=np.uint8))
    lines = format_lines(image)
    assert len(lines) == 2
    assert lines[1].startswith("\033[49m\033[38;2;30;30;30m")


def test_plan_mismatch_raises():
    image = NormalizedImage(np.zeros((4, 4), dtype=np.uint8))
    with pytest.raises(EncodeError):
        encode(image, LayoutPlan(4, 2, 4, 1))
