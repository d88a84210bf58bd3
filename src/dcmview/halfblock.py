from typing import BinaryIO

import numpy as np

from dcmview.engine import RESET, check_image
from dcmview.model import CapabilityLevel, LayoutPlan, NormalizedImage

UPPER_HALF_BLOCK = "▀"


def _fg(r, g, b) -> str:
    return f"\033[38;2;{r};{g};{b}m"


def _bg(r, g, b) -> str:
    return f"\033[48;2;{r};{g};{b}m"


def _rgb(image: NormalizedImage) -> np.ndarray:
    if image.channels == 1:
        return np.repeat(image.pixels[:, :, None], 3, axis=2)
    return image.pixels


def format_lines(image: NormalizedImage) -> list[str]:
    """Two pixel rows per text line: top pixel as foreground, bottom pixel as background."""
    rgb = _rgb(image)
    lines = []
    for y in range(0, image.height, 2):
        parts = []
        for x in range(image.width):
            top = rgb[y, x]
            if y + 1 < image.height:
                bottom = rgb[y + 1, x]
                parts.append(_fg(*top) + _bg(*bottom) + UPPER_HALF_BLOCK)
            else:
                parts.append("\033[49m" + _fg(*top) + UPPER_HALF_BLOCK)
        parts.append("\033[0m")
        lines.append("".join(parts))
    return lines


class HalfBlockEncoder:
    """Approximates the image with true-colour half-block characters."""

    capability = CapabilityLevel.BASIC

    def encode(self, image: NormalizedImage, plan: LayoutPlan, writer: BinaryIO) -> None:
        check_image(image, plan)
        for line in format_lines(image):
            writer.write(line.encode("utf-8") + b"\n")
        writer.write(RESET)
