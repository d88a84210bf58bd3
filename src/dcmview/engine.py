from __future__ import annotations

from typing import BinaryIO, Protocol

from dcmview.errors import EncodeError
from dcmview.model import CapabilityLevel, LayoutPlan, NormalizedImage

RESET = b"\033[0m"


class Encoder(Protocol):
    capability: CapabilityLevel

    def encode(self, image: NormalizedImage, plan: LayoutPlan, writer: BinaryIO) -> None:
        """Write the image to *writer* so it fills the cells described by *plan*."""
        ...


def check_image(image: NormalizedImage, plan: LayoutPlan) -> None:
    if image.channels not in (1, 3):
        raise EncodeError(f"Unsupported channel count: {image.channels}")
    if (image.width, image.height) != (plan.pixel_width, plan.pixel_height):
        raise EncodeError(
            f"Image is {image.width}x{image.height}, plan expects {plan.pixel_width}x{plan.pixel_height}"
        )


def encoder_for(capability: CapabilityLevel) -> Encoder:
    from dcmview.halfblock import HalfBlockEncoder
    from dcmview.kitty import KittyEncoder

    if capability is CapabilityLevel.HIGH_RES:
        return KittyEncoder()
    return HalfBlockEncoder()
