from PIL import Image

from dcmview.errors import InvalidDimensions
from dcmview.model import NormalizedImage


def resample(image: NormalizedImage, target_w: int, target_h: int) -> NormalizedImage:
    """Resize to exactly target_w x target_h.

    If either axis shrinks, source blocks are averaged (box filter), which only
    replicates pixels along an axis that grows. Pure enlargement uses nearest
    neighbour. Same-size input is copied unchanged.
    """
    if target_w <= 0 or target_h <= 0:
        raise InvalidDimensions(f"Cannot resample to {target_w}x{target_h}")
    if (target_w, target_h) == (image.width, image.height):
        return NormalizedImage(image.pixels.copy())

    shrinking = target_w < image.width or target_h < image.height
    resample_filter = Image.BOX if shrinking else Image.NEAREST
    resized = image.to_pil().resize((target_w, target_h), resample_filter)
    return NormalizedImage.from_pil(resized)
