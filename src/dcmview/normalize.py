import logging

import numpy as np

from dcmview.errors import MalformedPixelData
from dcmview.model import IntensityGrid, NormalizedImage, Photometric, RescaleParams, WindowParams

logger = logging.getLogger(__name__)

SUPPORTED_BITS_ALLOCATED = (8, 16, 32)
DEGENERATE_GRAY = 128


def validate_grid(grid: IntensityGrid, photometric: Photometric) -> np.ndarray:
    """Check the grid geometry and return its samples shaped (h, w) or (h, w, 3)."""
    if grid.bits_allocated not in SUPPORTED_BITS_ALLOCATED:
        raise MalformedPixelData(f"Unsupported bits allocated: {grid.bits_allocated} (expected 8, 16, or 32)")
    if not 1 <= grid.bits_stored <= grid.bits_allocated:
        raise MalformedPixelData(
            f"Bits stored ({grid.bits_stored}) must be between 1 and bits allocated ({grid.bits_allocated})"
        )
    if grid.samples_per_pixel != photometric.channels:
        raise MalformedPixelData(
            f"Inconsistent photometric interpretation {photometric.value} "
            f"with samples per pixel {grid.samples_per_pixel}"
        )
    if grid.width < 0 or grid.height < 0:
        raise MalformedPixelData(f"Negative dimensions: {grid.width}x{grid.height}")

    samples = np.asarray(grid.samples)
    expected = grid.width * grid.height * grid.samples_per_pixel
    if samples.size != expected:
        raise MalformedPixelData(
            f"Pixel data holds {samples.size} samples, expected {expected} "
            f"for {grid.width}x{grid.height}x{grid.samples_per_pixel}"
        )
    if not grid.signed and samples.size and samples.min() < 0:
        raise MalformedPixelData(f"Negative sample {samples.min()} in unsigned pixel data")
    if grid.samples_per_pixel == 1:
        return samples.reshape(grid.height, grid.width)
    return samples.reshape(grid.height, grid.width, grid.samples_per_pixel)


def apply_window(values: np.ndarray, window: WindowParams) -> np.ndarray:
    """Map [center - width/2, center + width/2] onto [0, 255], clamping outside values."""
    lower, upper = window.lower, window.upper
    scaled = (np.clip(values, lower, upper) - lower) / (upper - lower) * 255.0
    return np.rint(scaled).astype(np.uint8)


def auto_window(values: np.ndarray) -> np.ndarray:
    """Stretch the observed [min, max] onto [0, 255]; a flat grid becomes mid gray."""
    if values.size == 0:
        return np.full(values.shape, DEGENERATE_GRAY, dtype=np.uint8)
    lo = float(values.min())
    hi = float(values.max())
    if hi <= lo:
        return np.full(values.shape, DEGENERATE_GRAY, dtype=np.uint8)
    scaled = (values - lo) / (hi - lo) * 255.0
    return np.rint(np.clip(scaled, 0.0, 255.0)).astype(np.uint8)


def invert(pixels: np.ndarray) -> np.ndarray:
    return (255 - pixels).astype(np.uint8)


def _normalize_colour(values: np.ndarray, bits_stored: int) -> np.ndarray:
    if bits_stored > 8:
        values = values * (255.0 / (2**bits_stored - 1))
    return np.rint(np.clip(values, 0.0, 255.0)).astype(np.uint8)


def normalize(
    grid: IntensityGrid,
    rescale: RescaleParams | None = None,
    window: WindowParams | None = None,
    photometric: Photometric = Photometric.MONOCHROME2,
) -> NormalizedImage:
    """Convert raw stored samples into an 8-bit displayable image.

    Grayscale samples are rescaled (``v * slope + intercept``) and then
    windowed, either with the given window or with an automatic window over
    the observed range. MONOCHROME1 output is inverted. RGB samples skip the
    window: each channel is rescaled and clipped on its own.

    Raises MalformedPixelData if the grid geometry or bit depth is invalid.
    """
    rescale = rescale or RescaleParams()
    samples = validate_grid(grid, photometric)
    values = rescale.apply(samples)

    if photometric is Photometric.RGB:
        return NormalizedImage(_normalize_colour(values, grid.bits_stored))

    if window is not None and window.width <= 0:
        logger.warning("Ignoring window with non-positive width %s; using automatic window", window.width)
        window = None

    if window is not None:
        logger.debug("Applying window: centre=%.1f, width=%.1f", window.center, window.width)
        pixels = apply_window(values, window)
    else:
        pixels = auto_window(values)

    if photometric is Photometric.MONOCHROME1:
        pixels = invert(pixels)
    return NormalizedImage(pixels)
