from __future__ import annotations

import enum
from dataclasses import dataclass, field

import numpy as np
from PIL import Image


class Photometric(enum.Enum):
    MONOCHROME1 = "MONOCHROME1"
    MONOCHROME2 = "MONOCHROME2"
    RGB = "RGB"

    @classmethod
    def parse(cls, value: str) -> "Photometric":
        return cls(value.strip().upper())

    @property
    def channels(self) -> int:
        return 3 if self is Photometric.RGB else 1


class CapabilityLevel(enum.Enum):
    HIGH_RES = "high_res"
    BASIC = "basic"

    def other(self) -> "CapabilityLevel":
        return CapabilityLevel.BASIC if self is CapabilityLevel.HIGH_RES else CapabilityLevel.HIGH_RES


@dataclass(frozen=True)
class IntensityGrid:
    samples: np.ndarray
    width: int
    height: int
    bits_stored: int = 16
    bits_allocated: int = 16
    signed: bool = False
    samples_per_pixel: int = 1


@dataclass(frozen=True)
class RescaleParams:
    slope: float = 1.0
    intercept: float = 0.0

    def apply(self, values: np.ndarray) -> np.ndarray:
        return np.asarray(values, dtype=np.float64) * self.slope + self.intercept


@dataclass(frozen=True)
class WindowParams:
    center: float
    width: float

    @property
    def lower(self) -> float:
        return self.center - self.width / 2.0

    @property
    def upper(self) -> float:
        return self.center + self.width / 2.0


@dataclass(frozen=True)
class NormalizedImage:
    pixels: np.ndarray  # (h, w) or (h, w, 3) uint8

    def __post_init__(self):
        if self.pixels.dtype != np.uint8:
            raise TypeError(f"Normalized pixels must be uint8, got {self.pixels.dtype}")
        if self.pixels.ndim not in (2, 3):
            raise ValueError(f"Normalized pixels must be 2-D or 3-D, got shape {self.pixels.shape}")

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def channels(self) -> int:
        return 1 if self.pixels.ndim == 2 else self.pixels.shape[2]

    def to_pil(self) -> Image.Image:
        return Image.fromarray(np.ascontiguousarray(self.pixels))

    @classmethod
    def from_pil(cls, image: Image.Image) -> "NormalizedImage":
        return cls(np.array(image, dtype=np.uint8))


@dataclass(frozen=True)
class LayoutPlan:
    pixel_width: int
    pixel_height: int
    cols: int
    rows: int


@dataclass(frozen=True)
class RenderRequest:
    image: NormalizedImage | None
    filename: str | None = None
    metadata: tuple[tuple[str, str], ...] = field(default_factory=tuple)
    width: int | None = None
    height: int | None = None
    pixel_aspect: float = 1.0
    error: Exception | None = None

    @classmethod
    def failed(
        cls,
        filename: str | None,
        error: Exception,
        metadata: tuple[tuple[str, str], ...] = (),
    ) -> "RenderRequest":
        return cls(image=None, filename=filename, metadata=tuple(metadata), error=error)


@dataclass(frozen=True)
class FileOutcome:
    name: str
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
