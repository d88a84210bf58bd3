"""
Reading DICOM input with pydicom and turning it into render requests.

Only the first frame of a multi-frame object is shown. Colour data in a
YCbCr colour space comes back from pydicom already converted to RGB, and
PALETTE COLOR data is expanded through its lookup table, so everything past
this module sees one of MONOCHROME1, MONOCHROME2 or RGB.
"""

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

import numpy as np
import pydicom
from pydicom.dataset import Dataset
from pydicom.errors import InvalidDicomError
from pydicom.multival import MultiValue
from pydicom.pixels import apply_color_lut

from dcmview.errors import DcmviewError, DecodeError
from dcmview.model import IntensityGrid, Photometric, RenderRequest, RescaleParams, WindowParams
from dcmview.normalize import normalize

logger = logging.getLogger(__name__)

PREAMBLE_SIZE = 128
MAGIC = b"DICM"

# (label, attribute keyword) in display order
METADATA_FIELDS = [
    ("Patient Name", "PatientName"),
    ("Patient ID", "PatientID"),
    ("Birth Date", "PatientBirthDate"),
    ("Accession Number", "AccessionNumber"),
    ("Study Date", "StudyDate"),
    ("Study Description", "StudyDescription"),
    ("Modality", "Modality"),
    ("Series Description", "SeriesDescription"),
]

_COLOUR_CONVERTED = ("YBR_FULL", "YBR_FULL_422", "YBR_ICT", "YBR_RCT", "YBR_PARTIAL_420")


@dataclass(frozen=True)
class DecodedImage:
    grid: IntensityGrid
    rescale: RescaleParams
    window: WindowParams | None
    photometric: Photometric
    pixel_aspect: float = 1.0


def read_dataset(source: str | Path | BinaryIO) -> Dataset:
    """Parse a DICOM file from a path or a binary stream."""
    if isinstance(source, (str, Path)):
        try:
            return pydicom.dcmread(source)
        except FileNotFoundError as exc:
            raise DecodeError(f"File not found: {source}") from exc
        except (InvalidDicomError, OSError) as exc:
            raise DecodeError(f"Failed to open DICOM file {source}: {exc}") from exc

    data = source.read()
    if len(data) < PREAMBLE_SIZE + len(MAGIC):
        raise DecodeError(
            "Input is too short to be a valid DICOM file with preamble "
            f"(expected at least {PREAMBLE_SIZE + len(MAGIC)} bytes)"
        )
    if data[PREAMBLE_SIZE : PREAMBLE_SIZE + len(MAGIC)] != MAGIC:
        raise DecodeError("Input is not a valid DICOM file (missing DICM magic bytes)")
    try:
        return pydicom.dcmread(io.BytesIO(data))
    except (InvalidDicomError, OSError, ValueError) as exc:
        raise DecodeError(f"Failed to parse DICOM input: {exc}") from exc


def _first(value) -> float:
    # WindowCenter/Width can be a MultiValue list; take the first element
    if isinstance(value, (MultiValue, list, tuple)):
        value = value[0]
    return float(value)


def read_window(ds: Dataset) -> WindowParams | None:
    center = ds.get("WindowCenter")
    width = ds.get("WindowWidth")
    if center is None or width is None:
        return None
    try:
        return WindowParams(center=_first(center), width=_first(width))
    except (IndexError, TypeError, ValueError):
        logger.warning("Ignoring unreadable window %r/%r", center, width)
        return None


def read_rescale(ds: Dataset) -> RescaleParams:
    slope = ds.get("RescaleSlope")
    intercept = ds.get("RescaleIntercept")
    return RescaleParams(
        slope=float(slope) if slope is not None else 1.0,
        intercept=float(intercept) if intercept is not None else 0.0,
    )


def read_pixel_aspect(ds: Dataset) -> float:
    """Vertical over horizontal pixel spacing ratio; 1.0 for square or unknown pixels."""
    ratio = ds.get("PixelAspectRatio")
    if not isinstance(ratio, MultiValue) or len(ratio) != 2:
        return 1.0
    vertical, horizontal = (float(v) for v in ratio)
    if vertical <= 0 or horizontal <= 0:
        return 1.0
    return vertical / horizontal


def _uid_label(uid) -> str:
    return f"{uid.name} ({uid})"


def extract_metadata(ds: Dataset) -> list[tuple[str, str]]:
    """Display attributes in a fixed order; absent attributes are left out."""
    try:
        return _metadata_fields(ds)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise DecodeError(f"Unreadable header attributes: {exc}") from exc


def _metadata_fields(ds: Dataset) -> list[tuple[str, str]]:
    fields = []
    for label, keyword in METADATA_FIELDS:
        value = ds.get(keyword)
        if value not in (None, ""):
            fields.append((label, str(value)))

    if "Rows" in ds and "Columns" in ds:
        spp = ds.get("SamplesPerPixel", 1)
        photometric = ds.get("PhotometricInterpretation", "")
        fields.append(("Dimensions", f"{ds.Columns}x{ds.Rows}x{spp} [{photometric}]"))

    ratio = ds.get("PixelAspectRatio")
    if isinstance(ratio, MultiValue) and len(ratio) == 2:
        fields.append(("Pixel Aspect Ratio", f"{ratio[0]}:{ratio[1]}"))

    sop_class = ds.get("SOPClassUID")
    if sop_class:
        fields.append(("SOP Class UID", _uid_label(sop_class)))

    file_meta = getattr(ds, "file_meta", None)
    transfer_syntax = file_meta.get("TransferSyntaxUID") if file_meta is not None else None
    if transfer_syntax:
        fields.append(("Transfer Syntax", _uid_label(transfer_syntax)))

    thickness = ds.get("SliceThickness")
    if thickness not in (None, ""):
        fields.append(("Slice Thickness", str(thickness)))
    return fields


def _photometric(name: str) -> Photometric:
    if name in _COLOUR_CONVERTED or name == "PALETTE COLOR":
        return Photometric.RGB
    try:
        return Photometric.parse(name)
    except ValueError as exc:
        raise DecodeError(f"Unsupported photometric interpretation: {name or '<missing>'}") from exc


def decode(ds: Dataset) -> DecodedImage:
    """Pull the first frame and the display parameters out of a dataset."""
    if "PixelData" not in ds:
        modality = ds.get("Modality", "unknown")
        raise DecodeError(f"No pixel data (modality {modality}); not an image object")

    name = str(ds.get("PhotometricInterpretation", "")).strip()
    photometric = _photometric(name)

    try:
        pixels = ds.pixel_array
    except (AttributeError, NotImplementedError, RuntimeError, ValueError) as exc:
        raise DecodeError(f"Failed to decode pixel data: {exc}") from exc

    try:
        frames = int(ds.get("NumberOfFrames", 1) or 1)
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"Unreadable number of frames: {exc}") from exc
    if frames > 1:
        logger.debug("Multi-frame object with %d frames; showing the first", frames)
        pixels = pixels[0]

    if name == "PALETTE COLOR":
        try:
            pixels = apply_color_lut(pixels, ds)
        except (AttributeError, ValueError) as exc:
            raise DecodeError(f"Failed to apply palette: {exc}") from exc

    pixels = np.asarray(pixels)
    try:
        if name == "PALETTE COLOR":
            bits_stored = bits_allocated = 8 * pixels.dtype.itemsize
        else:
            bits_stored = int(ds.get("BitsStored", 8 * pixels.dtype.itemsize))
            bits_allocated = int(ds.get("BitsAllocated", 8 * pixels.dtype.itemsize))
        grid = IntensityGrid(
            samples=pixels,
            width=int(ds.Columns),
            height=int(ds.Rows),
            bits_stored=bits_stored,
            bits_allocated=bits_allocated,
            signed=int(ds.get("PixelRepresentation", 0)) == 1,
            samples_per_pixel=3 if pixels.ndim == 3 else 1,
        )
        return DecodedImage(
            grid=grid,
            rescale=read_rescale(ds),
            window=read_window(ds),
            photometric=photometric,
            pixel_aspect=read_pixel_aspect(ds),
        )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise DecodeError(f"Unreadable image attributes: {exc}") from exc


def load_request(
    source: str | Path | BinaryIO,
    name: str | None = None,
    width: int | None = None,
    height: int | None = None,
    window: WindowParams | None = None,
) -> RenderRequest:
    """Decode and normalize one input; failures come back as a failed request."""
    try:
        ds = read_dataset(source)
        metadata = tuple(extract_metadata(ds))
    except DecodeError as exc:
        return RenderRequest.failed(name, exc)

    try:
        decoded = decode(ds)
        image = normalize(decoded.grid, decoded.rescale, window or decoded.window, decoded.photometric)
    except DcmviewError as exc:
        return RenderRequest.failed(name, exc, metadata)

    return RenderRequest(
        image=image,
        filename=name,
        metadata=metadata,
        width=width,
        height=height,
        pixel_aspect=decoded.pixel_aspect,
    )
