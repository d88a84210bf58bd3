import numpy as np
import pydicom
import pytest
from pydicom.dataset import FileDataset
from pydicom.uid import ExplicitVRLittleEndian

from dcmview.model import IntensityGrid

CT_IMAGE_STORAGE = "1.2.840.10008.5.1.4.1.1.2"


def make_grid(values, bits=16, signed=False) -> IntensityGrid:
    arr = np.asarray(values)
    if arr.ndim == 3:
        h, w, spp = arr.shape
    else:
        arr = np.atleast_2d(arr)
        (h, w), spp = arr.shape, 1
    return IntensityGrid(
        samples=arr,
        width=w,
        height=h,
        bits_stored=bits,
        bits_allocated=bits if bits in (8, 16, 32) else 16,
        signed=signed,
        samples_per_pixel=spp,
    )


def make_dataset(pixels: np.ndarray, photometric: str = "MONOCHROME2", **attrs) -> FileDataset:
    """Create a minimal pydicom Dataset with pixel_array support."""
    file_meta = pydicom.Dataset()
    file_meta.MediaStorageSOPClassUID = pydicom.uid.UID(CT_IMAGE_STORAGE)
    file_meta.MediaStorageSOPInstanceUID = pydicom.uid.generate_uid()
    file_meta.TransferSyntaxUID = ExplicitVRLittleEndian

    ds = FileDataset(filename_or_obj=None, dataset={}, file_meta=file_meta, preamble=b"\0" * 128)
    ds.SOPClassUID = file_meta.MediaStorageSOPClassUID
    ds.SOPInstanceUID = file_meta.MediaStorageSOPInstanceUID
    if pixels.ndim == 3 and photometric == "RGB":
        ds.Rows, ds.Columns = pixels.shape[:2]
        ds.SamplesPerPixel = 3
        ds.PlanarConfiguration = 0
    elif pixels.ndim == 3:
        ds.NumberOfFrames = pixels.shape[0]
        ds.Rows, ds.Columns = pixels.shape[1:]
        ds.SamplesPerPixel = 1
    else:
        ds.Rows, ds.Columns = pixels.shape
        ds.SamplesPerPixel = 1
    ds.PhotometricInterpretation = photometric
    ds.PixelRepresentation = 0
    bits = 8 * pixels.dtype.itemsize
    ds.BitsAllocated = bits
    ds.BitsStored = bits
    ds.HighBit = bits - 1
    ds.PixelData = pixels.tobytes()
    for keyword, value in attrs.items():
        setattr(ds, keyword, value)
    return ds


def write_dicom(path, ds) -> str:
    pydicom.dcmwrite(path, ds, enforce_file_format=True)
    return str(path)


@pytest.fixture
def gradient_pixels():
    return np.arange(64, dtype=np.uint16).reshape(8, 8) * 64


@pytest.fixture
def no_user_config(monkeypatch, tmp_path):
    monkeypatch.setenv("DCMVIEW_CONFIG", str(tmp_path / "missing.yaml"))
