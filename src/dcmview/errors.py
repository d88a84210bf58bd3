class DcmviewError(Exception):
    """Base class for errors scoped to a single rendered file."""


class DecodeError(DcmviewError):
    pass


class MalformedPixelData(DcmviewError):
    pass


class InvalidDimensions(DcmviewError):
    pass


class EncodeError(DcmviewError):
    pass


class ProbeTimeout(DcmviewError):
    """The terminal did not answer the capability probe in time."""
