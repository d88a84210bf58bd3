import io
import logging
from collections.abc import Iterable
from typing import Any, BinaryIO

from dcmview import layout
from dcmview.engine import encoder_for
from dcmview.errors import DcmviewError, EncodeError, InvalidDimensions, MalformedPixelData
from dcmview.model import CapabilityLevel, FileOutcome, LayoutPlan, NormalizedImage, RenderRequest
from dcmview.resample import resample

logger = logging.getLogger(__name__)

STDIN_NAME = "<stdin>"


def format_metadata(metadata: Iterable[tuple[str, str]]) -> list[str]:
    return [f"{name:20}: {value}" for name, value in metadata]


class SessionRenderer:
    """Renders a run of images with one encoder chosen up front.

    The capability is decided by the caller (normally once per process with
    :func:`dcmview.terminal.detect_capability`) and never changes afterwards.
    """

    def __init__(
        self,
        capability: CapabilityLevel,
        writer: BinaryIO,
        terminal_size: tuple[int, int] = (80, 24),
        cell_size: tuple[int, int] | None = None,
        settings: dict[str, Any] | None = None,
    ):
        self.capability = capability
        self.writer = writer
        self.terminal_cols, self.terminal_rows = terminal_size
        self.cell_size = cell_size or layout.DEFAULT_CELL_SIZE
        settings = settings or {}
        self.min_cols = int(settings.get("min_cols", layout.MIN_COLS))
        self.width_ratio = float(settings.get("width_ratio", layout.DEFAULT_WIDTH_RATIO))

    def plan_for(self, request: RenderRequest, capability: CapabilityLevel) -> LayoutPlan:
        image = request.image
        try:
            return layout.plan(
                image.width,
                image.height,
                self.terminal_cols,
                self.terminal_rows,
                requested_w=request.width,
                requested_h=request.height,
                capability=capability,
                cell_size=self.cell_size,
                pixel_aspect=request.pixel_aspect,
                min_cols=self.min_cols,
                width_ratio=self.width_ratio,
            )
        except InvalidDimensions:
            explicit_zero = any(v is not None and v <= 0 for v in (request.width, request.height))
            if explicit_zero:
                raise
            logger.warning("Layout collapsed for %s; using the smallest plan", request.filename or STDIN_NAME)
            return layout.minimal_plan(capability, self.cell_size)

    def _encode(self, image: NormalizedImage, request: RenderRequest, capability: CapabilityLevel) -> bytes:
        plan = self.plan_for(request, capability)
        resized = resample(image, plan.pixel_width, plan.pixel_height)
        buf = io.BytesIO()
        encoder_for(capability).encode(resized, plan, buf)
        return buf.getvalue()

    def encode_image(self, request: RenderRequest) -> bytes:
        """Encode with the session's encoder, retrying once with the other one."""
        try:
            return self._encode(request.image, request, self.capability)
        except EncodeError as exc:
            fallback = self.capability.other()
            logger.warning("%s encoder failed (%s); retrying with %s", self.capability.value, exc, fallback.value)
            return self._encode(request.image, request, fallback)

    def render(
        self,
        request: RenderRequest,
        show_filename: bool = False,
        show_metadata: bool = False,
        separator: bool = False,
    ) -> FileOutcome:
        """Write one file in a single flushed write, preceded by a blank line if *separator* is set."""
        name = request.filename or STDIN_NAME
        buf = io.BytesIO()
        if separator:
            buf.write(b"\n")
        if show_filename:
            buf.write(f"{name}\n".encode("utf-8"))

        error = request.error
        if error is None and request.image is None:
            error = MalformedPixelData("No image to render")
        if error is None:
            try:
                buf.write(self.encode_image(request))
            except DcmviewError as exc:
                error = exc
        if error is not None:
            logger.info("Failed to render %s: %s", name, error)
            buf.write(f"[{name}: {error}]\n".encode("utf-8"))

        if show_metadata and request.metadata:
            for line in format_metadata(request.metadata):
                buf.write(f"{line}\n".encode("utf-8"))

        self.writer.write(buf.getvalue())
        self.writer.flush()
        return FileOutcome(name=name, error=error)

    def render_all(
        self,
        requests: Iterable[RenderRequest],
        show_filename: bool = False,
        show_metadata: bool = False,
    ) -> list[FileOutcome]:
        outcomes = []
        for i, request in enumerate(requests):
            outcomes.append(
                self.render(request, show_filename=show_filename, show_metadata=show_metadata, separator=i > 0)
            )
        return outcomes
