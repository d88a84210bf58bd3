import math

from dcmview.errors import InvalidDimensions
from dcmview.model import CapabilityLevel, LayoutPlan

# Fallback font metrics (pixels per character cell) when the terminal does not report them.
DEFAULT_CELL_SIZE = (10, 20)

# Half-block cells carry one pixel across and two pixels down.
BASIC_PIXELS_PER_CELL = (1, 2)

DEFAULT_WIDTH_RATIO = 0.5
MIN_COLS = 8


def pixels_per_cell(capability: CapabilityLevel, cell_size: tuple[int, int]) -> tuple[int, int]:
    if capability is CapabilityLevel.BASIC:
        return BASIC_PIXELS_PER_CELL
    return cell_size


def minimal_plan(capability: CapabilityLevel, cell_size: tuple[int, int] | None = None) -> LayoutPlan:
    """The smallest plan that still shows something: a single cell."""
    px_w, px_h = pixels_per_cell(capability, cell_size or DEFAULT_CELL_SIZE)
    return LayoutPlan(pixel_width=px_w, pixel_height=px_h, cols=1, rows=1)


class _Planner:
    def __init__(self, image_w, image_h, capability, cell_size, pixel_aspect):
        self.capability = capability
        self.cell_w, self.cell_h = cell_size
        self.px_w, self.px_h = pixels_per_cell(capability, cell_size)
        # Height over width of one output pixel on screen, relative to a square pixel
        self.pixel_shape = (self.cell_h / self.px_h) / (self.cell_w / self.px_w)
        # Height over width the image should have on screen
        self.display_ratio = image_h * pixel_aspect / image_w

    def from_cols(self, cols: int) -> LayoutPlan:
        pixel_w = cols * self.px_w
        pixel_h = pixel_w * self.display_ratio / self.pixel_shape
        if self.capability is CapabilityLevel.BASIC:
            rows = max(1, round(pixel_h / self.px_h))
            return LayoutPlan(pixel_width=pixel_w, pixel_height=rows * self.px_h, cols=cols, rows=rows)
        pixel_h = max(1, round(pixel_h))
        return LayoutPlan(pixel_width=pixel_w, pixel_height=pixel_h, cols=cols, rows=math.ceil(pixel_h / self.px_h))

    def from_rows(self, rows: int) -> LayoutPlan:
        pixel_h = rows * self.px_h
        pixel_w = pixel_h * self.pixel_shape / self.display_ratio
        if self.capability is CapabilityLevel.BASIC:
            cols = max(1, round(pixel_w / self.px_w))
            return LayoutPlan(pixel_width=cols * self.px_w, pixel_height=pixel_h, cols=cols, rows=rows)
        pixel_w = max(1, round(pixel_w))
        return LayoutPlan(pixel_width=pixel_w, pixel_height=pixel_h, cols=math.ceil(pixel_w / self.px_w), rows=rows)

    def fit(self, cols: int, max_cols: int, max_rows: int) -> LayoutPlan:
        result = self.from_cols(cols)
        if result.rows > max_rows:
            result = self.from_rows(max_rows)
        return self.clamp(result, max_cols, max_rows)

    def clamp(self, result: LayoutPlan, max_cols: int, max_rows: int) -> LayoutPlan:
        cols = min(result.cols, max_cols)
        rows = min(result.rows, max_rows)
        return LayoutPlan(
            pixel_width=min(result.pixel_width, cols * self.px_w),
            pixel_height=min(result.pixel_height, rows * self.px_h),
            cols=cols,
            rows=rows,
        )


def plan(
    image_w: int,
    image_h: int,
    terminal_cols: int,
    terminal_rows: int,
    requested_w: int | None = None,
    requested_h: int | None = None,
    capability: CapabilityLevel = CapabilityLevel.BASIC,
    cell_size: tuple[int, int] | None = None,
    pixel_aspect: float = 1.0,
    min_cols: int = MIN_COLS,
    width_ratio: float = DEFAULT_WIDTH_RATIO,
) -> LayoutPlan:
    """Work out the pixel size to resample to and the cells the result will cover.

    With no request the image takes about ``width_ratio`` of the terminal
    width (at least ``min_cols``). A single requested dimension drives the
    other through the aspect ratio; two requested dimensions form a box the
    image is fitted into. The footprint never exceeds the terminal.
    """
    if image_w <= 0 or image_h <= 0:
        raise InvalidDimensions(f"Image has no pixels: {image_w}x{image_h}")
    if terminal_cols <= 0 or terminal_rows <= 0:
        raise InvalidDimensions(f"Terminal has no room: {terminal_cols}x{terminal_rows}")
    if requested_w is not None and requested_w <= 0:
        raise InvalidDimensions(f"Requested width must be positive, got {requested_w}")
    if requested_h is not None and requested_h <= 0:
        raise InvalidDimensions(f"Requested height must be positive, got {requested_h}")
    if pixel_aspect <= 0:
        raise InvalidDimensions(f"Pixel aspect ratio must be positive, got {pixel_aspect}")

    cell_size = cell_size or DEFAULT_CELL_SIZE
    if cell_size[0] <= 0 or cell_size[1] <= 0:
        raise InvalidDimensions(f"Cell size must be positive, got {cell_size}")

    planner = _Planner(image_w, image_h, capability, cell_size, pixel_aspect)

    if requested_w is None and requested_h is None:
        cols = min(terminal_cols, max(min_cols, round(terminal_cols * width_ratio)))
        return planner.fit(max(1, cols), terminal_cols, terminal_rows)

    if requested_h is None:
        return planner.fit(min(requested_w, terminal_cols), terminal_cols, terminal_rows)

    max_rows = min(requested_h, terminal_rows)
    if requested_w is None:
        result = planner.from_rows(max_rows)
        if result.cols > terminal_cols:
            result = planner.from_cols(terminal_cols)
        return planner.clamp(result, terminal_cols, max_rows)

    return planner.fit(min(requested_w, terminal_cols), terminal_cols, max_rows)
