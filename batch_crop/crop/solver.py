"""Crop rectangle solving.

Turns the dominant horizontal and vertical runs into a normalized crop
rectangle in UV space and resolves the output resolution.

UV convention: x grows to the right, y grows upward; row 0 of the source is
UV y = 1. The horizontal profile indexes rows, so it bounds the UV y axis; the
vertical profile indexes columns, so it bounds the UV x axis.
"""

from __future__ import annotations

from dataclasses import dataclass

from batch_crop.crop.runs import Run
from batch_crop.errors import DegenerateSource


@dataclass(frozen=True, slots=True)
class Resolution:
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"resolution must be positive, got {self.width}x{self.height}")

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height


# Auto resolution: the output canvas follows the detected bounding box.
AUTO: Resolution | None = None


@dataclass(frozen=True, slots=True)
class AxisSpan:
    """A run normalized against `dimension - 1`."""

    low: float
    high: float

    @property
    def center(self) -> float:
        return (self.low + self.high) / 2.0

    @property
    def scale(self) -> float:
        return self.high - self.low


@dataclass(frozen=True, slots=True)
class CropRectangle:
    """Normalized crop bounds in UV space. Not clamped to [0, 1]."""

    left: float
    right: float
    bottom: float
    top: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.top - self.bottom

    def is_within_source(self) -> bool:
        return self.left >= 0.0 and self.bottom >= 0.0 and self.right <= 1.0 and self.top <= 1.0

    def to_pixel_box(self, source: Resolution) -> tuple[int, int, int, int]:
        """Return (x, y, width, height) in source pixels, top-left origin.

        The box may start at negative coordinates or extend past the source.
        """
        x = int(round(self.left * source.width))
        y = int(round((1.0 - self.top) * source.height))
        width = max(1, int(round(self.width * source.width)))
        height = max(1, int(round(self.height * source.height)))
        return x, y, width, height


@dataclass(frozen=True, slots=True)
class CropSolution:
    rectangle: CropRectangle
    resolution: Resolution
    horizontal: AxisSpan
    vertical: AxisSpan


def normalize_run(run: Run, dimension: int) -> AxisSpan:
    if dimension <= 1:
        raise DegenerateSource(f"cannot normalize a run over a dimension of {dimension} pixel(s)")
    denom = float(dimension - 1)
    return AxisSpan(low=run.start / denom, high=run.end / denom)


def resolve_resolution(
    source: Resolution, horizontal: AxisSpan, vertical: AxisSpan, requested: Resolution | None
) -> Resolution:
    if requested is not None:
        return requested
    width = max(1, int(round(source.width * vertical.scale)))
    height = max(1, int(round(source.height * horizontal.scale)))
    return Resolution(width, height)


def solve_crop_rectangle(
    horizontal_run: Run,
    vertical_run: Run,
    source: Resolution,
    requested: Resolution | None = AUTO,
) -> CropSolution:
    """Derive the crop rectangle and output resolution for one image.

    `horizontal_run` indexes rows (normalized by the source height) and
    `vertical_run` indexes columns (normalized by the source width).
    """
    horizontal = normalize_run(horizontal_run, source.height)
    vertical = normalize_run(vertical_run, source.width)

    resolution = resolve_resolution(source, horizontal, vertical, requested)

    crop_x = resolution.width / source.width
    crop_y = resolution.height / source.height

    uv_x = vertical.center
    uv_y = 1.0 - horizontal.center

    rectangle = CropRectangle(
        left=uv_x - crop_x / 2.0,
        right=uv_x + crop_x / 2.0,
        bottom=uv_y - crop_y / 2.0,
        top=uv_y + crop_y / 2.0,
    )
    return CropSolution(rectangle=rectangle, resolution=resolution, horizontal=horizontal, vertical=vertical)
