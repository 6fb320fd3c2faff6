"""Render engine for the batch cropper.

`RenderContext` holds the parameters of the render graph (input image,
reduction method, crop rectangle, canvas resolution, fill colour). The
`Compositor` owns one context and one `RenderOperator`; every render pass runs
on the operator's worker thread and hands back a Future. Passes never overlap,
because the context's parameters are reassigned between them.

Passes:
    horizontal  max-reduce each row    -> interleaved RGBA bytes, one pixel per row
    vertical    max-reduce each column -> interleaved RGBA bytes, one pixel per column
    composite   crop through the UV rectangle onto a filled canvas -> (H, W, 3) array
"""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass

import numpy as np

from batch_crop.crop.profile import HORIZONTAL, VERTICAL, reduce_axis, to_rgba_bytes
from batch_crop.crop.solver import CropRectangle, Resolution
from batch_crop.logger import get_logger

from .decoder import array_to_vips, vips_to_array
from .render_operator import RenderOperator

_logger = get_logger("compositor")

COMPOSITE = "composite"
RENDER_KINDS = (HORIZONTAL, VERTICAL, COMPOSITE)
DEFAULT_FILL = (0, 0, 0)


@dataclass
class RenderContext:
    """Mutable parameters of the render graph, reassigned per image."""

    image: np.ndarray | None = None
    reduction_method: str = "max"
    crop_rectangle: CropRectangle | None = None
    canvas_resolution: Resolution | None = None
    fill_color: tuple[int, int, int] = DEFAULT_FILL

    @property
    def source_resolution(self) -> Resolution:
        if self.image is None:
            raise RuntimeError("render context has no input image")
        height, width = self.image.shape[:2]
        return Resolution(int(width), int(height))


class Compositor:
    def __init__(self, fill_color: tuple[int, int, int] = DEFAULT_FILL, operator: RenderOperator | None = None):
        self.context = RenderContext(fill_color=tuple(fill_color))  # type: ignore[arg-type]
        self._operator = operator or RenderOperator()

    # --- graph parameters -------------------------------------------------

    def set_input(self, image: np.ndarray) -> Resolution:
        if image.ndim not in (2, 3):
            raise ValueError(f"unexpected image array shape: {image.shape}")
        self.context.image = image
        self.context.crop_rectangle = None
        self.context.canvas_resolution = None
        return self.context.source_resolution

    def set_reduction_method(self, method: str) -> None:
        self.context.reduction_method = method

    def set_crop_rectangle(self, rectangle: CropRectangle) -> None:
        self.context.crop_rectangle = rectangle

    def set_canvas_resolution(self, resolution: Resolution) -> None:
        self.context.canvas_resolution = resolution

    @property
    def source_resolution(self) -> Resolution:
        return self.context.source_resolution

    # --- render passes ----------------------------------------------------

    def render(self, kind: str) -> Future:
        """Issue one render pass; block on the returned Future for its output."""
        if kind in (HORIZONTAL, VERTICAL):
            return self._operator.schedule_render(self._render_reduction, kind, label=kind)
        if kind == COMPOSITE:
            return self._operator.schedule_render(self._render_composite, label=kind)
        raise ValueError(f"unknown render kind: {kind}")

    def _render_reduction(self, axis: str) -> bytes:
        ctx = self.context
        if ctx.image is None:
            raise RuntimeError("render context has no input image")
        reduced = reduce_axis(ctx.image, axis, ctx.reduction_method)
        return to_rgba_bytes(reduced)

    def _render_composite(self) -> np.ndarray:
        ctx = self.context
        if ctx.image is None or ctx.crop_rectangle is None or ctx.canvas_resolution is None:
            raise RuntimeError("composite needs an input image, a crop rectangle and a canvas resolution")
        source = ctx.source_resolution
        canvas = ctx.canvas_resolution
        x, y, _w, _h = ctx.crop_rectangle.to_pixel_box(source)
        _logger.debug("composite: source=%s canvas=%s offset=(%d, %d)", source, canvas, x, y)
        # Source pixels map 1:1 onto the canvas; anything outside the source
        # becomes fill colour.
        image = array_to_vips(ctx.image)
        out = image.embed(
            -x,
            -y,
            canvas.width,
            canvas.height,
            extend="background",
            background=[float(c) for c in ctx.fill_color],
        )
        return vips_to_array(out)

    # --- lifecycle --------------------------------------------------------

    def close(self) -> None:
        self._operator.shutdown(wait=True)

    def __enter__(self) -> Compositor:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
