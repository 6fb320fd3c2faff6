"""Image Engine - decoding, encoding and the render/compositor layer.

Usage:
    from batch_crop.image_engine import Compositor

    with Compositor() as compositor:
        compositor.set_input(pixels)
        raw = compositor.render("horizontal").result()
"""

from .compositor import COMPOSITE, Compositor, RenderContext
from .decoder import decode_image, encode_jpeg, load_image
from .render_operator import RenderOperator

__all__ = [
    "COMPOSITE",
    "Compositor",
    "RenderContext",
    "RenderOperator",
    "decode_image",
    "encode_jpeg",
    "load_image",
]
