"""Image decoding and encoding using pyvips.

Decoding yields an (H, W, 3) uint8 RGB numpy array; encoding turns such an
array back into JPEG bytes.
"""

import contextlib
from typing import Any

import numpy as np

from batch_crop.errors import DecodeError
from batch_crop.logger import get_logger

_logger = get_logger("decoder")

RGB_CHANNELS = 3
DEFAULT_JPEG_QUALITY = 80

_pyvips: Any | None = None


def _get_pyvips_module() -> Any:
    global _pyvips
    if _pyvips is None:
        import pyvips  # type: ignore

        with contextlib.suppress(Exception):
            pyvips.cache_set_max(0)
            pyvips.cache_set_max_mem(0)
            pyvips.cache_set_max_files(0)
        _pyvips = pyvips
    return _pyvips


def vips_error() -> type[Exception]:
    """pyvips' exception class, for except clauses outside this module."""
    return _get_pyvips_module().Error


def vips_to_array(image: Any) -> "np.ndarray":
    """Normalize a pyvips image to sRGB uchar with 3 bands and copy it into numpy."""
    pyvips = _get_pyvips_module()
    with contextlib.suppress(Exception):
        image = image.colourspace("srgb")
    if image.hasalpha():
        # Alpha is not preserved; transparent areas become background.
        image = image.flatten(background=[0, 0, 0])
    if image.bands > RGB_CHANNELS:
        image = image.extract_band(0, n=RGB_CHANNELS)
    elif image.bands < RGB_CHANNELS:
        image = pyvips.Image.bandjoin([image] * RGB_CHANNELS)
    if image.format != "uchar":
        image = image.cast("uchar")

    mem = image.write_to_memory()
    array = np.frombuffer(mem, dtype=np.uint8).reshape(image.height, image.width, image.bands)
    if array.shape[2] != RGB_CHANNELS:
        raise RuntimeError(f"Unsupported band count after conversion: {array.shape[2]}")
    return array.copy()


def array_to_vips(array: "np.ndarray") -> Any:
    pyvips = _get_pyvips_module()
    arr = np.ascontiguousarray(array, dtype=np.uint8)
    if arr.ndim == 2:
        arr = arr[:, :, np.newaxis]
    height, width, bands = arr.shape
    return pyvips.Image.new_from_memory(arr.tobytes(), width, height, bands, "uchar")


def decode_image(file_path: str) -> tuple[str, "np.ndarray | None", str | None]:
    """Decode image from file path into an RGB numpy array using pyvips only.

    Returns (path, array|None, error|None).
    """
    try:
        pyvips = _get_pyvips_module()
        # Camera JPEGs carry an EXIF orientation; profiles and crops work on the
        # displayed orientation.
        if file_path.lower().endswith((".jpg", ".jpeg")):
            image = pyvips.Image.new_from_file(file_path, autorotate=True)
        else:
            image = pyvips.Image.new_from_file(file_path, access="sequential")
        return file_path, vips_to_array(image), None
    except Exception as e:
        _logger.debug("decode failed: %s", e)
        return file_path, None, str(e)


def load_image(file_path: str) -> "np.ndarray":
    """Like decode_image, but raises DecodeError on failure."""
    path, array, error = decode_image(file_path)
    if array is None:
        raise DecodeError(path, error)
    return array


def encode_jpeg(array: "np.ndarray", quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    """Encode an RGB array as JPEG. `quality` is the 1..100 Q factor."""
    image = array_to_vips(array)
    return bytes(image.write_to_buffer(".jpg", Q=int(quality)))
