"""Projection profiles: one boolean per row or column.

A reduction render collapses the image to a single pixel per row (or per
column) holding the maximum value across the other axis. The profile samples
one channel of those pixels and thresholds it against the 0..255 byte scale.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

HORIZONTAL = "horizontal"
VERTICAL = "vertical"

RGBA_BANDS = 4


@dataclass(frozen=True, eq=False)
class ProjectionProfile:
    """Foreground presence per row (horizontal) or per column (vertical)."""

    axis: str
    values: np.ndarray

    def __len__(self) -> int:
        return int(self.values.shape[0])

    def __iter__(self):
        return iter(bool(v) for v in self.values)

    def any(self) -> bool:
        return bool(self.values.any())


def threshold_level(threshold: float) -> int:
    """Byte level a sample must exceed to count as foreground."""
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"threshold must be within [0, 1], got {threshold}")
    return int(threshold * 255.0)


def profile_from_raw(
    raw: bytes | bytearray | memoryview | np.ndarray,
    threshold: float,
    axis: str,
    channel: int = 0,
    bands: int = RGBA_BANDS,
) -> ProjectionProfile:
    """Build a profile from an interleaved reduction buffer.

    Every `bands`-th byte starting at `channel` is sampled.
    """
    if not 0 <= channel < bands:
        raise ValueError(f"channel {channel} out of range for {bands} bands")
    data = np.frombuffer(raw, dtype=np.uint8) if not isinstance(raw, np.ndarray) else raw.reshape(-1)
    if data.size % bands:
        raise ValueError(f"buffer length {data.size} is not a multiple of {bands}")
    samples = data[channel::bands]
    return ProjectionProfile(axis=axis, values=samples > threshold_level(threshold))


_REDUCERS = {
    "max": np.max,
    "min": np.min,
    "average": np.mean,
}


def reduce_axis(pixels: np.ndarray, axis: str, method: str = "max") -> np.ndarray:
    """Reduce an (H, W, C) uint8 array to one pixel per row or column.

    Returns an (N, C) array: N = H for the horizontal axis, W for the vertical
    axis, ordered top to bottom and left to right respectively.
    """
    reducer = _REDUCERS.get(method)
    if reducer is None:
        raise ValueError(f"unknown reduction method: {method}")
    if pixels.ndim == 2:
        pixels = pixels[:, :, np.newaxis]
    if axis == HORIZONTAL:
        rows = pixels
    elif axis == VERTICAL:
        # Columns become rows, then the same per-row reduction applies.
        rows = np.transpose(pixels, (1, 0, 2))
    else:
        raise ValueError(f"unknown axis: {axis}")
    return reducer(rows, axis=1).astype(np.uint8)


def to_rgba_bytes(reduced: np.ndarray) -> bytes:
    """Pack an (N, C) reduction into N interleaved RGBA pixels."""
    n, c = reduced.shape
    out = np.zeros((n, RGBA_BANDS), dtype=np.uint8)
    if c == 1:
        out[:, :3] = reduced
        out[:, 3] = 255
    elif c == 2:
        out[:, :3] = reduced[:, :1]
        out[:, 3] = reduced[:, 1]
    else:
        out[:, : min(c, RGBA_BANDS)] = reduced[:, :RGBA_BANDS]
        if c == 3:
            out[:, 3] = 255
    return out.tobytes()


def horizontal_profile(pixels: np.ndarray, threshold: float, channel: int = 0) -> ProjectionProfile:
    raw = to_rgba_bytes(reduce_axis(pixels, HORIZONTAL))
    return profile_from_raw(raw, threshold, HORIZONTAL, channel=channel)


def vertical_profile(pixels: np.ndarray, threshold: float, channel: int = 0) -> ProjectionProfile:
    raw = to_rgba_bytes(reduce_axis(pixels, VERTICAL))
    return profile_from_raw(raw, threshold, VERTICAL, channel=channel)
