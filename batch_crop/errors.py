"""Error taxonomy for the batch cropper.

Recoverable errors (DecodeError, CropError subclasses) are caught at the
per-file boundary of the batch driver. ConfigError and CompositorMismatch end
the run with a non-zero exit code.
"""

from __future__ import annotations


class BatchCropError(Exception):
    """Base class for all batch_crop errors."""


class ConfigError(BatchCropError):
    """Invalid command line arguments, folders or settings."""


class DecodeError(BatchCropError):
    """A file could not be read as an image."""

    def __init__(self, path: str, reason: str | None = None):
        self.path = path
        self.reason = reason
        super().__init__(f"cannot decode {path}: {reason}" if reason else f"cannot decode {path}")


class CropError(BatchCropError):
    """Per-image detection failure; the image is skipped."""


class NoDominantRegion(CropError):
    """No foreground run was found on an axis."""

    def __init__(self, axis: str | None = None):
        self.axis = axis
        super().__init__(f"no foreground run on {axis} axis" if axis else "no foreground run")


class DegenerateSource(CropError):
    """Source image has a dimension too small to normalize (<= 1 pixel)."""


class CompositorMismatch(BatchCropError):
    """A fixed-resolution render did not produce the requested pixel size."""

    def __init__(self, expected: tuple[int, int], actual: tuple[int, int]):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"bad resolution: {actual[0]}x{actual[1]} (expected {expected[0]}x{expected[1]})"
        )


class RenderInProgress(BatchCropError):
    """A render was issued while another render was still in flight."""
