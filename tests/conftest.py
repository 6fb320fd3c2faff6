"""Pytest configuration.

Image fixtures are synthesized with numpy and written with Pillow, so tests
never depend on files shipped with the repository.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import numpy as np
import pytest


def product_shot(
    height: int,
    width: int,
    box: tuple[int, int, int, int],
    value: int = 255,
) -> np.ndarray:
    """Black (H, W, 3) frame with a solid block at box=(top, left, bottom, right), exclusive ends."""
    arr = np.zeros((height, width, 3), dtype=np.uint8)
    top, left, bottom, right = box
    arr[top:bottom, left:right] = value
    return arr


@pytest.fixture
def write_image() -> Callable[[Path, np.ndarray], Path]:
    """Return a helper that saves an array to `path` with Pillow."""
    image_mod = pytest.importorskip("PIL.Image")

    def _write(path: Path, arr: np.ndarray) -> Path:
        image_mod.fromarray(arr).save(str(path))
        return path

    return _write


@pytest.fixture(autouse=True)
def _reset_metrics():
    from batch_crop.image_engine.metrics import metrics

    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def make_shot() -> Callable[..., np.ndarray]:
    return product_shot
