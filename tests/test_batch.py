from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pytest

pyvips = pytest.importorskip("pyvips")
pytestmark = pytest.mark.imaging

Image = pytest.importorskip("PIL.Image")

from batch_crop import batch as batch_mod  # noqa: E402
from batch_crop.batch import BatchDriver  # noqa: E402
from batch_crop.crop.solver import AUTO, Resolution  # noqa: E402
from batch_crop.errors import CompositorMismatch, ConfigError, NoDominantRegion  # noqa: E402
from batch_crop.image_engine.compositor import Compositor  # noqa: E402
from batch_crop.image_engine.metrics import metrics  # noqa: E402
from batch_crop.logger import setup_logger  # noqa: E402
from batch_crop.settings_manager import SettingsManager  # noqa: E402

# 40 rows x 60 columns, block at rows 10..29, columns 15..44
SHOT = (40, 60, (10, 15, 30, 45))


class ShortCompositor(Compositor):
    """Compositor whose composite pass loses one column."""

    def _render_composite(self) -> np.ndarray:
        return super()._render_composite()[:, :-1]


@pytest.fixture
def folders(tmp_path: Path) -> tuple[Path, Path]:
    src = tmp_path / "in"
    dst = tmp_path / "out"
    src.mkdir()
    dst.mkdir()
    return src, dst


@pytest.fixture
def compositor():
    comp = Compositor()
    yield comp
    comp.close()


def _fill(src: Path, write_image, make_shot, names: list[str]) -> None:
    h, w, box = SHOT
    for name in names:
        write_image(src / name, make_shot(h, w, box))


def test_auto_batch_writes_cropped_jpegs(folders, compositor, write_image, make_shot):
    src, dst = folders
    _fill(src, write_image, make_shot, ["a.png", "b.png"])

    report = BatchDriver(compositor, 0.5, AUTO).run(src, dst)

    assert report.written == [dst / "a.jpg", dst / "b.jpg"]
    with Image.open(dst / "a.jpg") as img:
        assert img.format == "JPEG"
        assert img.size == (31, 21)
    assert metrics.count("batch.written") == 2


def test_fixed_resolution_output_has_exact_size(folders, compositor, write_image, make_shot):
    src, dst = folders
    _fill(src, write_image, make_shot, ["shot.png"])

    report = BatchDriver(compositor, 0.5, Resolution(100, 80)).run(src, dst)

    assert report.written == [dst / "shot.jpg"]
    with Image.open(dst / "shot.jpg") as img:
        assert img.size == (100, 80)
        # Padding outside the source is the black fill colour.
        assert max(img.convert("RGB").getpixel((0, 0))) < 16


def test_second_run_is_idempotent(folders, compositor, write_image, make_shot, monkeypatch):
    src, dst = folders
    _fill(src, write_image, make_shot, ["a.png", "b.png"])
    driver = BatchDriver(compositor, 0.5, AUTO)
    driver.run(src, dst)

    calls = []
    real_encode = batch_mod.encode_jpeg

    def counting_encode(*args, **kwargs):
        calls.append(args)
        return real_encode(*args, **kwargs)

    monkeypatch.setattr(batch_mod, "encode_jpeg", counting_encode)
    report = driver.run(src, dst)

    assert calls == []
    assert report.written == []
    assert report.skipped_existing == 2


def test_non_image_is_skipped_without_blocking_later_files(folders, compositor, write_image, make_shot, monkeypatch):
    src, dst = folders
    (src / "a_readme.txt").write_text("hello", encoding="utf-8")
    _fill(src, write_image, make_shot, ["b.png"])

    decoded = []
    real_load = batch_mod.load_image

    def tracking_load(path):
        decoded.append(Path(path).name)
        return real_load(path)

    monkeypatch.setattr(batch_mod, "load_image", tracking_load)
    report = BatchDriver(compositor, 0.5).run(src, dst)

    assert decoded == ["b.png"]
    assert report.skipped_non_image == 1
    assert report.written == [dst / "b.jpg"]


def test_ds_store_is_ignored_silently(folders, compositor):
    src, dst = folders
    (src / ".DS_Store").write_bytes(b"\x00\x01")
    report = BatchDriver(compositor, 0.5).run(src, dst)
    assert report.skipped_non_image == 0
    assert report.written == []


def test_extensions_match_case_insensitively(folders, compositor, write_image, make_shot):
    src, dst = folders
    _fill(src, write_image, make_shot, ["UPPER.PNG"])
    report = BatchDriver(compositor, 0.5).run(src, dst)
    assert report.written == [dst / "UPPER.jpg"]


def test_undecodable_and_empty_images_are_skipped(folders, compositor, write_image, make_shot):
    src, dst = folders
    (src / "a_broken.png").write_text("not really a png", encoding="utf-8")
    write_image(src / "b_blank.png", np.zeros((20, 20, 3), dtype=np.uint8))
    _fill(src, write_image, make_shot, ["c_good.png"])

    report = BatchDriver(compositor, 0.5).run(src, dst)

    assert report.decode_failed == 1
    assert report.no_region == 1
    assert report.failed == 2
    assert report.written == [dst / "c_good.jpg"]
    assert not (dst / "b_blank.jpg").exists()


def test_content_touching_edge_has_no_dominant_region(tmp_path, compositor, write_image, make_shot):
    # Block runs to the bottom edge, so the row run is never closed.
    path = write_image(tmp_path / "edge.png", make_shot(30, 30, (10, 5, 30, 20)))
    driver = BatchDriver(compositor, 0.5)
    with pytest.raises(NoDominantRegion) as info:
        driver.process_file(path, tmp_path / "edge.jpg")
    assert info.value.axis == "horizontal"


def test_close_trailing_run_setting_accepts_edge_content(tmp_path, compositor, write_image, make_shot):
    path = write_image(tmp_path / "edge.png", make_shot(30, 30, (10, 5, 30, 20)))
    settings = SettingsManager(str(tmp_path / "settings.json"))
    settings.set("close_trailing_run", True)
    job = BatchDriver(compositor, 0.5, settings=settings).process_file(path, tmp_path / "edge.jpg")
    assert job.destination.exists()
    assert job.resolution.height > 0


def test_process_file_returns_crop_job(tmp_path, compositor, write_image, make_shot):
    h, w, box = SHOT
    path = write_image(tmp_path / "one.png", make_shot(h, w, box))
    job = BatchDriver(compositor, 0.5).process_file(path, tmp_path / "one.jpg")
    assert job.source == path
    assert job.resolution == Resolution(31, 21)
    assert job.rectangle.is_within_source()


def test_fixed_resolution_mismatch_aborts_batch(folders, write_image, make_shot):
    src, dst = folders
    _fill(src, write_image, make_shot, ["a.png", "b.png"])

    with ShortCompositor() as comp:
        driver = BatchDriver(comp, 0.5, Resolution(200, 200))
        with pytest.raises(CompositorMismatch) as info:
            driver.run(src, dst)

    assert info.value.expected == (200, 200)
    assert info.value.actual == (199, 200)
    assert not (dst / "a.jpg").exists()
    assert not (dst / "b.jpg").exists()


def test_invalid_threshold_is_config_error(compositor):
    with pytest.raises(ConfigError):
        BatchDriver(compositor, 1.5)


def test_unwritable_destination_does_not_stop_batch(folders, compositor, write_image, make_shot):
    src, dst = folders
    _fill(src, write_image, make_shot, ["a.png", "b.png"])
    # Dangling link: not an existing output, but writing through it fails.
    (dst / "a.jpg").symlink_to(dst / "missing" / "a.jpg")

    report = BatchDriver(compositor, 0.5).run(src, dst)

    assert report.write_failed == 1
    assert report.failed == 1
    assert report.written == [dst / "b.jpg"]
    assert metrics.count("batch.write_failed") == 1


def test_render_error_skips_file(folders, write_image, make_shot):
    src, dst = folders
    _fill(src, write_image, make_shot, ["a.png"])

    class BrokenCompositor(Compositor):
        def _render_composite(self) -> np.ndarray:
            raise pyvips.Error("composite failed")

    with BrokenCompositor() as comp:
        report = BatchDriver(comp, 0.5).run(src, dst)

    assert report.write_failed == 1
    assert report.written == []
    assert not (dst / "a.jpg").exists()


def test_jpeg_quality_reaches_encoder(tmp_path, folders, compositor, write_image, make_shot, monkeypatch):
    src, dst = folders
    _fill(src, write_image, make_shot, ["a.png"])

    qualities = []
    real_encode = batch_mod.encode_jpeg

    def recording_encode(array, quality=80):
        qualities.append(quality)
        return real_encode(array, quality)

    monkeypatch.setattr(batch_mod, "encode_jpeg", recording_encode)
    BatchDriver(compositor, 0.5).run(src, dst)

    settings = SettingsManager(str(tmp_path / "settings.json"))
    settings.set("jpeg_quality", 55)
    (dst / "a.jpg").unlink()
    BatchDriver(compositor, 0.5, settings=settings).run(src, dst)

    assert qualities == [80, 55]


def test_render_progress_is_logged_at_info(folders, compositor, write_image, make_shot, monkeypatch):
    src, dst = folders
    _fill(src, write_image, make_shot, ["a.png"])
    monkeypatch.delenv("BATCH_CROP_LOG_LEVEL", raising=False)
    setup_logger()

    records: list[logging.LogRecord] = []
    handler = logging.Handler()
    handler.emit = records.append  # type: ignore[method-assign]
    batch_logger = logging.getLogger("batch_crop.batch")
    batch_logger.addHandler(handler)
    try:
        BatchDriver(compositor, 0.5).run(src, dst)
    finally:
        batch_logger.removeHandler(handler)

    progress = [(r.levelno, r.getMessage()) for r in records if "render" in r.getMessage()]
    assert progress == [
        (logging.INFO, "1/1 will render horizontal"),
        (logging.INFO, "1/1 did render horizontal"),
        (logging.INFO, "1/1 will render vertical"),
        (logging.INFO, "1/1 did render vertical"),
        (logging.INFO, "1/1 will render"),
        (logging.INFO, "1/1 did render"),
    ]
