"""Batch driver: crop every image of a folder into an output folder.

Files are handled one at a time in sorted order. Per-file problems (unsupported
extension, existing output, undecodable file, no foreground, failed write) are
logged and skipped. A fixed-resolution render of the wrong size aborts the
whole batch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from batch_crop.crop.profile import HORIZONTAL, VERTICAL, profile_from_raw, threshold_level
from batch_crop.crop.runs import Run, extract_longest_run
from batch_crop.crop.solver import AUTO, CropRectangle, Resolution, solve_crop_rectangle
from batch_crop.errors import CompositorMismatch, ConfigError, CropError, DecodeError
from batch_crop.image_engine.compositor import COMPOSITE, Compositor
from batch_crop.image_engine.decoder import encode_jpeg, load_image, vips_error
from batch_crop.image_engine.metrics import metrics
from batch_crop.logger import get_logger
from batch_crop.path_utils import extension_of, output_path_for, sorted_listing
from batch_crop.settings_manager import SettingsManager

_logger = get_logger("batch")


@dataclass
class CropJob:
    """One unit of work, resolved and written."""

    source: Path
    destination: Path
    rectangle: CropRectangle
    resolution: Resolution


@dataclass
class BatchReport:
    written: list[Path] = field(default_factory=list)
    skipped_existing: int = 0
    skipped_non_image: int = 0
    decode_failed: int = 0
    no_region: int = 0
    write_failed: int = 0

    @property
    def failed(self) -> int:
        return self.decode_failed + self.no_region + self.write_failed


class BatchDriver:
    def __init__(
        self,
        compositor: Compositor,
        threshold: float,
        resolution: Resolution | None = AUTO,
        settings: SettingsManager | None = None,
    ):
        try:
            threshold_level(threshold)
        except ValueError as e:
            raise ConfigError(str(e)) from e
        self.compositor = compositor
        self.threshold = float(threshold)
        self.resolution = resolution
        self.settings = settings or SettingsManager()
        self.channel = self.settings.sample_channel
        self.quality = self.settings.jpeg_quality
        self.close_trailing = self.settings.close_trailing_run
        self.extensions = self.settings.supported_extensions
        self.ignored_names = self.settings.ignored_names

    def run(self, input_dir: str | Path, output_dir: str | Path) -> BatchReport:
        report = BatchReport()
        entries = sorted_listing(input_dir)
        count = len(entries)
        for i, entry in enumerate(entries, start=1):
            name = entry.name
            if name in self.ignored_names:
                continue
            prefix = f"{i}/{count}"
            if extension_of(entry) not in self.extensions:
                _logger.info('%s non image "%s"', prefix, name)
                report.skipped_non_image += 1
                metrics.inc("batch.skipped_non_image")
                continue
            destination = output_path_for(entry, output_dir)
            if destination.exists():
                _logger.info('%s skip "%s"', prefix, name)
                report.skipped_existing += 1
                metrics.inc("batch.skipped_existing")
                continue
            try:
                self.process_file(entry, destination, prefix)
            except DecodeError as e:
                _logger.warning('%s error "%s": %s', prefix, name, e.reason or e)
                report.decode_failed += 1
                metrics.inc("batch.decode_failed")
                continue
            except CropError as e:
                _logger.warning('%s fail "%s": %s', prefix, name, e)
                report.no_region += 1
                metrics.inc("batch.no_region")
                continue
            except (OSError, vips_error()) as e:
                # Render, encode or write failed; the next file may still succeed.
                _logger.warning('%s error "%s": %s', prefix, name, e)
                report.write_failed += 1
                metrics.inc("batch.write_failed")
                continue
            report.written.append(destination)
            metrics.inc("batch.written")
        return report

    def process_file(self, source: str | Path, destination: str | Path, prefix: str = "") -> CropJob:
        """Crop one image and write it to `destination`.

        Raises DecodeError or CropError for per-file failures, OSError or a
        pyvips error when rendering or writing fails, and CompositorMismatch
        when a fixed-resolution render has the wrong size.
        """
        source = Path(source)
        destination = Path(destination)
        pixels = load_image(str(source))
        source_res = self.compositor.set_input(pixels)
        _logger.info('%s image "%s" %s', prefix, source.name, source_res)

        horizontal_run = self._detect_run(HORIZONTAL, prefix)
        vertical_run = self._detect_run(VERTICAL, prefix)

        solution = solve_crop_rectangle(horizontal_run, vertical_run, source_res, self.resolution)
        self.compositor.set_canvas_resolution(solution.resolution)
        self.compositor.set_crop_rectangle(solution.rectangle)

        _logger.info("%s will render", prefix)
        out = self.compositor.render(COMPOSITE).result()
        _logger.info("%s did render", prefix)
        self._check_output(out)

        destination.write_bytes(encode_jpeg(out, self.quality))
        return CropJob(
            source=source,
            destination=destination,
            rectangle=solution.rectangle,
            resolution=solution.resolution,
        )

    def _detect_run(self, axis: str, prefix: str) -> Run:
        _logger.info("%s will render %s", prefix, axis)
        raw = self.compositor.render(axis).result()
        _logger.info("%s did render %s", prefix, axis)
        profile = profile_from_raw(raw, self.threshold, axis, channel=self.channel)
        return extract_longest_run(profile, close_trailing=self.close_trailing, axis=axis)

    def _check_output(self, out: np.ndarray) -> None:
        if self.resolution is None:
            return
        height, width = out.shape[:2]
        if (width, height) != self.resolution.size:
            raise CompositorMismatch(self.resolution.size, (int(width), int(height)))
