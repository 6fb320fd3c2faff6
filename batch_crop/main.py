import argparse
import os
import sys
from pathlib import Path

from batch_crop.batch import BatchDriver
from batch_crop.crop.solver import AUTO, Resolution
from batch_crop.errors import CompositorMismatch, ConfigError
from batch_crop.image_engine.compositor import Compositor
from batch_crop.image_engine.metrics import metrics
from batch_crop.logger import get_logger, setup_logger
from batch_crop.path_utils import abs_path
from batch_crop.settings_manager import SettingsManager

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_MISMATCH = 2

USAGE = "batch-crop <threshold> <resolution> <input-folder> <output-folder>"

_logger = get_logger("main")


def parse_threshold(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise ConfigError('threshold format: "0.5"') from None
    if not 0.0 <= value <= 1.0:
        raise ConfigError('threshold format: "0.5"')
    return value


def parse_resolution(text: str) -> Resolution | None:
    if text == "auto":
        return AUTO
    parts = text.split("x")
    try:
        if len(parts) != 2:
            raise ValueError(text)
        return Resolution(int(parts[0]), int(parts[1]))
    except ValueError:
        raise ConfigError('resolution format: "1000x1000" or "auto"') from None


def prepare_folders(input_arg: str, output_arg: str) -> tuple[Path, Path]:
    input_dir = abs_path(input_arg)
    if not input_dir.is_dir():
        raise ConfigError(f"input needs to be a folder\n{input_dir}")
    output_dir = abs_path(output_arg)
    if output_dir.exists():
        if not output_dir.is_dir():
            raise ConfigError(f"output needs to be a folder\n{output_dir}")
    else:
        output_dir.mkdir(parents=True, exist_ok=True)
    return input_dir, output_dir


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="batch-crop", usage=USAGE, description="Auto-crop a folder of images")
    parser.add_argument("--log-level", help="Set log level")
    parser.add_argument("--log-cats", help="Set log categories")
    parser.add_argument("--settings", help="Path to a JSON settings file")
    parser.add_argument("threshold")
    parser.add_argument("resolution")
    parser.add_argument("input_folder")
    parser.add_argument("output_folder")
    return parser


def run(argv: list[str] | None = None) -> int:
    """Command line entrypoint. Returns the process exit code."""
    if argv is None:
        argv = sys.argv[1:]

    parser = _build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # argparse already printed usage; normalize its exit code.
        return EXIT_OK if e.code == 0 else EXIT_FAILURE

    # Reflect logging options into the environment, then refresh the logger.
    if args.log_level:
        os.environ["BATCH_CROP_LOG_LEVEL"] = args.log_level
    if args.log_cats:
        os.environ["BATCH_CROP_LOG_CATS"] = args.log_cats
    setup_logger()

    try:
        threshold = parse_threshold(args.threshold)
        resolution = parse_resolution(args.resolution)
        input_dir, output_dir = prepare_folders(args.input_folder, args.output_folder)
        settings = SettingsManager(args.settings or os.getenv("BATCH_CROP_SETTINGS"))
        with Compositor(fill_color=settings.background_rgb) as compositor:
            driver = BatchDriver(compositor, threshold, resolution, settings)
            report = driver.run(input_dir, output_dir)
    except ConfigError as e:
        print(USAGE, file=sys.stderr)
        print(e, file=sys.stderr)
        return EXIT_FAILURE
    except CompositorMismatch as e:
        _logger.critical("%s", e)
        return EXIT_MISMATCH

    _logger.info(
        "written=%d existing=%d non_image=%d failed=%d",
        len(report.written),
        report.skipped_existing,
        report.skipped_non_image,
        report.failed,
    )
    _logger.debug("metrics: %s", metrics.summary())
    _logger.info("done!")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(run())
