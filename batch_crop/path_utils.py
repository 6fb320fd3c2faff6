"""Path normalization utilities.

- `~/` is expanded; relative paths resolve against the current directory.
- Output files are named after the source stem with a `.jpg` suffix.
"""

from __future__ import annotations

from pathlib import Path

OUTPUT_SUFFIX = ".jpg"


def abs_path(path: str | Path) -> Path:
    """Return an absolute path without requiring that it exists."""
    p = Path(path).expanduser()
    try:
        # strict=False avoids exceptions for non-existent paths.
        return p.resolve(strict=False)
    except OSError:
        return p.absolute()


def output_path_for(source: str | Path, output_dir: str | Path) -> Path:
    """Destination for `source` inside `output_dir`: `<stem>.jpg`."""
    return Path(output_dir) / f"{Path(source).stem}{OUTPUT_SUFFIX}"


def extension_of(path: str | Path) -> str:
    """Lower-cased extension without the dot ("" when there is none)."""
    return Path(path).suffix.lower().lstrip(".")


def sorted_listing(folder: str | Path) -> list[Path]:
    """Entries of `folder`, sorted lexicographically by name."""
    return sorted(Path(folder).iterdir(), key=lambda p: p.name)
