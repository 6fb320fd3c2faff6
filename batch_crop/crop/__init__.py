"""Crop detection public API.

Pure-backend helpers: projection profiles, run extraction and the crop
rectangle solver. Nothing here touches files or the render engine.
"""

from batch_crop.crop.profile import (
    HORIZONTAL,
    VERTICAL,
    ProjectionProfile,
    horizontal_profile,
    profile_from_raw,
    vertical_profile,
)
from batch_crop.crop.runs import Run, extract_longest_run, find_runs
from batch_crop.crop.solver import (
    AUTO,
    AxisSpan,
    CropRectangle,
    CropSolution,
    Resolution,
    normalize_run,
    solve_crop_rectangle,
)

__all__ = [
    "AUTO",
    "HORIZONTAL",
    "VERTICAL",
    "AxisSpan",
    "CropRectangle",
    "CropSolution",
    "ProjectionProfile",
    "Resolution",
    "Run",
    "extract_longest_run",
    "find_runs",
    "horizontal_profile",
    "normalize_run",
    "profile_from_raw",
    "solve_crop_rectangle",
    "vertical_profile",
]
