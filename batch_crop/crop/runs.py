from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from batch_crop.errors import NoDominantRegion


@dataclass(frozen=True, slots=True)
class Run:
    """Half-open index range [start, end) of consecutive True values."""

    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start

    @property
    def length(self) -> int:
        return self.end - self.start


def find_runs(values: Iterable[bool], close_trailing: bool = False) -> list[Run]:
    """Return every maximal True run in scan order.

    A run that is still open when the scan reaches the end of the sequence is
    dropped unless `close_trailing` is set.
    """
    runs: list[Run] = []
    open_start: int | None = None
    count = 0
    for i, value in enumerate(values):
        count = i + 1
        if value:
            if open_start is None:
                open_start = i
        elif open_start is not None:
            runs.append(Run(open_start, i))
            open_start = None
    if close_trailing and open_start is not None:
        runs.append(Run(open_start, count))
    return runs


def extract_longest_run(values: Iterable[bool], close_trailing: bool = False, axis: str | None = None) -> Run:
    """Select the longest run; ties go to the earliest one.

    Raises NoDominantRegion when the sequence holds no closed run.
    """
    runs = find_runs(values, close_trailing=close_trailing)
    if not runs:
        raise NoDominantRegion(axis)
    # sorted() is stable, so equal lengths keep scan order.
    return sorted(runs, key=lambda r: r.length, reverse=True)[0]
