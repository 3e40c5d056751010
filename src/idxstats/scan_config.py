"""Scan configuration for one idxstats run.

This module intentionally stays *small* and strict:
  - built once from CLI arguments, frozen afterwards
  - timestamps are exactly 10 ASCII digits
  - both window bounds or neither
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from idxstats.errors import UsageError
from idxstats.file_filter import TimeWindow

DEFAULT_WORKERS = 10

# The capture tree keeps index files under .../IDX0/ and raw captures under .../PKT0/.
INDEX_DIR_TOKEN = "IDX0"
DATA_DIR_TOKEN = "PKT0"

_TIMESTAMP_RE = re.compile(r"[0-9]{10}")


class ScanConfigError(UsageError, ValueError):
    pass


def parse_timestamp_arg(raw: str, *, name: str = "timestamp") -> int:
    s = str(raw)
    if _TIMESTAMP_RE.fullmatch(s) is None:
        raise ScanConfigError(f"{name}: expected 10-digit unix timestamp, got {s!r}")
    return int(s)


def derive_data_folder(index_folder: Path | str) -> Path:
    """Sibling capture folder: first IDX0 in the path becomes PKT0."""
    return Path(str(index_folder).replace(INDEX_DIR_TOKEN, DATA_DIR_TOKEN, 1))


@dataclass(frozen=True)
class ScanConfig:
    """Immutable, shared by every worker."""

    index_folder: Path
    data_folder: Path
    window: TimeWindow | None = None
    workers: int = DEFAULT_WORKERS

    @classmethod
    def build(
        cls,
        index_folder: Path | str,
        *,
        start: str | int | None = None,
        end: str | int | None = None,
        workers: int = DEFAULT_WORKERS,
    ) -> "ScanConfig":
        folder = str(index_folder)
        if not folder.strip():
            raise ScanConfigError("folder: empty path")

        if (start is None) != (end is None):
            raise ScanConfigError("window: give both start and end timestamps, or neither")

        window = None
        if start is not None and end is not None:
            s = parse_timestamp_arg(str(start), name="start")
            e = parse_timestamp_arg(str(end), name="end")
            if e <= s:
                raise ScanConfigError("window: start timestamp needs to be smaller than end timestamp")
            window = TimeWindow(start=s, end=e)

        try:
            w = int(workers)
        except (TypeError, ValueError) as err:
            raise ScanConfigError(f"workers: not an integer: {workers!r}") from err
        if w < 1:
            raise ScanConfigError(f"workers: must be >= 1, got {w}")

        return cls(
            index_folder=Path(folder),
            data_folder=derive_data_folder(folder),
            window=window,
            workers=w,
        )
