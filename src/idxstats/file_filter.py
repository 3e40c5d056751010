from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

# Index files are named <10-digit epoch seconds><6 more digits>.
_INDEX_NAME_RE: Final[re.Pattern[str]] = re.compile(r"[0-9]{16}")

# Files starting up to a minute outside the window may still hold packets inside it.
WINDOW_SLACK_SECONDS: Final[int] = 60


@dataclass(frozen=True)
class TimeWindow:
    start: int
    end: int

    def contains(self, ts: int) -> bool:
        return self.start - WINDOW_SLACK_SECONDS <= ts <= self.end + WINDOW_SLACK_SECONDS


def is_index_filename(name: str) -> bool:
    return _INDEX_NAME_RE.fullmatch(name) is not None


def filename_epoch(name: str) -> int:
    return int(name[:10])


def accept_filename(name: str, window: TimeWindow | None = None) -> bool:
    """Decide whether an index file should be opened at all."""
    if not is_index_filename(name):
        return False
    if window is None:
        return True
    return window.contains(filename_epoch(name))
