"""Scan one index file into the run aggregate.

Policy (per file):
  - unopenable / structurally broken table   -> skip file (open_failed)
  - missing, short or mismatched version     -> skip file (bad_version)
  - corruption discovered while iterating    -> skip file (corrupt)
  - unknown tag / truncated key              -> skip record, keep going

A file contributes to the aggregate only once it has been read to the end:
weights are tallied locally first and committed afterwards, together with
the size of the companion capture file.
"""

from __future__ import annotations

import os
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Final

from idxstats.aggregate import AggregateMetrics
from idxstats.core.sstable import TableReader
from idxstats.errors import CorruptPayload, MalformedKey, UnsupportedVersion
from idxstats.keys import Category, decode_key
from idxstats.scan_config import ScanConfig

MAJOR_VERSION: Final[int] = 2
VERSION_KEY: Final[bytes] = b"\x00"
VERSION_RECORD_LEN: Final[int] = 8


class ScanOutcome(str, Enum):
    SCANNED = "scanned"
    FILTERED = "filtered"
    OPEN_FAILED = "open_failed"
    BAD_VERSION = "bad_version"
    CORRUPT = "corrupt"


@dataclass(frozen=True)
class FileScanResult:
    name: str
    outcome: ScanOutcome
    records: int = 0
    skipped_records: int = 0
    size_added: int = 0
    detail: str = ""


@dataclass
class _FileTally:
    counts: dict[Category, Counter] = field(
        default_factory=lambda: {c: Counter() for c in Category}
    )
    records: int = 0
    skipped: int = 0


def check_version_record(raw: bytes | None) -> int:
    """Validate the version record and return its major version."""
    if raw is None:
        raise CorruptPayload("missing versions record")
    if len(raw) != VERSION_RECORD_LEN:
        raise CorruptPayload(f"invalid versions record: {bytes(raw).hex()}")
    major = int.from_bytes(raw[:4], "big")
    if major != MAJOR_VERSION:
        raise UnsupportedVersion(f"version mismatch, want {MAJOR_VERSION} got {major}")
    return major


def _tally_records(reader: TableReader) -> _FileTally:
    tally = _FileTally()
    for key, value in reader.iterate():
        try:
            metric = decode_key(key, len(value))
        except MalformedKey:
            tally.skipped += 1
            continue
        if metric is None:
            tally.skipped += 1
            continue
        tally.counts[metric.category][metric.value] += metric.weight
        tally.records += 1
    return tally


def _commit(tally: _FileTally, metrics: AggregateMetrics) -> None:
    adders = {
        Category.PROTOCOL: metrics.add_protocol,
        Category.PORT: metrics.add_port,
        Category.IPV4: metrics.add_ipv4,
        Category.IPV6: metrics.add_ipv6,
    }
    for category, counts in tally.counts.items():
        add = adders[category]
        for value, weight in counts.items():
            add(value, weight)


def companion_size(config: ScanConfig, name: str) -> int:
    """Size of the capture file paired with an index file, 0 if it can't be stat'd."""
    try:
        return int(os.stat(config.data_folder / name).st_size)
    except OSError:
        return 0


def scan_index_file(name: str, config: ScanConfig, metrics: AggregateMetrics) -> FileScanResult:
    path = config.index_folder / name

    try:
        reader = TableReader(path)
    except (OSError, CorruptPayload) as e:
        return FileScanResult(name=name, outcome=ScanOutcome.OPEN_FAILED, detail=str(e))

    with reader:
        try:
            check_version_record(reader.get(VERSION_KEY))
        except (CorruptPayload, UnsupportedVersion) as e:
            return FileScanResult(name=name, outcome=ScanOutcome.BAD_VERSION, detail=str(e))
        except OSError as e:
            return FileScanResult(name=name, outcome=ScanOutcome.OPEN_FAILED, detail=str(e))

        try:
            tally = _tally_records(reader)
        except (OSError, CorruptPayload) as e:
            return FileScanResult(name=name, outcome=ScanOutcome.CORRUPT, detail=str(e))

    _commit(tally, metrics)
    size = companion_size(config, name)
    if size:
        metrics.add_size(size)

    return FileScanResult(
        name=name,
        outcome=ScanOutcome.SCANNED,
        records=tally.records,
        skipped_records=tally.skipped,
        size_added=size,
    )
