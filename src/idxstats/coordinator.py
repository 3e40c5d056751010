"""Fan a directory of index files out to a fixed pool of scan workers.

Shape of a run:
  - one bounded queue of filenames (capacity 2 x workers)
  - exactly `workers` worker loops on a ThreadPoolExecutor
  - the producer blocks on queue.join() until every filename was marked
    done, then sends one sentinel per worker and leaves the executor, so no
    worker outlives run_scan()

Results are order-independent (the aggregate only ever adds), so no
ordering is imposed between files.
"""

from __future__ import annotations

import os
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable

from idxstats.aggregate import AggregateMetrics
from idxstats.errors import MissingResource
from idxstats.file_filter import accept_filename
from idxstats.scan_config import ScanConfig
from idxstats.scanner import FileScanResult, ScanOutcome, scan_index_file

REPORT_SCHEMA = "idxstats.scan_report.v1"

_STOP = object()


def list_index_candidates(folder: Path) -> list[str]:
    """Entry names of the index folder, sorted. Filtering happens in the workers."""
    try:
        with os.scandir(folder) as it:
            return sorted(e.name for e in it)
    except OSError as e:
        raise MissingResource(f"cannot read index folder {folder}: {e}") from e


@dataclass
class ScanReport:
    candidates: int = 0
    outcomes: dict[str, int] = field(default_factory=lambda: {o.value: 0 for o in ScanOutcome})
    records: int = 0
    skipped_records: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, res: FileScanResult) -> None:
        with self._lock:
            self.outcomes[res.outcome.value] += 1
            self.records += res.records
            self.skipped_records += res.skipped_records

    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            return {
                "schema": REPORT_SCHEMA,
                "candidates": self.candidates,
                "files": dict(self.outcomes),
                "records": self.records,
                "skipped_records": self.skipped_records,
            }


def _process_one(name: str, config: ScanConfig, metrics: AggregateMetrics) -> FileScanResult:
    if not accept_filename(name, config.window):
        return FileScanResult(name=name, outcome=ScanOutcome.FILTERED)
    return scan_index_file(name, config, metrics)


def run_scan(
    names: Iterable[str],
    config: ScanConfig,
    metrics: AggregateMetrics,
    *,
    on_result: Callable[[FileScanResult], None] | None = None,
) -> ScanReport:
    """Scan every candidate into ``metrics`` and block until all are done.

    The first unexpected worker error is re-raised after the barrier;
    remaining filenames are drained without being scanned.
    """
    workers = max(1, int(config.workers))
    tasks: queue.Queue = queue.Queue(maxsize=2 * workers)
    report = ScanReport()
    abort = threading.Event()
    errors: list[BaseException] = []
    errors_lock = threading.Lock()

    def _worker() -> None:
        while True:
            name = tasks.get()
            try:
                if name is _STOP:
                    return
                if abort.is_set():
                    continue
                try:
                    res = _process_one(name, config, metrics)
                    report.record(res)
                    if on_result is not None:
                        on_result(res)
                except Exception as e:
                    with errors_lock:
                        errors.append(e)
                    abort.set()
            finally:
                tasks.task_done()

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="idxstats-scan") as ex:
        futs = [ex.submit(_worker) for _ in range(workers)]
        try:
            for name in names:
                report.candidates += 1
                tasks.put(name)
            tasks.join()
        finally:
            for _ in futs:
                tasks.put(_STOP)
    for fut in futs:
        fut.result()

    if errors:
        raise errors[0]
    return report
