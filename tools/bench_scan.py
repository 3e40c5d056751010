#!/usr/bin/env python3
"""Scan benchmark/soak tool.

Runs a full scan of an index folder once per worker count, collecting wall
time and peak RSS, and checks every run renders the same aggregate.

Usage example:
  python tools/bench_scan.py /data/sensor1/IDX0 --workers 1,4,16 --iters 3
  python tools/bench_scan.py /data/sensor1/IDX0 1700000000 1700003600

Notes:
- Uses internal APIs (no subprocess). Run inside repo venv.
"""

from __future__ import annotations

import argparse
import hashlib
import json
import resource
import time
from pathlib import Path
from typing import Any


def _peak_rss_kb() -> int:
    # Linux: ru_maxrss is KB
    return int(resource.getrusage(resource.RUSAGE_SELF).ru_maxrss)


def _parse_workers(raw: str) -> list[int]:
    out = [int(x) for x in raw.split(",") if x.strip()]
    if not out or any(w < 1 for w in out):
        raise SystemExit(f"invalid --workers list: {raw!r}")
    return out


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(prog="bench_scan.py", description="idxstats scan benchmark")
    ap.add_argument("folder", type=Path)
    ap.add_argument("start", nargs="?", default=None)
    ap.add_argument("end", nargs="?", default=None)
    ap.add_argument("--workers", default="1,4,10", help="Comma-separated worker counts")
    ap.add_argument("--iters", type=int, default=1)
    ns = ap.parse_args(argv)

    from idxstats.aggregate import AggregateMetrics
    from idxstats.coordinator import list_index_candidates, run_scan
    from idxstats.render import render_metrics
    from idxstats.scan_config import ScanConfig

    names = list_index_candidates(ns.folder)

    rows: list[dict[str, Any]] = []
    digests: set[str] = set()
    t0_all = time.perf_counter()

    for workers in _parse_workers(ns.workers):
        config = ScanConfig.build(ns.folder, start=ns.start, end=ns.end, workers=workers)
        for i in range(int(ns.iters)):
            metrics = AggregateMetrics()
            t0 = time.perf_counter()
            report = run_scan(names, config, metrics)
            t_scan = time.perf_counter() - t0

            t1 = time.perf_counter()
            line = render_metrics(metrics)
            t_render = time.perf_counter() - t1

            digest = hashlib.sha256(line.encode("utf-8")).hexdigest()
            digests.add(digest)

            row = {
                "iter": i + 1,
                "workers": workers,
                "times_sec": {"scan": t_scan, "render": t_render, "total": t_scan + t_render},
                "peak_rss_kb": _peak_rss_kb(),
                "report": report.to_dict(),
                "output_sha256": digest,
            }
            rows.append(row)
            print(json.dumps(row, ensure_ascii=False))

    summary = {
        "schema": "idxstats.bench_scan.v1",
        "runs": len(rows),
        "wall_total_sec": time.perf_counter() - t0_all,
        "max_peak_rss_kb": max((r["peak_rss_kb"] for r in rows), default=0),
        "deterministic": len(digests) <= 1,
    }
    print(json.dumps(summary, ensure_ascii=False))
    if len(digests) > 1:
        raise SystemExit("output mismatch across worker counts")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
