"""idxstats CLI.

This is the stable CLI entrypoint (console-script: ``idxstats``).

  idxstats FOLDER [START END] [--workers N] [--report] [--debug]

UX policy:
  - stdout carries exactly one line: the aggregate JSON.
  - diagnostics go to stderr, prefixed with ``[idxstats]``.
  - corrupt index files are skipped silently; --report shows the counts.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from idxstats.aggregate import AggregateMetrics
from idxstats.coordinator import list_index_candidates, run_scan
from idxstats.errors import EXIT_GENERIC, IdxStatsError
from idxstats.render import render_metrics
from idxstats.scan_config import DEFAULT_WORKERS, ScanConfig


def _pkg_version() -> str:
    try:
        from importlib.metadata import PackageNotFoundError, version

        try:
            return version("idxstats")
        except PackageNotFoundError:
            # script invoked from source, or metadata missing
            return "0+unknown"
    except Exception:
        return "0+unknown"


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="idxstats",
        description="Summarize protocol/port/address counts of a capture index folder",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {_pkg_version()}")
    p.add_argument("folder", type=Path, help="Index folder (.../IDX0); captures are read from .../PKT0")
    p.add_argument("start", nargs="?", default=None, help="Window start, 10-digit unix timestamp")
    p.add_argument("end", nargs="?", default=None, help="Window end, 10-digit unix timestamp")
    p.add_argument(
        "--workers",
        type=int,
        default=DEFAULT_WORKERS,
        help=f"Parallel scan workers (default: {DEFAULT_WORKERS})",
    )
    p.add_argument(
        "--report",
        action="store_true",
        help="Print a JSON scan report (files scanned/skipped) to stderr",
    )
    p.add_argument("--debug", action="store_true", help="Show stack traces on errors")
    return p


def _run(ns: argparse.Namespace) -> int:
    config = ScanConfig.build(ns.folder, start=ns.start, end=ns.end, workers=ns.workers)
    names = list_index_candidates(config.index_folder)

    metrics = AggregateMetrics()
    report = run_scan(names, config, metrics)

    print(render_metrics(metrics))
    if ns.report:
        print(json.dumps(report.to_dict(), ensure_ascii=False, sort_keys=True), file=sys.stderr)
    return 0


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    p = build_parser()
    ns = p.parse_args(argv)

    try:
        return _run(ns)
    except SystemExit:
        raise
    except IdxStatsError as e:
        if getattr(ns, "debug", False):
            raise
        print(f"[idxstats] {e}", file=sys.stderr)
        return int(getattr(e, "exit_code", EXIT_GENERIC) or EXIT_GENERIC)
    except Exception as e:
        if getattr(ns, "debug", False):
            raise
        print(f"[idxstats] error: {e}", file=sys.stderr)
        return EXIT_GENERIC


if __name__ == "__main__":
    raise SystemExit(main())
