from __future__ import annotations

import sys
from pathlib import Path

CHECKS = (
    "test_low_level_modules_never_import_orchestration",
    "test_core_reader_is_self_contained",
)


def main() -> int:
    """Run the layering checks without pytest (pre-commit friendly)."""
    repo_root = Path(__file__).resolve().parents[1]
    test_path = repo_root / "tests" / "test_arch_boundaries.py"
    if not test_path.is_file():
        print("ERROR: tests/test_arch_boundaries.py not found.", file=sys.stderr)
        return 3

    ns: dict[str, object] = {"__file__": str(test_path), "__name__": "arch_boundaries"}
    try:
        exec(compile(test_path.read_text(encoding="utf-8"), str(test_path), "exec"), ns, ns)
    except Exception as e:
        print(f"ERROR: cannot load checks: {e}", file=sys.stderr)
        return 3

    failed = 0
    for name in CHECKS:
        fn = ns.get(name)
        if not callable(fn):
            print(f"ERROR: {name} not found.", file=sys.stderr)
            return 3
        try:
            fn()
        except AssertionError as e:
            failed += 1
            print(str(e), file=sys.stderr)

    if failed:
        return 2
    print("OK: architecture boundaries respected.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
