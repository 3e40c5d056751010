from __future__ import annotations

import subprocess
import sys
from pathlib import Path

from idxstats import errors
from idxstats.scan_config import ScanConfigError

DOC = Path(__file__).resolve().parents[1] / "docs" / "exit_codes.md"


def test_exit_codes_doc_is_up_to_date() -> None:
    assert DOC.read_text(encoding="utf-8") == errors.render_exit_codes_markdown(), (
        "docs/exit_codes.md is stale: run python -m idxstats.errors > docs/exit_codes.md"
    )


def test_module_entrypoint_prints_the_doc() -> None:
    r = subprocess.run(
        [sys.executable, "-m", "idxstats.errors"],
        text=True,
        capture_output=True,
    )
    assert r.returncode == 0, r.stderr
    assert r.stdout == DOC.read_text(encoding="utf-8")


def test_exception_exit_codes() -> None:
    assert errors.UsageError.exit_code == errors.EXIT_USAGE
    assert issubclass(ScanConfigError, errors.UsageError)
    assert issubclass(ScanConfigError, ValueError)
    assert errors.MissingResource.exit_code == errors.EXIT_MISSING_RESOURCE
    for exc in (errors.CorruptTable, errors.BadMagic, errors.MalformedKey):
        assert issubclass(exc, errors.CorruptPayload)
        assert exc.exit_code == errors.EXIT_GENERIC


def test_every_exit_code_is_reachable_from_the_cli() -> None:
    # Version mismatches only ever skip a file, so they have no exit code.
    codes = {e.code for e in errors.EXIT_CODES}
    assert codes == {0, 2, 10, 12}
    assert errors.exit_code_info(12).name == "MISSING_RESOURCE"
    assert errors.exit_code_info(11) is None
    assert errors.UnsupportedVersion.exit_code == errors.EXIT_GENERIC
