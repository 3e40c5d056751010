"""Typed errors for idxstats.

Single source of truth for exit codes lives here.

Policy:
- Errors are small and boring.
- The CLI maps errors to stable exit codes (see EXIT_* constants).
- docs/exit_codes.md is generated from this module (`python -m idxstats.errors`).
- Per-file and per-record errors never reach the CLI: the scanner absorbs them.
"""

from __future__ import annotations

from dataclasses import dataclass

# -------------------------
# Exit codes (single source)
# -------------------------

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_GENERIC = 10
EXIT_MISSING_RESOURCE = 12


@dataclass(frozen=True, slots=True)
class ExitCodeInfo:
    code: int
    name: str
    description: str


EXIT_CODES: tuple[ExitCodeInfo, ...] = (
    ExitCodeInfo(EXIT_OK, "OK", "Success (aggregate printed on stdout)"),
    ExitCodeInfo(EXIT_USAGE, "USAGE", "Usage error (invalid folder/timestamp/worker arguments)"),
    ExitCodeInfo(EXIT_GENERIC, "GENERIC", "Generic failure (unexpected error)"),
    ExitCodeInfo(
        EXIT_MISSING_RESOURCE,
        "MISSING_RESOURCE",
        "Missing required resource (unreadable index folder, missing codec module)",
    ),
)

_EXIT_CODE_BY_CODE: dict[int, ExitCodeInfo] = {e.code: e for e in EXIT_CODES}


def exit_code_info(code: int) -> ExitCodeInfo | None:
    return _EXIT_CODE_BY_CODE.get(int(code))


def render_exit_codes_markdown() -> str:
    """Render docs/exit_codes.md content."""
    lines: list[str] = []
    lines.append("# Exit codes\n")
    lines.append("> GENERATED FILE - do not edit manually.\n")
    lines.append("> Source of truth: `src/idxstats/errors.py` (EXIT_CODES).\n")
    lines.append("> Regenerate: `python -m idxstats.errors > docs/exit_codes.md`.\n\n")
    lines.append("These are the CLI exit codes you can rely on.\n\n")
    lines.append("| Code | Name | Meaning |\n")
    lines.append("|---:|---|---|\n")
    for e in sorted(EXIT_CODES, key=lambda x: x.code):
        lines.append(f"| {e.code} | `{e.name}` | {e.description} |\n")
    lines.append("\n## Notes\n")
    lines.append("- Most internal errors extend `IdxStatsError` and carry an `exit_code`.\n")
    lines.append("- `--debug` re-raises errors to show full stack traces.\n")
    lines.append(
        "- Corrupt or version-mismatched index files are skipped silently; "
        "use `--report` to see how many.\n"
    )
    return "".join(lines)


# ---------------
# Typed exceptions
# ---------------


class IdxStatsError(Exception):
    """Base error for idxstats."""

    exit_code: int = EXIT_GENERIC


class UsageError(IdxStatsError):
    exit_code = EXIT_USAGE


class CorruptPayload(IdxStatsError):
    exit_code = EXIT_GENERIC


class CorruptTable(CorruptPayload):
    """Structural damage in a table file (footer, handle, block, varint)."""


class BadMagic(CorruptTable):
    pass


class MalformedKey(CorruptPayload):
    """Index key too short for the width its type tag requires."""


class UnsupportedVersion(IdxStatsError):
    """Index written by an incompatible format version; the file is skipped."""


class MissingResource(IdxStatsError):
    exit_code = EXIT_MISSING_RESOURCE


if __name__ == "__main__":
    import sys

    sys.stdout.write(render_exit_codes_markdown())
