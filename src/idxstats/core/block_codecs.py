from __future__ import annotations

from idxstats.errors import CorruptTable, MissingResource

try:
    import snappy  # type: ignore
except Exception:  # pragma: no cover
    snappy = None

try:
    import zstandard as zstd  # type: ignore
except Exception:  # pragma: no cover
    zstd = None

# Block trailer compression type byte, as written by LevelDB table builders.
NO_COMPRESSION = 0
SNAPPY_COMPRESSION = 1
ZSTD_COMPRESSION = 2


def _require_snappy() -> None:
    if snappy is None:
        raise MissingResource(
            "Module 'snappy' not available. Install with: python3 -m pip install python-snappy"
        )


def _require_zstd() -> None:
    if zstd is None:
        raise MissingResource(
            "Module 'zstandard' not available. Install with: python3 -m pip install zstandard"
        )


def decompress_block(ctype: int, data: bytes) -> bytes:
    """Return the raw contents of one table block.

    Only the read side exists: blocks are never compressed here.
    """
    if ctype == NO_COMPRESSION:
        return bytes(data)

    if ctype == SNAPPY_COMPRESSION:
        _require_snappy()
        try:
            return snappy.uncompress(bytes(data))
        except Exception as e:
            raise CorruptTable(f"snappy block: {e}") from e

    if ctype == ZSTD_COMPRESSION:
        _require_zstd()
        # LevelDB may omit the content size in the frame header: stream it.
        try:
            return zstd.ZstdDecompressor().decompressobj().decompress(bytes(data))
        except zstd.ZstdError as e:
            raise CorruptTable(f"zstd block: {e}") from e

    raise CorruptTable(f"unknown block compression type: {ctype}")
