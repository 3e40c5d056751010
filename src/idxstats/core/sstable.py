from __future__ import annotations

"""Read-only LevelDB table reader.

The capture indexer writes one LevelDB table per time window. We only ever
read them: there is no writer, no compaction, no block compressor here.

Layout:
  [data block 0][trailer]...[data block N-1][trailer]
  [metaindex block][trailer][index block][trailer][FOOTER]

FOOTER (fixed 48 bytes):
  metaindex handle  varint64 offset + varint64 size
  index handle      varint64 offset + varint64 size
  padding           zeros up to 40 bytes
  magic             8B  uint64 little endian 0xdb4775248b80fb57

Block:
  entries  repeated (varint shared, varint non_shared, varint value_len,
           key[shared:], value)
  restarts uint32 little endian, one per restart point
  count    uint32 little endian

Trailer (5 bytes after every block): compression type (1B) + crc32c (4B).
The checksum is not verified.

Index block entries map a separator key (>= every key of the block) to the
block handle of a data block, so blocks are found with a bisect.
"""

import bisect
import os
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional, Tuple

from idxstats.core.block_codecs import decompress_block
from idxstats.errors import BadMagic, CorruptTable

TABLE_MAGIC = 0xDB4775248B80FB57
FOOTER_LEN = 48
BLOCK_TRAILER_LEN = 5


def _dec_varint(buf: bytes, idx: int, *, limit: Optional[int] = None) -> Tuple[int, int]:
    end = len(buf) if limit is None else limit
    shift = 0
    x = 0
    while True:
        if idx >= end:
            raise CorruptTable("truncated varint")
        b = buf[idx]
        idx += 1
        x |= (b & 0x7F) << shift
        if (b & 0x80) == 0:
            break
        shift += 7
        if shift > 63:
            raise CorruptTable("varint too large")
    return x, idx


@dataclass(frozen=True)
class BlockHandle:
    offset: int
    size: int

    @classmethod
    def decode(cls, buf: bytes, idx: int = 0) -> Tuple["BlockHandle", int]:
        off, idx = _dec_varint(buf, idx)
        size, idx = _dec_varint(buf, idx)
        return cls(offset=off, size=size), idx


def decode_block(data: bytes) -> List[Tuple[bytes, bytes]]:
    """Decode every (key, value) entry of a raw (decompressed) block."""
    if len(data) < 4:
        raise CorruptTable("block too short for restart count")
    (num_restarts,) = struct.unpack_from("<I", data, len(data) - 4)
    limit = len(data) - 4 - 4 * num_restarts
    if limit < 0:
        raise CorruptTable(f"bad restart count: {num_restarts}")

    entries: List[Tuple[bytes, bytes]] = []
    prev = b""
    idx = 0
    while idx < limit:
        shared, idx = _dec_varint(data, idx, limit=limit)
        non_shared, idx = _dec_varint(data, idx, limit=limit)
        value_len, idx = _dec_varint(data, idx, limit=limit)
        if shared > len(prev):
            raise CorruptTable("shared key prefix longer than previous key")
        if idx + non_shared + value_len > limit:
            raise CorruptTable("block entry overruns block")
        key = prev[:shared] + data[idx:idx + non_shared]
        idx += non_shared
        value = data[idx:idx + value_len]
        idx += value_len
        entries.append((key, value))
        prev = key
    return entries


class TableReader:
    """Point lookups and ordered iteration over one LevelDB table file.

    Not thread-safe: open one reader per worker.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._fp: BinaryIO = self.path.open("rb")
        try:
            self._size = os.fstat(self._fp.fileno()).st_size
            index_handle = self._read_footer()
            index = decode_block(self._read_block(index_handle))
            self._index_keys: List[bytes] = [k for k, _ in index]
            self._index_handles: List[BlockHandle] = [BlockHandle.decode(v)[0] for _, v in index]
        except Exception:
            self._fp.close()
            raise

    def close(self) -> None:
        self._fp.close()

    def __enter__(self) -> "TableReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --- low level ---

    def _read_footer(self) -> BlockHandle:
        if self._size < FOOTER_LEN:
            raise CorruptTable(f"file too short for a table footer: {self.path}")
        self._fp.seek(self._size - FOOTER_LEN)
        footer = self._fp.read(FOOTER_LEN)
        if len(footer) != FOOTER_LEN:
            raise CorruptTable(f"short read on table footer: {self.path}")
        (magic,) = struct.unpack_from("<Q", footer, FOOTER_LEN - 8)
        if magic != TABLE_MAGIC:
            raise BadMagic(f"bad table magic {magic:#018x}: {self.path}")
        _metaindex, idx = BlockHandle.decode(footer, 0)
        index, _ = BlockHandle.decode(footer, idx)
        return index

    def _read_block(self, handle: BlockHandle) -> bytes:
        end = handle.offset + handle.size + BLOCK_TRAILER_LEN
        if end > self._size - FOOTER_LEN:
            raise CorruptTable(f"block handle out of range ({handle}): {self.path}")
        self._fp.seek(handle.offset)
        raw = self._fp.read(handle.size + BLOCK_TRAILER_LEN)
        if len(raw) != handle.size + BLOCK_TRAILER_LEN:
            raise CorruptTable(f"short read on block {handle}: {self.path}")
        return decompress_block(raw[handle.size], raw[:handle.size])

    def _data_block(self, i: int) -> List[Tuple[bytes, bytes]]:
        return decode_block(self._read_block(self._index_handles[i]))

    # --- public API ---

    def get(self, key: bytes) -> Optional[bytes]:
        """Return the value stored under ``key`` or None if absent."""
        key = bytes(key)
        i = bisect.bisect_left(self._index_keys, key)
        if i >= len(self._index_keys):
            return None
        entries = self._data_block(i)
        keys = [k for k, _ in entries]
        j = bisect.bisect_left(keys, key)
        if j < len(keys) and keys[j] == key:
            return entries[j][1]
        return None

    def iterate(self, start: bytes = b"", end: Optional[bytes] = None) -> Iterator[Tuple[bytes, bytes]]:
        """Yield (key, value) for start <= key < end, in ascending byte order."""
        start = bytes(start)
        first = bisect.bisect_left(self._index_keys, start)
        for i in range(first, len(self._index_handles)):
            for k, v in self._data_block(i):
                if k < start:
                    continue
                if end is not None and k >= end:
                    return
                yield k, v
