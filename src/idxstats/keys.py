"""Index key decoding.

Every index key starts with a one-byte type tag followed by a big-endian
field; the value stored under a key is a packed list of 4-byte packet
offsets.

  tag 1  protocol  1 byte   -> int 0..255
  tag 2  port      2 bytes  -> int 0..65535
  tag 4  ipv4      4 bytes  -> dotted-quad string
  tag 6  ipv6     16 bytes  -> compressed colon-form string

Other tags (including the version record, tag 0) are not metrics.
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from enum import Enum
from typing import Final

from idxstats.errors import MalformedKey

# Width of one packet reference inside an index value.
PACKET_REF_WIDTH: Final[int] = 4

TAG_PROTOCOL: Final[int] = 1
TAG_PORT: Final[int] = 2
TAG_IPV4: Final[int] = 4
TAG_IPV6: Final[int] = 6


class Category(str, Enum):
    PROTOCOL = "protocol"
    PORT = "port"
    IPV4 = "ipv4"
    IPV6 = "ipv6"


# tag -> (category, field width in bytes)
_LAYOUT: Final[dict[int, tuple[Category, int]]] = {
    TAG_PROTOCOL: (Category.PROTOCOL, 1),
    TAG_PORT: (Category.PORT, 2),
    TAG_IPV4: (Category.IPV4, 4),
    TAG_IPV6: (Category.IPV6, 16),
}


@dataclass(frozen=True)
class DecodedMetric:
    category: Category
    value: int | str
    weight: int


def ipv6_text(packed: bytes) -> str:
    """Compressed colon form; IPv4-mapped addresses keep a dotted-quad tail
    (``::ffff:1.2.3.4``) whatever the interpreter version.
    """
    addr = ipaddress.IPv6Address(packed)
    mapped = addr.ipv4_mapped
    if mapped is not None:
        return f"::ffff:{mapped}"
    return str(addr)


def packet_weight(value_len: int) -> int:
    if value_len < 0:
        raise ValueError(f"negative value length: {value_len}")
    return value_len // PACKET_REF_WIDTH


def decode_key(key: bytes, value_len: int) -> DecodedMetric | None:
    """Decode one index key.

    Returns None for tags that are not metrics. Raises MalformedKey when the
    key is empty or shorter than its tag requires; trailing bytes are ignored.
    """
    if not key:
        raise MalformedKey("empty key")

    layout = _LAYOUT.get(key[0])
    if layout is None:
        return None
    category, width = layout

    if len(key) < 1 + width:
        raise MalformedKey(
            f"{category.value} key needs {1 + width} bytes, got {len(key)}: {bytes(key).hex()}"
        )
    field = bytes(key[1:1 + width])
    weight = packet_weight(value_len)

    if category is Category.PROTOCOL:
        return DecodedMetric(category, field[0], weight)
    if category is Category.PORT:
        return DecodedMetric(category, int.from_bytes(field, "big"), weight)
    if category is Category.IPV4:
        return DecodedMetric(category, str(ipaddress.IPv4Address(field)), weight)
    return DecodedMetric(category, ipv6_text(field), weight)
