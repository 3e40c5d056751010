from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict


@dataclass(frozen=True)
class MetricsSnapshot:
    """Point-in-time copy of an AggregateMetrics, safe to read without locks."""

    protocols: Dict[int, int] = field(default_factory=dict)
    ports: Dict[int, int] = field(default_factory=dict)
    ipv4: Dict[str, int] = field(default_factory=dict)
    ipv6: Dict[str, int] = field(default_factory=dict)
    total_size: int = 0


def _check_non_negative(what: str, n: int) -> int:
    n = int(n)
    if n < 0:
        raise ValueError(f"{what} must be >= 0, got {n}")
    return n


class AggregateMetrics:
    """Run-wide counters shared by all scan workers.

    One lock per mapping (and one for the size), so workers updating
    different categories never contend. snapshot() takes all of them, always
    in the same order, which excludes every writer while it copies.
    """

    def __init__(self) -> None:
        self._protocols: Dict[int, int] = {}
        self._ports: Dict[int, int] = {}
        self._ipv4: Dict[str, int] = {}
        self._ipv6: Dict[str, int] = {}
        self._total_size = 0

        self._protocols_lock = threading.Lock()
        self._ports_lock = threading.Lock()
        self._ipv4_lock = threading.Lock()
        self._ipv6_lock = threading.Lock()
        self._size_lock = threading.Lock()

    # --- writers ---

    def add_protocol(self, proto: int, weight: int) -> None:
        w = _check_non_negative("weight", weight)
        with self._protocols_lock:
            self._protocols[int(proto)] = self._protocols.get(int(proto), 0) + w

    def add_port(self, port: int, weight: int) -> None:
        w = _check_non_negative("weight", weight)
        with self._ports_lock:
            self._ports[int(port)] = self._ports.get(int(port), 0) + w

    def add_ipv4(self, address: str, weight: int) -> None:
        w = _check_non_negative("weight", weight)
        with self._ipv4_lock:
            self._ipv4[address] = self._ipv4.get(address, 0) + w

    def add_ipv6(self, address: str, weight: int) -> None:
        w = _check_non_negative("weight", weight)
        with self._ipv6_lock:
            self._ipv6[address] = self._ipv6.get(address, 0) + w

    def add_size(self, nbytes: int) -> None:
        n = _check_non_negative("size", nbytes)
        with self._size_lock:
            self._total_size += n

    # --- reader ---

    def snapshot(self) -> MetricsSnapshot:
        with self._protocols_lock, self._ports_lock, self._ipv4_lock, self._ipv6_lock, self._size_lock:
            return MetricsSnapshot(
                protocols=dict(self._protocols),
                ports=dict(self._ports),
                ipv4=dict(self._ipv4),
                ipv6=dict(self._ipv6),
                total_size=self._total_size,
            )
