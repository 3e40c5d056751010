from __future__ import annotations

import ipaddress
import json
from typing import Any, Dict

from idxstats.aggregate import AggregateMetrics, MetricsSnapshot


def _numeric_section(counts: Dict[int, int]) -> Dict[str, int]:
    return {str(k): int(counts[k]) for k in sorted(counts)}


def _ipv4_section(counts: Dict[str, int]) -> Dict[str, int]:
    ordered = sorted(counts, key=lambda s: int(ipaddress.IPv4Address(s)))
    return {s: int(counts[s]) for s in ordered}


def _ipv6_section(counts: Dict[str, int]) -> Dict[str, int]:
    ordered = sorted(counts, key=lambda s: int(ipaddress.IPv6Address(s)))
    return {s: int(counts[s]) for s in ordered}


def summary_dict(snap: MetricsSnapshot) -> Dict[str, Any]:
    # Keep key order stable: dicts are emitted in insertion order, never sort_keys
    # (that would put "17" before "6").
    return {
        "totalSize": int(snap.total_size),
        "protocols": _numeric_section(snap.protocols),
        "ports": _numeric_section(snap.ports),
        "ipv4": _ipv4_section(snap.ipv4),
        "ipv6": _ipv6_section(snap.ipv6),
    }


def render_summary(snap: MetricsSnapshot) -> str:
    """One-line JSON; identical state always renders to identical bytes."""
    return json.dumps(summary_dict(snap), ensure_ascii=False, separators=(",", ":"))


def render_metrics(metrics: AggregateMetrics) -> str:
    return render_summary(metrics.snapshot())
