from __future__ import annotations

import json
import threading

from idxstats.aggregate import AggregateMetrics, MetricsSnapshot
from idxstats.keys import decode_key
from idxstats.render import render_metrics, render_summary, summary_dict


def _sample(order: int) -> AggregateMetrics:
    m = AggregateMetrics()
    ops = [
        lambda: m.add_protocol(17, 5),
        lambda: m.add_protocol(6, 25),
        lambda: m.add_port(443, 50),
        lambda: m.add_port(80, 125),
        lambda: m.add_ipv4("192.168.1.1", 25),
        lambda: m.add_ipv6("::1", 50),
        lambda: m.add_size(3072),
    ]
    if order:
        ops.reverse()
    for op in ops:
        op()
    return m


def test_render_shape_and_numeric_order() -> None:
    line = render_metrics(_sample(0))
    assert line == (
        '{"totalSize":3072,'
        '"protocols":{"6":25,"17":5},'
        '"ports":{"80":125,"443":50},'
        '"ipv4":{"192.168.1.1":25},'
        '"ipv6":{"::1":50}}'
    )
    assert "\n" not in line
    obj = json.loads(line)
    assert list(obj.keys()) == ["totalSize", "protocols", "ports", "ipv4", "ipv6"]


def test_render_is_insertion_order_independent() -> None:
    assert render_metrics(_sample(0)) == render_metrics(_sample(1))


def test_addresses_sort_by_binary_value() -> None:
    snap = MetricsSnapshot(
        ipv4={"10.0.0.10": 1, "10.0.0.9": 2, "9.255.255.255": 3, "192.168.0.1": 4},
        ipv6={"2001:db8::10": 1, "::1": 2, "2001:db8::9": 3, "fe80::1": 4, "::": 5},
    )
    d = summary_dict(snap)
    assert list(d["ipv4"]) == ["9.255.255.255", "10.0.0.9", "10.0.0.10", "192.168.0.1"]
    assert list(d["ipv6"]) == ["::", "::1", "2001:db8::9", "2001:db8::10", "fe80::1"]


def test_ipv4_mapped_ipv6_key_renders_as_decoded() -> None:
    m = AggregateMetrics()
    mapped = decode_key(bytes([6]) + bytes(10) + b"\xff\xff\x01\x02\x03\x04", 12)
    assert mapped is not None
    m.add_ipv6(mapped.value, mapped.weight)
    m.add_ipv6("2001:db8::1", 1)
    m.add_ipv6("::1", 2)
    assert render_metrics(m) == (
        '{"totalSize":0,"protocols":{},"ports":{},"ipv4":{},'
        '"ipv6":{"::1":2,"::ffff:1.2.3.4":3,"2001:db8::1":1}}'
    )


def test_ports_sort_numerically_not_lexically() -> None:
    snap = MetricsSnapshot(ports={8080: 1, 22: 1, 443: 1, 3: 1}, protocols={132: 1, 1: 1, 58: 1})
    d = summary_dict(snap)
    assert list(d["ports"]) == ["3", "22", "443", "8080"]
    assert list(d["protocols"]) == ["1", "58", "132"]


def test_empty_aggregate() -> None:
    assert render_summary(MetricsSnapshot()) == (
        '{"totalSize":0,"protocols":{},"ports":{},"ipv4":{},"ipv6":{}}'
    )


def test_concurrent_insertion_renders_identically() -> None:
    def _fill(m: AggregateMetrics, seed: int) -> None:
        keys = list(range(200))
        # every thread adds the same multiset, in a thread-specific order
        keys = keys[seed:] + keys[:seed]
        for k in keys:
            m.add_port(k, 1)
            m.add_ipv4(f"10.0.{k // 256}.{k % 256}", 2)

    outs = []
    for _ in range(2):
        m = AggregateMetrics()
        threads = [threading.Thread(target=_fill, args=(m, s * 17)) for s in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        outs.append(render_metrics(m).encode("utf-8"))
    assert outs[0] == outs[1]
