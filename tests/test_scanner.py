from __future__ import annotations

from pathlib import Path

from table_fixtures import build_table, index_entries, offsets, write_table

from idxstats.aggregate import AggregateMetrics, MetricsSnapshot
from idxstats.scan_config import ScanConfig
from idxstats.scanner import ScanOutcome, scan_index_file

NAME = "1700000000000001"


def _config(tmp_path: Path) -> ScanConfig:
    (tmp_path / "IDX0").mkdir(exist_ok=True)
    (tmp_path / "PKT0").mkdir(exist_ok=True)
    return ScanConfig.build(tmp_path / "IDX0", workers=1)


def test_scan_well_formed_file(tmp_path: Path) -> None:
    cfg = _config(tmp_path)
    write_table(
        cfg.index_folder / NAME,
        index_entries(
            protocols={6: 3, 17: 1},
            ports={80: 2, 443: 5},
            ipv4={"192.168.1.1": 4},
            ipv6={"2001:db8::1": 5},
        ),
    )
    (cfg.data_folder / NAME).write_bytes(b"\x00" * 1500)

    m = AggregateMetrics()
    res = scan_index_file(NAME, cfg, m)

    assert res.outcome is ScanOutcome.SCANNED
    assert res.records == 6
    assert res.skipped_records == 1  # the version record itself
    assert res.size_added == 1500
    assert m.snapshot() == MetricsSnapshot(
        protocols={6: 3, 17: 1},
        ports={80: 2, 443: 5},
        ipv4={"192.168.1.1": 4},
        ipv6={"2001:db8::1": 5},
        total_size=1500,
    )


def test_missing_companion_file_adds_no_size(tmp_path: Path) -> None:
    cfg = _config(tmp_path)
    write_table(cfg.index_folder / NAME, index_entries(protocols={6: 2}))

    m = AggregateMetrics()
    res = scan_index_file(NAME, cfg, m)

    assert res.outcome is ScanOutcome.SCANNED
    assert res.size_added == 0
    assert m.snapshot() == MetricsSnapshot(protocols={6: 2})


def test_version_record_violations_skip_the_file(tmp_path: Path) -> None:
    cfg = _config(tmp_path)
    bad = {
        "1700000000000010": index_entries(protocols={6: 2}, major=None),
        "1700000000000011": index_entries(protocols={6: 2}, major=3),
        "1700000000000012": {**index_entries(protocols={6: 2}), b"\x00": b"\x00\x00\x00\x02"},
        "1700000000000013": {**index_entries(protocols={6: 2}), b"\x00": bytes(9)},
    }
    for name, entries in bad.items():
        write_table(cfg.index_folder / name, entries)
        (cfg.data_folder / name).write_bytes(b"x" * 100)

    m = AggregateMetrics()
    for name in bad:
        res = scan_index_file(name, cfg, m)
        assert res.outcome is ScanOutcome.BAD_VERSION, (name, res)
    assert m.snapshot() == MetricsSnapshot()


def test_unopenable_files_are_skipped(tmp_path: Path) -> None:
    cfg = _config(tmp_path)
    (cfg.index_folder / "1700000000000020").write_bytes(b"not a table at all, just text " * 4)

    m = AggregateMetrics()
    assert scan_index_file("1700000000000020", cfg, m).outcome is ScanOutcome.OPEN_FAILED
    assert scan_index_file("1700000000000021", cfg, m).outcome is ScanOutcome.OPEN_FAILED
    assert m.snapshot() == MetricsSnapshot()


def test_bad_records_are_skipped_individually(tmp_path: Path) -> None:
    cfg = _config(tmp_path)
    entries = index_entries(protocols={6: 1}, ports={22: 2})
    entries[bytes([4, 10, 0])] = offsets(9)  # truncated ipv4
    entries[bytes([6]) + bytes(8)] = offsets(9)  # truncated ipv6
    entries[bytes([9, 9, 9])] = offsets(9)  # unknown tag
    entries[bytes([1, 17])] = b"\x00" * 13  # 13 bytes -> weight 3
    write_table(cfg.index_folder / NAME, entries)

    m = AggregateMetrics()
    res = scan_index_file(NAME, cfg, m)

    assert res.outcome is ScanOutcome.SCANNED
    assert res.records == 3
    assert res.skipped_records == 4
    assert m.snapshot() == MetricsSnapshot(protocols={6: 1, 17: 3}, ports={22: 2})


def test_corruption_mid_iteration_contributes_nothing(tmp_path: Path) -> None:
    from idxstats.core.sstable import TableReader

    cfg = _config(tmp_path)
    path = cfg.index_folder / NAME
    blob = bytearray(build_table(index_entries(ports={p: 1 for p in range(1, 400)}), block_size=128))
    path.write_bytes(bytes(blob))

    # The version record sits in the first data block; break the compression
    # byte of the last one so only the full iteration fails.
    with TableReader(path) as r:
        last = r._index_handles[-1]
        assert len(r._index_handles) > 2
    blob[last.offset + last.size] = 0x7F
    path.write_bytes(bytes(blob))
    (cfg.data_folder / NAME).write_bytes(b"x" * 10)

    m = AggregateMetrics()
    res = scan_index_file(NAME, cfg, m)

    assert res.outcome is ScanOutcome.CORRUPT
    assert m.snapshot() == MetricsSnapshot()
