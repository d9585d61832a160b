import json
import logging

from secscan.history import HistoryStore
from secscan.result import HistoryEntry, SeverityCounts


def make_entry(index, kind="code", passed=True, duration_ms=10, **counts):
    return HistoryEntry(
        id=f"scan_{index}",
        name=f"Scan {index}",
        kind=kind,
        created_at=f"2024-01-01T00:00:{index:02d}+00:00",
        severity_counts=SeverityCounts(**counts),
        policy_passed=passed,
        duration_ms=duration_ms,
    )


def test_history_is_bounded_and_most_recent_first():
    store = HistoryStore(max_entries=3)

    for index in range(5):
        store.append(make_entry(index))

    assert [entry.id for entry in store.list()] == ["scan_4", "scan_3", "scan_2"]
    assert [entry.id for entry in store.list(limit=1)] == ["scan_4"]
    assert len(store) == 3


def test_history_persists_across_instances(tmp_path):
    path = tmp_path / "history.jsonl"
    store = HistoryStore(path)
    store.append(make_entry(1, high=2))
    store.append(make_entry(2, kind="dependencies", passed=False))

    reloaded = HistoryStore(path)

    assert [entry.id for entry in reloaded.list()] == ["scan_2", "scan_1"]
    assert reloaded.list()[1].severity_counts.high == 2
    assert reloaded.list()[0].policy_passed is False


def test_log_file_is_compacted_to_the_bound(tmp_path):
    path = tmp_path / "history.jsonl"
    store = HistoryStore(path, max_entries=2)

    for index in range(5):
        store.append(make_entry(index))

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert [json.loads(line)["id"] for line in lines] == ["scan_3", "scan_4"]
    assert [entry.id for entry in HistoryStore(path, max_entries=2).list()] == ["scan_4", "scan_3"]


def test_unreadable_lines_are_skipped(tmp_path):
    path = tmp_path / "history.jsonl"
    path.write_text("not json\n" + json.dumps(make_entry(7).to_dict()) + "\n", encoding="utf-8")

    store = HistoryStore(path)

    assert [entry.id for entry in store.list()] == ["scan_7"]


def test_clear_empties_memory_and_file(tmp_path):
    path = tmp_path / "history.jsonl"
    store = HistoryStore(path)
    store.append(make_entry(1))

    store.clear()

    assert store.list() == []
    assert path.read_text(encoding="utf-8") == ""


def test_unwritable_log_keeps_entries_in_memory(tmp_path, caplog):
    path = tmp_path / "history.jsonl"
    path.mkdir()

    with caplog.at_level(logging.WARNING, logger="secscan.history"):
        store = HistoryStore(path)
        store.append(make_entry(1))
        store.clear()
        store.append(make_entry(2))

    assert [entry.id for entry in store.list()] == ["scan_2"]
    assert "Cannot read history log" in caplog.text
    assert "Failed to write history entry scan_2" in caplog.text
    assert "Failed to truncate history log" in caplog.text


def test_statistics_aggregate_entries():
    store = HistoryStore()
    store.append(make_entry(1, kind="code", duration_ms=10, critical=1, high=2))
    store.append(make_entry(2, kind="code", passed=False, duration_ms=30, low=4))
    store.append(make_entry(3, kind="dynamic", duration_ms=20, medium=1))

    stats = store.statistics()

    assert stats["totalScans"] == 3
    assert stats["passedScans"] == 2
    assert stats["failedScans"] == 1
    assert stats["totalFindings"] == {"critical": 1, "high": 2, "medium": 1, "low": 4}
    assert stats["averageDurationMs"] == 20
    assert stats["scansByKind"] == {"dynamic": 1, "code": 2}


def test_statistics_on_empty_history():
    stats = HistoryStore().statistics()

    assert stats["totalScans"] == 0
    assert stats["averageDurationMs"] == 0
