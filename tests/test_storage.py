"""Tests for storage module."""

import json
from datetime import date, timedelta
from pathlib import Path

import pytest

from ghrelstats.models import ExecutionLogEntry, HistoryEntry, MetricsSnapshot, ReleaseSummary
from ghrelstats.storage import (
    ExecutionLog,
    HistoryStore,
    PersistenceError,
    SnapshotStore,
)


def _history_entry(day: date, downloads: int = 100) -> HistoryEntry:
    return HistoryEntry(
        date=day.isoformat(),
        timestamp=f"{day.isoformat()}T12:00:00.000Z",
        total_releases=3,
        total_downloads=downloads,
        average_downloads=downloads // 3,
        latest_release=ReleaseSummary("Release v1", "v1", downloads),
    )


def _execution(timestamp: str, success: bool = True, error: str | None = None) -> ExecutionLogEntry:
    return ExecutionLogEntry(
        timestamp=timestamp,
        date=timestamp[:10],
        success=success,
        repository="octo/tool",
        total_releases=3,
        total_downloads=200,
        error=error,
    )


class TestHistoryStore:
    """Tests for HistoryStore class."""

    def test_read_missing_file(self, tmp_path: Path) -> None:
        """Test reading a non-existent history returns an empty list."""
        store = HistoryStore(tmp_path / "history.json")

        assert store.read() == []

    def test_read_corrupt_file(self, tmp_path: Path) -> None:
        """Test an unreadable history is treated as empty."""
        path = tmp_path / "history.json"
        path.write_text("{not json")

        assert HistoryStore(path).read() == []

    def test_merge_into_empty_store(self, tmp_path: Path) -> None:
        """Test merging creates the file."""
        store = HistoryStore(tmp_path / "history.json")

        entries = store.merge(_history_entry(date(2024, 1, 1)))

        assert len(entries) == 1
        assert store.path.exists()
        assert store.read() == entries

    def test_merge_replaces_same_date(self, tmp_path: Path) -> None:
        """Test a second run on the same day replaces that day's entry."""
        store = HistoryStore(tmp_path / "history.json")
        store.merge(_history_entry(date(2024, 1, 1), downloads=100))
        store.merge(_history_entry(date(2024, 1, 2), downloads=150))

        entries = store.merge(_history_entry(date(2024, 1, 2), downloads=175))

        assert len(entries) == 2
        assert entries[0].date == "2024-01-02"
        assert entries[0].total_downloads == 175

    def test_merge_removes_duplicate_dates(self, tmp_path: Path) -> None:
        """Test every stored entry for the merged date is dropped."""
        path = tmp_path / "history.json"
        duplicate = _history_entry(date(2024, 1, 1)).to_dict()
        path.write_text(json.dumps([duplicate, duplicate]))

        entries = HistoryStore(path).merge(_history_entry(date(2024, 1, 1), downloads=999))

        assert [e.total_downloads for e in entries] == [999]

    def test_merge_keeps_90_newest_dates(self, tmp_path: Path) -> None:
        """Test merging 91 dates evicts the oldest and sorts newest first."""
        store = HistoryStore(tmp_path / "history.json")
        start = date(2024, 1, 1)

        for offset in range(91):
            entries = store.merge(_history_entry(start + timedelta(days=offset)))

        assert len(entries) == 90
        dates = [e.date for e in entries]
        assert dates == sorted(dates, reverse=True)
        assert start.isoformat() not in dates
        assert dates[0] == (start + timedelta(days=90)).isoformat()
        assert len(store.read()) == 90

    def test_merge_out_of_order_date(self, tmp_path: Path) -> None:
        """Test an older date is placed by date, not by insertion."""
        store = HistoryStore(tmp_path / "history.json")
        store.merge(_history_entry(date(2024, 1, 3)))
        store.merge(_history_entry(date(2024, 1, 1)))

        entries = store.merge(_history_entry(date(2024, 1, 2)))

        assert [e.date for e in entries] == ["2024-01-03", "2024-01-02", "2024-01-01"]

    def test_entry_without_latest_release(self, tmp_path: Path, empty_snapshot: MetricsSnapshot) -> None:
        """Test a history entry for a repository without releases."""
        store = HistoryStore(tmp_path / "history.json")

        store.merge(HistoryEntry.from_snapshot(empty_snapshot))

        stored = json.loads(store.path.read_text())
        assert stored[0]["latestRelease"] is None
        assert store.read()[0].latest_release is None

    def test_from_snapshot(self, snapshot: MetricsSnapshot) -> None:
        """Test condensing a snapshot."""
        entry = HistoryEntry.from_snapshot(snapshot)

        assert entry.date == "2024-03-05"
        assert entry.total_downloads == 200
        assert entry.average_downloads == 67
        assert entry.latest_release == ReleaseSummary("Release v1.2.0", "v1.2.0", 80)


class TestExecutionLog:
    """Tests for ExecutionLog class."""

    def test_read_missing_file(self, tmp_path: Path) -> None:
        """Test reading a non-existent log returns an empty list."""
        assert ExecutionLog(tmp_path / "logs").read() == []

    def test_append_keeps_every_run_of_a_day(self, tmp_path: Path) -> None:
        """Test several runs on one day are all kept, newest first."""
        log = ExecutionLog(tmp_path / "logs")
        log.append(_execution("2024-01-01T08:00:00.000Z"))
        log.append(_execution("2024-01-01T12:00:00.000Z", success=False, error="boom"))

        entries = log.append(_execution("2024-01-01T10:00:00.000Z"))

        assert [e.timestamp[11:16] for e in entries] == ["12:00", "10:00", "08:00"]
        assert entries[0].success is False
        assert entries[0].error == "boom"

    def test_append_keeps_100_newest(self, tmp_path: Path) -> None:
        """Test the JSON log is capped at 100 runs."""
        log = ExecutionLog(tmp_path / "logs")
        start = date(2024, 1, 1)

        for offset in range(105):
            day = start + timedelta(days=offset)
            entries = log.append(_execution(f"{day.isoformat()}T06:00:00.000Z"))

        assert len(entries) == 100
        assert entries[0].date == (start + timedelta(days=104)).isoformat()
        assert entries[-1].date == (start + timedelta(days=5)).isoformat()
        assert len(json.loads(log.json_path.read_text())) == 100

    def test_text_log_is_appended(self, tmp_path: Path) -> None:
        """Test one text line per run in the day's log file."""
        log = ExecutionLog(tmp_path / "logs")
        log.append(_execution("2024-01-01T08:00:00.000Z"))
        log.append(_execution("2024-01-01T09:00:00.000Z", success=False, error="timeout"))

        lines = log.text_log_path("2024-01-01").read_text().splitlines()

        assert lines == [
            "2024-01-01T08:00:00.000Z | SUCCESS | Releases: 3 | Downloads: 200",
            "2024-01-01T09:00:00.000Z | ERROR | Releases: 3 | Downloads: 200 | Error: timeout",
        ]

    def test_entry_for_failed_run_without_snapshot(self) -> None:
        """Test a failed run before aggregation logs zero counts."""
        entry = ExecutionLogEntry.for_run("octo/tool", None, RuntimeError("network down"))

        assert entry.success is False
        assert entry.total_releases == 0
        assert entry.total_downloads == 0
        assert entry.error == "network down"
        assert entry.date == entry.timestamp[:10]

    def test_entry_for_successful_run(self, snapshot: MetricsSnapshot) -> None:
        """Test a successful run copies the snapshot counts."""
        entry = ExecutionLogEntry.for_run("octo/tool", snapshot)

        assert entry.success is True
        assert entry.total_releases == 3
        assert entry.total_downloads == 200
        assert entry.error is None


class TestSnapshotStore:
    """Tests for SnapshotStore class."""

    def test_save_writes_latest_and_archive(self, tmp_path: Path, snapshot: MetricsSnapshot) -> None:
        """Test saving writes both the latest slot and a dated file."""
        store = SnapshotStore(tmp_path / "data")

        saved = store.save(snapshot)

        assert saved.latest_file.name == "latest.json"
        assert saved.dated_file.name == "metrics-2024-03-05T12-30-00Z.json"
        assert json.loads(saved.dated_file.read_text()) == json.loads(saved.latest_file.read_text())

    def test_archive_is_never_overwritten(self, tmp_path: Path, snapshot: MetricsSnapshot) -> None:
        """Test two saves with the same timestamp produce two archive files."""
        store = SnapshotStore(tmp_path / "data")

        first = store.save(snapshot)
        second = store.save(snapshot)

        assert first.dated_file != second.dated_file
        assert first.dated_file.exists()
        assert second.dated_file.exists()

    def test_load_latest(self, tmp_path: Path, snapshot: MetricsSnapshot) -> None:
        """Test the latest snapshot loads back."""
        store = SnapshotStore(tmp_path / "data")
        store.save(snapshot)

        assert store.load_latest() == snapshot

    def test_load_latest_missing(self, tmp_path: Path) -> None:
        """Test a missing latest snapshot is an error."""
        with pytest.raises(PersistenceError):
            SnapshotStore(tmp_path / "data").load_latest()
