"""File-based storage for snapshots, daily history and execution logs.

Every store reads its JSON file in full, changes it in memory and writes it
back in full. Runs are expected to be serialized by the caller (one scheduled
job at a time); concurrent runs against the same directory can lose updates.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path

import polars as pl

from ghrelstats.models import ExecutionLogEntry, HistoryEntry, MetricsSnapshot, ReleaseSummary

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 90
EXECUTION_LOG_LIMIT = 100

HISTORY_SCHEMA = {
    "date": pl.Utf8,
    "timestamp": pl.Utf8,
    "total_releases": pl.Int64,
    "total_downloads": pl.Int64,
    "average_downloads": pl.Int64,
    "latest_name": pl.Utf8,
    "latest_tag_name": pl.Utf8,
    "latest_download_count": pl.Int64,
}

EXECUTION_SCHEMA = {
    "timestamp": pl.Utf8,
    "date": pl.Utf8,
    "success": pl.Boolean,
    "repository": pl.Utf8,
    "total_releases": pl.Int64,
    "total_downloads": pl.Int64,
    "error": pl.Utf8,
}


class PersistenceError(Exception):
    """Raised when a storage artifact cannot be read or written."""


def read_json(path: Path) -> object:
    """Load a JSON file.

    Raises:
        PersistenceError: If the file is missing or not valid JSON.
    """
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise PersistenceError(f"Cannot read {path}: {e}") from e


def write_json(path: Path, data: object) -> None:
    """Write data as indented JSON, creating parent directories.

    Raises:
        PersistenceError: If the file cannot be written.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        raise PersistenceError(f"Cannot write {path}: {e}") from e


def _read_optional_list(path: Path) -> list[dict]:
    """Load a JSON list, treating a missing or unreadable file as empty."""
    if not path.exists():
        return []
    try:
        data = read_json(path)
    except PersistenceError as e:
        logger.warning("Starting a new file: %s", e)
        return []
    if not isinstance(data, list):
        logger.warning("Starting a new file: %s does not hold a list", path)
        return []
    return data


@dataclass
class SavedSnapshot:
    """Files written for one snapshot.

    Attributes:
        latest_file: The "latest" slot, overwritten on every run.
        dated_file: The per-run archive file.
    """

    latest_file: Path
    dated_file: Path


class SnapshotStore:
    """Latest snapshot slot plus a per-run archive of snapshots.

    Attributes:
        data_dir: Directory holding ``latest.json`` and the archive files.
    """

    LATEST_FILE = "latest.json"

    def __init__(self, data_dir: Path):
        self.data_dir = data_dir

    @property
    def latest_path(self) -> Path:
        return self.data_dir / self.LATEST_FILE

    def _dated_path(self, snapshot: MetricsSnapshot) -> Path:
        stamp = snapshot.timestamp[:19].replace(":", "-")
        path = self.data_dir / f"metrics-{stamp}Z.json"
        counter = 1
        while path.exists():
            path = self.data_dir / f"metrics-{stamp}Z-{counter}.json"
            counter += 1
        return path

    def save(self, snapshot: MetricsSnapshot) -> SavedSnapshot:
        """Write the snapshot to a new archive file and the latest slot.

        Args:
            snapshot: Snapshot to persist.

        Returns:
            Paths of the files written.
        """
        data = snapshot.to_dict()
        dated_file = self._dated_path(snapshot)
        write_json(dated_file, data)
        write_json(self.latest_path, data)
        return SavedSnapshot(latest_file=self.latest_path, dated_file=dated_file)

    def load_latest(self) -> MetricsSnapshot:
        """Load the most recent snapshot.

        Raises:
            PersistenceError: If no usable latest snapshot exists.
        """
        data = read_json(self.latest_path)
        try:
            return MetricsSnapshot.from_dict(data)
        except (KeyError, TypeError, AttributeError) as e:
            raise PersistenceError(f"Malformed snapshot in {self.latest_path}: {e}") from e


class HistoryStore:
    """Per-day history of condensed snapshots.

    Holds at most one entry per date, newest first, limited to the most
    recent ``limit`` dates.

    Attributes:
        path: Path to ``history.json``.
        limit: Maximum number of entries kept.
    """

    def __init__(self, path: Path, limit: int = HISTORY_LIMIT):
        self.path = path
        self.limit = limit

    @staticmethod
    def _to_frame(entries: list[HistoryEntry]) -> pl.DataFrame:
        rows = [
            {
                "date": e.date,
                "timestamp": e.timestamp,
                "total_releases": e.total_releases,
                "total_downloads": e.total_downloads,
                "average_downloads": e.average_downloads,
                "latest_name": e.latest_release.name if e.latest_release else None,
                "latest_tag_name": e.latest_release.tag_name if e.latest_release else None,
                "latest_download_count": (
                    e.latest_release.download_count if e.latest_release else None
                ),
            }
            for e in entries
        ]
        return pl.DataFrame(rows, schema=HISTORY_SCHEMA)

    @staticmethod
    def _from_frame(df: pl.DataFrame) -> list[HistoryEntry]:
        entries = []
        for row in df.iter_rows(named=True):
            latest = None
            if row["latest_download_count"] is not None:
                latest = ReleaseSummary(
                    name=row["latest_name"] or "",
                    tag_name=row["latest_tag_name"] or "",
                    download_count=row["latest_download_count"],
                )
            entries.append(
                HistoryEntry(
                    date=row["date"],
                    timestamp=row["timestamp"] or "",
                    total_releases=row["total_releases"] or 0,
                    total_downloads=row["total_downloads"] or 0,
                    average_downloads=row["average_downloads"] or 0,
                    latest_release=latest,
                )
            )
        return entries

    def read(self) -> list[HistoryEntry]:
        """Load history, or an empty list when there is none yet."""
        entries = []
        for item in _read_optional_list(self.path):
            try:
                entries.append(HistoryEntry.from_dict(item))
            except (KeyError, TypeError, AttributeError):
                logger.warning("Skipping malformed history entry: %r", item)
        return entries

    def write(self, entries: list[HistoryEntry]) -> None:
        write_json(self.path, [e.to_dict() for e in entries])

    def merge(self, entry: HistoryEntry) -> list[HistoryEntry]:
        """Insert or replace the entry for its date.

        Any existing entries for the same date are dropped, the new entry is
        added, and the result is sorted newest first and cut to ``limit``.

        Args:
            entry: Condensed record for one run.

        Returns:
            The history as written.
        """
        existing_df = self._to_frame(self.read())

        merged_df = (
            existing_df.filter(pl.col("date") != entry.date)
            .vstack(self._to_frame([entry]))
            .sort("date", descending=True, maintain_order=True)
            .head(self.limit)
        )

        entries = self._from_frame(merged_df)
        self.write(entries)
        return entries


class ExecutionLog:
    """Bounded JSON log of collection runs plus unbounded daily text logs.

    Attributes:
        logs_dir: Directory holding ``executions.json`` and the text logs.
        limit: Maximum number of runs kept in ``executions.json``.
    """

    JSON_FILE = "executions.json"

    def __init__(self, logs_dir: Path, limit: int = EXECUTION_LOG_LIMIT):
        self.logs_dir = logs_dir
        self.limit = limit

    @property
    def json_path(self) -> Path:
        return self.logs_dir / self.JSON_FILE

    @staticmethod
    def _to_frame(entries: list[ExecutionLogEntry]) -> pl.DataFrame:
        rows = [
            {
                "timestamp": e.timestamp,
                "date": e.date,
                "success": e.success,
                "repository": e.repository,
                "total_releases": e.total_releases,
                "total_downloads": e.total_downloads,
                "error": e.error,
            }
            for e in entries
        ]
        return pl.DataFrame(rows, schema=EXECUTION_SCHEMA)

    @staticmethod
    def _from_frame(df: pl.DataFrame) -> list[ExecutionLogEntry]:
        return [
            ExecutionLogEntry(
                timestamp=row["timestamp"],
                date=row["date"],
                success=bool(row["success"]),
                repository=row["repository"] or "",
                total_releases=row["total_releases"] or 0,
                total_downloads=row["total_downloads"] or 0,
                error=row["error"],
            )
            for row in df.iter_rows(named=True)
        ]

    def text_log_path(self, date: str) -> Path:
        """Plain-text log file for a calendar day."""
        return self.logs_dir / f"execution-{date}.log"

    def read(self) -> list[ExecutionLogEntry]:
        """Load logged runs, newest first, or an empty list."""
        entries = []
        for item in _read_optional_list(self.json_path):
            try:
                entries.append(ExecutionLogEntry.from_dict(item))
            except (KeyError, TypeError, AttributeError):
                logger.warning("Skipping malformed execution entry: %r", item)
        return entries

    def _append_text(self, entry: ExecutionLogEntry) -> Path:
        path = self.text_log_path(entry.date)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "a", encoding="utf-8") as f:
                f.write(entry.to_log_line())
        except OSError as e:
            raise PersistenceError(f"Cannot write {path}: {e}") from e
        return path

    def append(self, entry: ExecutionLogEntry) -> list[ExecutionLogEntry]:
        """Record one run.

        The entry is added to the JSON log, which is re-sorted newest first
        (ties keep their order) and cut to ``limit``. A line is also appended
        to the day's text log, which is never truncated.

        Args:
            entry: Record of the run.

        Returns:
            The JSON log as written.
        """
        self._append_text(entry)

        log_df = (
            self._to_frame([*self.read(), entry])
            .sort("timestamp", descending=True, maintain_order=True)
            .head(self.limit)
        )

        entries = self._from_frame(log_df)
        write_json(self.json_path, [e.to_dict() for e in entries])
        return entries
