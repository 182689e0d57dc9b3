"""Time-series persistence for rate history and the decision log."""

import json
import os
import shutil
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Protocol

from yield_optimizer.constants import DATA_DIR_ENV, DATA_DIR_NAME

Record = dict[str, Any]


def get_data_dir() -> Path:
    """Get the data directory path.

    Uses $YIELD_OPTIMIZER_DATA_DIR if set, else XDG_DATA_HOME if available, otherwise ~/.local/share.
    """
    override = os.getenv(DATA_DIR_ENV)
    if override:
        data_dir = Path(override)
    else:
        data_home = os.getenv("XDG_DATA_HOME")
        base = Path(data_home) if data_home else Path.home() / ".local" / "share"
        data_dir = base / DATA_DIR_NAME
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def clear_data() -> None:
    """Remove all stored rate history and decision logs."""
    data_dir = get_data_dir()
    if any(data_dir.iterdir()):
        shutil.rmtree(data_dir)
        print("✅ Rate history and decision log cleared.", file=sys.stderr)
    else:
        print("ℹ️  Data directory is empty (nothing to clear).", file=sys.stderr)


def _timestamp(record: Record) -> int | None:
    ts = record.get("timestamp") if isinstance(record, dict) else None
    if isinstance(ts, bool) or not isinstance(ts, int):
        return None
    return ts


def _in_window(records: Iterable[Record], start_ms: int | None, end_ms: int | None) -> list[Record]:
    out = []
    for record in records:
        ts = _timestamp(record)
        if ts is None:
            continue
        if start_ms is not None and ts < start_ms:
            continue
        if end_ms is not None and ts > end_ms:
            continue
        out.append(record)
    return out


class TimeSeriesStore(Protocol):
    """Append-only store of timestamped records (`timestamp` is ms since epoch)."""

    def append(self, records: Iterable[Record]) -> None: ...

    def query_window(self, start_ms: int | None = None, end_ms: int | None = None) -> list[Record]:
        """Records with start_ms <= timestamp <= end_ms, in insertion order. Either bound may be None."""


class MemoryStore:
    """In-process store. Keeps the most recent `max_entries` records when capped."""

    def __init__(self, max_entries: int | None = None):
        self.max_entries = max_entries
        self._records: list[Record] = []

    def append(self, records: Iterable[Record]) -> None:
        self._records.extend(dict(r) for r in records)
        if self.max_entries is not None and len(self._records) > self.max_entries:
            self._records = self._records[-self.max_entries :]

    def query_window(self, start_ms: int | None = None, end_ms: int | None = None) -> list[Record]:
        return _in_window(self._records, start_ms, end_ms)

    def __len__(self) -> int:
        return len(self._records)


class JsonArrayStore:
    """Capped store persisted as a single JSON array, rewritten on every append.

    A missing or corrupt file reads as empty.
    """

    def __init__(self, path: Path | str, max_entries: int | None = None):
        self.path = Path(path)
        self.max_entries = max_entries

    def _load(self) -> list[Record]:
        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except Exception:  # pylint: disable=broad-exception-caught
            # Corrupt history is treated as empty
            return []
        if not isinstance(data, list):
            return []
        return [r for r in data if isinstance(r, dict)]

    def append(self, records: Iterable[Record]) -> None:
        data = self._load()
        data.extend(dict(r) for r in records)
        if self.max_entries is not None and len(data) > self.max_entries:
            data = data[-self.max_entries :]
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=None, separators=(",", ":"))
        tmp.replace(self.path)

    def query_window(self, start_ms: int | None = None, end_ms: int | None = None) -> list[Record]:
        return _in_window(self._load(), start_ms, end_ms)


class JsonLinesStore:
    """Uncapped append-only store, one JSON object per line. Corrupt lines are skipped on read."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def append(self, records: Iterable[Record]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            for record in records:
                f.write(json.dumps(record, ensure_ascii=False, separators=(",", ":")) + "\n")

    def _load(self) -> list[Record]:
        if not self.path.exists():
            return []
        out = []
        with self.path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if isinstance(record, dict):
                    out.append(record)
        return out

    def query_window(self, start_ms: int | None = None, end_ms: int | None = None) -> list[Record]:
        return _in_window(self._load(), start_ms, end_ms)
