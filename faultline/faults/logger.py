"""
Faultline - Fault log writer.

Appends one JSON line per shutdown to a log destination. Each append
takes an exclusive ``fcntl`` lock on the destination for the duration of
the write, so processes sharing a file never interleave partial lines.
"""

from __future__ import annotations

import fcntl
import json
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from .core import FaultRecord
from .errors import LogWriteError
from .ledger import LedgerSnapshot


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(frozen=True)
class LogRecord:
    """One persisted log line."""
    terminal: bool
    entries: tuple[FaultRecord, ...]
    counts: dict[str, int] = field(default_factory=dict)
    timestamp: Optional[str] = None
    extra_data: Optional[dict[str, Any]] = None

    @classmethod
    def from_snapshot(
        cls,
        snapshot: LedgerSnapshot,
        *,
        terminal: bool,
        timestamp: Optional[str] = None,
        extra_data: Optional[dict[str, Any]] = None,
    ) -> LogRecord:
        return cls(
            terminal=terminal,
            entries=snapshot.records,
            counts=snapshot.counts_dict(),
            timestamp=timestamp,
            extra_data=dict(extra_data) if extra_data else None,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "timestamp": self.timestamp or _now_iso(),
            "terminal": self.terminal,
            "counts": self.counts,
        }
        if self.extra_data is not None:
            data["data"] = self.extra_data
        data["log"] = [entry.to_dict() for entry in self.entries]
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


def check_writable(destination: str | os.PathLike) -> Path:
    """
    Fail fast unless ``destination`` can be appended to.

    A missing file is created when its directory is writable.

    Raises:
        LogWriteError: If the destination is a directory, its parent is
            missing, or permissions deny writing
    """
    path = Path(destination)
    if path.is_dir():
        raise LogWriteError(str(path), "is a directory")
    if not path.parent.is_dir():
        raise LogWriteError(str(path), "parent directory does not exist")
    try:
        with open(path, "a", encoding="utf-8"):
            pass
    except OSError as e:
        raise LogWriteError(str(path), e.strerror or str(e)) from e
    if not os.access(path, os.W_OK):
        raise LogWriteError(str(path), "permission denied")
    return path


class FaultLogWriter:
    """
    Append-with-exclusive-lock writer.

    Usage:
        ```python
        writer = FaultLogWriter()
        writer.append("/var/log/app/errors.txt", record)
        ```
    """

    def __init__(self, *, encoding: str = "utf-8"):
        self.encoding = encoding
        self.writes = 0

    def append(self, destination: str | os.PathLike, record: LogRecord) -> None:
        line = record.to_json() + "\n"
        path = str(destination)
        try:
            with open(path, "a", encoding=self.encoding) as fp:
                fcntl.flock(fp.fileno(), fcntl.LOCK_EX)
                try:
                    fp.write(line)
                    fp.flush()
                    os.fsync(fp.fileno())
                finally:
                    fcntl.flock(fp.fileno(), fcntl.LOCK_UN)
        except OSError as e:
            if isinstance(e, LogWriteError):
                raise
            raise LogWriteError(path, e.strerror or str(e)) from e
        self.writes += 1
