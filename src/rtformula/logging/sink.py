"""NDJSON event sink.

One JSON object per line in ``<log_dir>/events.ndjson``, keys sorted.
Appends hold an exclusive ``fcntl.flock`` and reads a shared one, so
several processes evaluating formulas may share a log directory.  Where
``fcntl`` is unavailable the log is used unlocked.
"""

from __future__ import annotations

import json
import os
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Any, Iterator

from rtformula.logging.events import FormulaEvent

try:
    import fcntl
except ImportError:
    fcntl = None  # type: ignore[assignment]
    print("[rtformula] fcntl not available; log file locking disabled", file=sys.stderr)

EVENTS_FILE = "events.ndjson"

_DEFAULT_TAIL_BYTES = 2 * 1024 * 1024
_MAX_READ_LIMIT = 2000


@contextmanager
def _locked(f: IO[bytes], exclusive: bool) -> Iterator[IO[bytes]]:
    if fcntl is None:
        yield f
        return
    fcntl.flock(f.fileno(), fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
    try:
        yield f
    finally:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)


class EventSink:
    """Append-only event log for one directory."""

    def __init__(self, log_dir: Path, *, fsync: bool = False, tail_bytes: int | None = None) -> None:
        self.log_dir = Path(log_dir)
        self.fsync = fsync
        self.tail_bytes = _DEFAULT_TAIL_BYTES if tail_bytes is None else tail_bytes
        self.log_dir.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self.log_dir / EVENTS_FILE

    def write(self, event: FormulaEvent) -> None:
        record = json.dumps(event.model_dump(mode="json"), sort_keys=True, default=str)
        with open(self.path, "ab") as f, _locked(f, exclusive=True):
            f.write(record.encode("utf-8") + b"\n")
            if self.fsync:
                f.flush()
                os.fsync(f.fileno())

    def read(
        self,
        *,
        level: str | None = None,
        event_type: str | None = None,
        limit: int = 200,
    ) -> list[dict[str, Any]]:
        """Return up to *limit* events, newest first.

        Only the last ``tail_bytes`` of the file are scanned, so very old
        events drop out of view on a large log.  Lines that do not parse
        as JSON are skipped.
        """
        matched: list[dict[str, Any]] = []
        for record in reversed(self._tail_records()):
            if level and record.get("level") != level:
                continue
            if event_type and record.get("event_type") != event_type:
                continue
            matched.append(record)
            if len(matched) >= min(limit, _MAX_READ_LIMIT):
                break
        return matched

    def _tail_records(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        with open(self.path, "rb") as f, _locked(f, exclusive=False):
            size = f.seek(0, os.SEEK_END)
            f.seek(max(0, size - self.tail_bytes))
            data = f.read()
        if size > self.tail_bytes:
            # first line is likely cut
            data = data.partition(b"\n")[2]

        records = []
        for line in data.decode("utf-8", errors="replace").splitlines():
            if not line.strip():
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError:
                continue
        return records
