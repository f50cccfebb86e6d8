"""Structured JSONL build event log utilities."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol


@dataclass(slots=True, frozen=True)
class BuildEvent:
    """One notable step of a compile or reconcile pass."""

    timestamp: str
    event: str
    path: str
    detail: dict[str, object]

    @classmethod
    def from_record(cls, record: Mapping[str, object]) -> BuildEvent | None:
        """Rebuild an event from one decoded log line; None for foreign records."""
        timestamp = record.get("timestamp")
        event = record.get("event")
        path = record.get("path")
        detail = record.get("detail", {})
        if not isinstance(timestamp, str) or not isinstance(event, str):
            return None
        if not isinstance(path, str) or not isinstance(detail, dict):
            return None
        return cls(timestamp=timestamp, event=event, path=path, detail=detail)

    def to_record(self) -> dict[str, object]:
        return asdict(self)


class EventLog(Protocol):
    """Sink accepting build events."""

    def append(self, event: BuildEvent) -> None:
        """Record one event."""


def utc_timestamp() -> str:
    """Return an ISO-8601 UTC timestamp."""
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def emit(log: EventLog | None, event: str, path: str, **detail: object) -> None:
    """Append an event stamped with the current time when a log is attached."""
    if log is None:
        return
    log.append(BuildEvent(timestamp=utc_timestamp(), event=event, path=path, detail=detail))


class MemoryEventLog:
    """In-process event log, used when no log file is configured."""

    def __init__(self) -> None:
        self._events: list[BuildEvent] = []

    @property
    def events(self) -> tuple[BuildEvent, ...]:
        return tuple(self._events)

    def append(self, event: BuildEvent) -> None:
        self._events.append(event)

    def names(self) -> list[str]:
        """Return event names in emission order."""
        return [event.event for event in self._events]


class JsonlEventLog:
    """Build events persisted one JSON object per line across runs.

    ``query`` serves the ``tplbundle events`` command. Lines that are not
    events written by this log are skipped.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def append(self, event: BuildEvent) -> None:
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(event.to_record(), sort_keys=True, default=str))
            handle.write("\n")

    def query(
        self,
        name: str | None = None,
        since: str | None = None,
        limit: int = 50,
    ) -> list[BuildEvent]:
        """Most recent events, oldest first, filtered by name and timestamp lower bound."""
        if limit < 1 or not self._path.exists():
            return []
        matched: list[BuildEvent] = []
        with self._path.open("r", encoding="utf-8") as handle:
            for line in handle:
                event = _decode_line(line)
                if event is None:
                    continue
                if name is not None and event.event != name:
                    continue
                if since is not None and event.timestamp < since:
                    continue
                matched.append(event)
        return matched[-limit:]


def _decode_line(line: str) -> BuildEvent | None:
    stripped = line.strip()
    if not stripped:
        return None
    try:
        record = json.loads(stripped)
    except json.JSONDecodeError:
        return None
    if not isinstance(record, dict):
        return None
    return BuildEvent.from_record(record)
