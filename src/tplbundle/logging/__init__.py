"""Structured build event logging."""

from .events import BuildEvent, EventLog, JsonlEventLog, MemoryEventLog, emit, utc_timestamp

__all__ = ["BuildEvent", "EventLog", "JsonlEventLog", "MemoryEventLog", "emit", "utc_timestamp"]
