"""Compiled bundle-member cache and per-pass change tracking."""

from __future__ import annotations


class CompileCache:
    """Escaped bundle-member bodies keyed by source path, in insertion order.

    Entries live until a reconcile pass evicts them. Recompiling a path
    overwrites its body in place and keeps its original position.
    """

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    def put(self, path: str, body: str) -> None:
        self._entries[path] = body

    def get(self, path: str) -> str | None:
        return self._entries.get(path)

    def remove(self, path: str) -> bool:
        """Evict one entry; return False when it was not cached."""
        return self._entries.pop(path, None) is not None

    def paths(self) -> tuple[str, ...]:
        return tuple(self._entries)

    def items(self) -> tuple[tuple[str, str], ...]:
        return tuple(self._entries.items())

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class PassTracker:
    """Ordered set of bundle-member paths compiled during the current pass."""

    def __init__(self) -> None:
        self._changed: dict[str, None] = {}

    def mark_changed(self, path: str) -> None:
        self._changed[path] = None

    def changed(self) -> tuple[str, ...]:
        return tuple(self._changed)

    def clear(self) -> None:
        self._changed.clear()

    def __contains__(self, path: object) -> bool:
        return path in self._changed

    def __len__(self) -> int:
        return len(self._changed)
