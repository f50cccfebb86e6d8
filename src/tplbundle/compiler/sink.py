"""Durable writes of rendered artifacts."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol


class FileSink(Protocol):
    """Writes text to a path, creating parent directories."""

    def write_file(self, path: Path, text: str) -> None:
        """Write or overwrite the file; OSError propagates."""


class LocalFileSink:
    """FileSink writing to the local filesystem."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding = encoding

    def write_file(self, path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding=self._encoding, newline="") as handle:
            handle.write(text)
