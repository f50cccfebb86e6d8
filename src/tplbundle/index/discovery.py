"""Deterministic template source discovery."""

from __future__ import annotations

import fnmatch
import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(slots=True, frozen=True)
class TemplateSource:
    """One template file found under the source directory."""

    path: str
    full_path: Path

    def read_text(self) -> str:
        return self.full_path.read_text(encoding="utf-8")


def discover_templates(
    project_root: Path,
    source_dir: Path,
    extension: str,
    exclude_globs: tuple[str, ...] = (),
) -> list[TemplateSource]:
    """Find template sources below source_dir, sorted by project-relative path."""
    root = project_root.resolve()
    start = source_dir.resolve()
    excluded_dir_names = _excluded_dir_names(exclude_globs)
    found: list[TemplateSource] = []
    stack: list[Path] = [start]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as entries:
                ordered_entries = sorted(entries, key=lambda item: item.name)
        except OSError:
            continue
        for entry in reversed(ordered_entries):
            full_path = Path(entry.path)
            relative = _relative_path(full_path, root)
            if entry.is_dir(follow_symlinks=False):
                prune = should_exclude(f"{relative}/", exclude_globs)
                if entry.name in excluded_dir_names and prune:
                    continue
                stack.append(full_path)
                continue
            if not entry.is_file(follow_symlinks=False):
                continue
            if should_exclude(relative, exclude_globs):
                continue
            if not entry.name.endswith(extension):
                continue
            found.append(TemplateSource(path=relative, full_path=full_path))
    found.sort(key=lambda item: item.path)
    return found


def should_exclude(relative_path: str, exclude_globs: tuple[str, ...]) -> bool:
    """Return True when a path matches configured ignore globs."""
    anchored = f"/{relative_path}"
    return any(
        fnmatch.fnmatch(relative_path, pattern) or fnmatch.fnmatch(anchored, pattern)
        for pattern in exclude_globs
    )


def _relative_path(full_path: Path, root: Path) -> str:
    if full_path.is_relative_to(root):
        return full_path.relative_to(root).as_posix()
    return full_path.as_posix()


def _excluded_dir_names(exclude_globs: tuple[str, ...]) -> set[str]:
    """Extract directory-name prunes from **/name/** glob patterns."""
    output: set[str] = set()
    for pattern in exclude_globs:
        if not pattern.startswith("**/") or not pattern.endswith("/**"):
            continue
        name = pattern[3:-3].strip("/")
        if not name:
            continue
        if any(char in name for char in "*?[]{}"):
            continue
        output.add(name)
    return output
