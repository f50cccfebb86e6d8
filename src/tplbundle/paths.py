"""Path normalization helpers for template names and output locations."""

from __future__ import annotations

import re
from pathlib import Path, PurePath
from typing import Final

WINDOWS_ABSOLUTE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z]:[\\/]")


def normalize_separators(candidate: str) -> str:
    """Return the path with every separator written as a forward slash."""
    return candidate.replace("\\", "/")


def strip_root(subject: str, root: str | None) -> str:
    """Remove the configured root prefix when the subject starts with it."""
    if not root:
        return subject
    if subject.startswith(root):
        return subject[len(root) :]
    return subject


def template_name(source_path: str, root: str | None) -> str:
    """Registration name of a bundled template: root stripped, forward slashes."""
    return normalize_separators(strip_root(source_path, root))


def template_basename(source_path: str, extension: str) -> str:
    """File name without the template extension, if it carries one."""
    name = PurePath(normalize_separators(source_path)).name
    if name.endswith(extension) and len(name) > len(extension):
        return name[: -len(extension)]
    return name


def relative_output_dir(source_path: str, root: str | None) -> str:
    """Directory of the source with the root prefix removed, made relative."""
    directory = PurePath(normalize_separators(source_path)).parent.as_posix()
    stripped = strip_root(directory, root)
    if WINDOWS_ABSOLUTE_PATTERN.match(stripped):
        stripped = stripped[2:]
    return stripped.lstrip("/")


def single_output_path(
    public_dir: Path,
    source_path: str,
    *,
    root: str | None,
    extension: str,
    output_extension: str,
) -> Path:
    """Resolve where a single template's rendered output lands under public_dir."""
    basename = template_basename(source_path, extension)
    directory = relative_output_dir(source_path, root)
    return (public_dir / directory / f"{basename}{output_extension}").resolve()
