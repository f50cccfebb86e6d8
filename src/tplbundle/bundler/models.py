"""Typed models for bundles and build-pass manifests."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from tplbundle.matching import PatternMatcher


@dataclass(slots=True, frozen=True)
class Bundle:
    """Aggregate artifact registering every matching template under one module."""

    target_path: str
    module: str
    matcher: PatternMatcher

    def matches(self, path: str) -> bool:
        return self.matcher.matches(path)


@dataclass(slots=True, frozen=True)
class SourceFile:
    """Source file contributing to a generated artifact."""

    path: str


@dataclass(slots=True, frozen=True)
class GeneratedFile:
    """One output artifact known to the build pipeline and its sources."""

    path: str
    source_files: tuple[SourceFile, ...]


@dataclass(slots=True, frozen=True)
class ReconcileResult:
    """Outcome of one reconcile pass."""

    template_sources: int
    deleted: tuple[str, ...]
    changed: tuple[str, ...]
    dirty_bundles: tuple[str, ...]
    written: tuple[Path, ...]

    @property
    def skipped(self) -> bool:
        """True when the manifest held no template sources at all."""
        return self.template_sources == 0
