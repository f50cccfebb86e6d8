"""Once-per-pass reconciliation of the compile cache and bundle artifacts."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from tplbundle.bundler.models import Bundle, GeneratedFile, ReconcileResult
from tplbundle.bundler.registry import ClassificationRegistry
from tplbundle.bundler.writer import BundleWriter
from tplbundle.index.cache import CompileCache, PassTracker
from tplbundle.logging import EventLog, emit


class BundleWriteError(OSError):
    """Raised after a pass in which one or more dirty bundles failed to write."""

    def __init__(self, failures: tuple[tuple[Bundle, OSError], ...]) -> None:
        targets = ", ".join(bundle.target_path for bundle, _ in failures)
        super().__init__(f"Failed to write bundles: {targets}")
        self.failures = failures


def template_sources(manifest: Iterable[GeneratedFile], extension: str) -> tuple[str, ...]:
    """Unique source paths in the manifest carrying the template extension."""
    seen: dict[str, None] = {}
    for generated in manifest:
        for source in generated.source_files:
            if source.path.endswith(extension):
                seen[source.path] = None
    return tuple(seen)


class ReconcilePass:
    """Evicts deleted templates and rewrites every bundle they or changed files touch."""

    def __init__(
        self,
        registry: ClassificationRegistry,
        cache: CompileCache,
        tracker: PassTracker,
        writer: BundleWriter,
        extension: str,
        events: EventLog | None = None,
    ) -> None:
        self._registry = registry
        self._cache = cache
        self._tracker = tracker
        self._writer = writer
        self._extension = extension
        self._events = events

    def run(self, manifest: Iterable[GeneratedFile]) -> ReconcileResult:
        current = template_sources(manifest, self._extension)
        if not current:
            return ReconcileResult(
                template_sources=0, deleted=(), changed=(), dirty_bundles=(), written=()
            )

        live = set(current)
        deleted = tuple(path for path in self._cache.paths() if path not in live)
        for path in deleted:
            self._cache.remove(path)
            emit(self._events, "cache_evicted", path)

        changed = self._tracker.changed()
        affected = deleted + changed
        dirty = self._registry.bundles_containing(affected)

        written: list[Path] = []
        failures: list[tuple[Bundle, OSError]] = []
        for bundle in dirty:
            try:
                written.append(self._writer.write(bundle))
            except OSError as exc:
                emit(self._events, "bundle_write_failed", bundle.target_path, error=str(exc))
                failures.append((bundle, exc))

        self._tracker.clear()
        if failures:
            # Keep the failed bundles dirty for the next pass.
            for bundle, _ in failures:
                for path in affected:
                    if bundle.matches(path):
                        self._tracker.mark_changed(path)
            raise BundleWriteError(tuple(failures))

        return ReconcileResult(
            template_sources=len(current),
            deleted=deleted,
            changed=changed,
            dirty_bundles=tuple(bundle.target_path for bundle in dirty),
            written=tuple(written),
        )
