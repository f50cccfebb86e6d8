"""Build pipeline entrypoint tying compile and reconcile passes together."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from tplbundle.bundler import (
    BundleWriter,
    ClassificationRegistry,
    GeneratedFile,
    ReconcilePass,
    ReconcileResult,
)
from tplbundle.compiler import (
    CompileEngine,
    CompileFailure,
    FileSink,
    Jinja2Renderer,
    LocalFileSink,
    Renderer,
)
from tplbundle.config import CliOverrides, PluginConfig, load_effective_config
from tplbundle.index import CompileCache, PassTracker
from tplbundle.logging import EventLog, MemoryEventLog


@dataclass(slots=True, frozen=True)
class CompileResult:
    """Per-file outcome reported back to the build pipeline.

    On failure ``output`` carries the original source text as fallback payload.
    """

    path: str
    output: str
    error: CompileFailure | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class TemplateBundlePlugin:
    """Long-lived owner of the compile cache and per-pass change tracking."""

    def __init__(
        self,
        config: PluginConfig,
        renderer: Renderer | None = None,
        sink: FileSink | None = None,
        events: EventLog | None = None,
    ) -> None:
        self._config = config
        self._events: EventLog = events if events is not None else MemoryEventLog()
        self._registry = ClassificationRegistry(config.singles, config.bundles)
        self._cache = CompileCache()
        self._tracker = PassTracker()
        sink = sink or LocalFileSink()
        if renderer is None:
            renderer = Jinja2Renderer(
                search_path=config.build.source_dir,
                environment_options=config.render.environment_options,
            )
        self._engine = CompileEngine(
            registry=self._registry,
            cache=self._cache,
            tracker=self._tracker,
            renderer=renderer,
            sink=sink,
            config=config,
            events=self._events,
        )
        self._writer = BundleWriter(
            cache=self._cache,
            sink=sink,
            public_dir=config.build.public_dir,
            root=config.root,
            events=self._events,
        )
        self._reconcile = ReconcilePass(
            registry=self._registry,
            cache=self._cache,
            tracker=self._tracker,
            writer=self._writer,
            extension=config.extension,
            events=self._events,
        )

    @property
    def config(self) -> PluginConfig:
        return self._config

    @property
    def extension(self) -> str:
        """Template source extension handled by this plugin."""
        return self._config.extension

    @property
    def registry(self) -> ClassificationRegistry:
        return self._registry

    @property
    def cache(self) -> CompileCache:
        return self._cache

    @property
    def tracker(self) -> PassTracker:
        return self._tracker

    @property
    def events(self) -> EventLog:
        return self._events

    def compile(self, data: str, path: str) -> CompileResult | None:
        """Compile one source; None when the path is neither single nor bundled."""
        try:
            rendered = self._engine.compile(data, path)
        except CompileFailure as exc:
            return CompileResult(path=path, output=data, error=exc)
        if rendered is None:
            return None
        return CompileResult(path=path, output=rendered)

    def on_compile(self, generated_files: Iterable[GeneratedFile]) -> ReconcileResult:
        """Reconcile bundles once all files of the pass have been compiled."""
        return self._reconcile.run(generated_files)

    def overlapping_paths(self, paths: Iterable[str]) -> tuple[str, ...]:
        """Paths classified as both a single output and a bundle member."""
        return tuple(path for path in paths if self._registry.is_overlapping(path))

    def bundle_assignments(self, paths: Iterable[str]) -> dict[str, str]:
        """Map each bundled path to the target of the first bundle claiming it.

        Reconcile rewrites every bundle containing a path. This view names only
        the earliest definition when bundle patterns overlap.
        """
        assignments: dict[str, str] = {}
        for path in paths:
            bundle = self._registry.bundle_for(path)
            if bundle is not None:
                assignments[path] = bundle.target_path
        return assignments


def create_plugin(
    project_root: str | Path,
    overrides: CliOverrides | None = None,
    events: EventLog | None = None,
) -> TemplateBundlePlugin:
    """Create a plugin from the project's effective configuration."""
    config = load_effective_config(Path(project_root), overrides)
    return TemplateBundlePlugin(config, events=events)
