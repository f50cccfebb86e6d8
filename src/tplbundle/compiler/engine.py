"""Per-file compilation of template sources."""

from __future__ import annotations

from pathlib import Path

from tplbundle.bundler.literals import escape_template_body
from tplbundle.bundler.registry import ClassificationRegistry
from tplbundle.compiler.render import CompileFailure, Renderer, RenderOptions
from tplbundle.compiler.sink import FileSink
from tplbundle.config import PluginConfig
from tplbundle.index.cache import CompileCache, PassTracker
from tplbundle.logging import EventLog, emit
from tplbundle.paths import single_output_path


class CompileEngine:
    """Classifies, renders and routes one template source at a time.

    A source may be a single output, a bundle member, both, or neither.
    Singles are written straight to the public directory. Bundle members are
    escaped into the compile cache and marked changed for the next reconcile.
    Nothing is mutated for a source whose render fails.
    """

    def __init__(
        self,
        registry: ClassificationRegistry,
        cache: CompileCache,
        tracker: PassTracker,
        renderer: Renderer,
        sink: FileSink,
        config: PluginConfig,
        events: EventLog | None = None,
    ) -> None:
        self._registry = registry
        self._cache = cache
        self._tracker = tracker
        self._renderer = renderer
        self._sink = sink
        self._config = config
        self._events = events
        self._reported_overlaps: set[str] = set()

    def compile(self, source_text: str, source_path: str) -> str | None:
        """Render one source; None means the path is not handled here."""
        single = self._registry.is_single(source_path)
        bundled = self._registry.belongs_to_bundle(source_path)
        if not single and not bundled:
            return None
        if single and bundled:
            self._report_overlap(source_path)

        try:
            rendered = self._renderer.render(source_text, self.render_options(source_path))
        except CompileFailure as exc:
            emit(self._events, "compile_failed", source_path, message=exc.message)
            raise

        if single:
            target = self.single_output_path(source_path)
            self._sink.write_file(target, rendered)
            emit(self._events, "compiled", source_path, target=str(target))

        if bundled:
            self._cache.put(source_path, escape_template_body(rendered))
            self._tracker.mark_changed(source_path)
            emit(self._events, "cached", source_path)

        return rendered

    def render_options(self, source_path: str) -> RenderOptions:
        render = self._config.render
        pretty = render.pretty if render.pretty is not None else not self._config.build.optimize
        return RenderOptions(
            filename=str((self._config.build.project_root / source_path).resolve()),
            doctype=render.doctype,
            pretty=pretty,
            locals=self._config.locals,
        )

    def single_output_path(self, source_path: str) -> Path:
        return single_output_path(
            self._config.build.public_dir,
            source_path,
            root=self._config.root,
            extension=self._config.extension,
            output_extension=self._config.output_extension,
        )

    def _report_overlap(self, source_path: str) -> None:
        if source_path in self._reported_overlaps:
            return
        self._reported_overlaps.add(source_path)
        emit(self._events, "classification_overlap", source_path)
