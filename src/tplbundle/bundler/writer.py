"""Serialization of cached templates into self-registering bundle modules."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from tplbundle.bundler.literals import quote_literal
from tplbundle.bundler.models import Bundle
from tplbundle.index.cache import CompileCache
from tplbundle.logging import EventLog, emit
from tplbundle.paths import template_name

if TYPE_CHECKING:
    from tplbundle.compiler.sink import FileSink

MODULE_HEADER = (
    "angular.module('{module}', [])\n"
    ".run(['$templateCache', function($templateCache) {{\n"
)
MODULE_ENTRY = "\t$templateCache.put('{name}', '{body}');\n"
MODULE_FOOTER = "}]);\n"


class BundleWriter:
    """Writes one bundle module from the current compile cache."""

    def __init__(
        self,
        cache: CompileCache,
        sink: FileSink,
        public_dir: Path,
        root: str | None = None,
        events: EventLog | None = None,
    ) -> None:
        self._cache = cache
        self._sink = sink
        self._public_dir = public_dir
        self._root = root
        self._events = events

    def target_path(self, bundle: Bundle) -> Path:
        return (self._public_dir / bundle.target_path).resolve()

    def render(self, bundle: Bundle) -> str:
        """Build the module text for every cached entry the bundle matches."""
        parts = [MODULE_HEADER.format(module=quote_literal(bundle.module))]
        for path, body in self._cache.items():
            if not bundle.matches(path):
                continue
            name = quote_literal(template_name(path, self._root))
            parts.append(MODULE_ENTRY.format(name=name, body=body))
        parts.append(MODULE_FOOTER)
        return "".join(parts)

    def write(self, bundle: Bundle) -> Path:
        target = self.target_path(bundle)
        self._sink.write_file(target, self.render(bundle))
        emit(
            self._events,
            "bundle_written",
            bundle.target_path,
            module=bundle.module,
            target=str(target),
        )
        return target
