from __future__ import annotations

from pathlib import Path

import pytest

from tplbundle.bundler import Bundle, BundleWriter
from tplbundle.index import CompileCache
from tplbundle.logging import MemoryEventLog
from tplbundle.matching import build_matcher


class RecordingSink:
    def __init__(self) -> None:
        self.writes: dict[Path, str] = {}

    def write_file(self, path: Path, text: str) -> None:
        self.writes[path] = text


def _bundle(target: str = "js/templates.js", pattern: object = "app/partials/**") -> Bundle:
    return Bundle(
        target_path=target, module="app.templates", matcher=build_matcher(pattern, "pattern")
    )


def test_module_text_registers_matching_entries_in_cache_order(tmp_path: Path) -> None:
    cache = CompileCache()
    cache.put("app/partials/z.tmpl", "<z></z>")
    cache.put("app/views/home.tmpl", "<home></home>")
    cache.put("app/partials/a.tmpl", "<a>\\'x\\'</a>")
    writer = BundleWriter(cache=cache, sink=RecordingSink(), public_dir=tmp_path, root="app/")

    text = writer.render(_bundle())

    assert text == (
        "angular.module('app.templates', [])\n"
        ".run(['$templateCache', function($templateCache) {\n"
        "\t$templateCache.put('partials/z.tmpl', '<z></z>');\n"
        "\t$templateCache.put('partials/a.tmpl', '<a>\\'x\\'</a>');\n"
        "}]);\n"
    )


def test_template_names_use_forward_slashes(tmp_path: Path) -> None:
    cache = CompileCache()
    cache.put("app\\partials\\nav.tmpl", "<nav></nav>")
    writer = BundleWriter(cache=cache, sink=RecordingSink(), public_dir=tmp_path, root="app\\")

    text = writer.render(_bundle(pattern="**/*.tmpl"))

    assert "$templateCache.put('partials/nav.tmpl', '<nav></nav>');" in text


def test_names_keep_path_when_root_does_not_prefix_it(tmp_path: Path) -> None:
    cache = CompileCache()
    cache.put("lib/partials/nav.tmpl", "<nav></nav>")
    writer = BundleWriter(cache=cache, sink=RecordingSink(), public_dir=tmp_path, root="app/")

    text = writer.render(_bundle(pattern="**/*.tmpl"))

    assert "put('lib/partials/nav.tmpl'" in text


def test_empty_bundle_still_has_header_and_footer(tmp_path: Path) -> None:
    writer = BundleWriter(cache=CompileCache(), sink=RecordingSink(), public_dir=tmp_path)

    assert writer.render(_bundle()) == (
        "angular.module('app.templates', [])\n"
        ".run(['$templateCache', function($templateCache) {\n"
        "}]);\n"
    )


def test_write_targets_public_dir_and_logs(tmp_path: Path) -> None:
    sink = RecordingSink()
    events = MemoryEventLog()
    cache = CompileCache()
    cache.put("app/partials/nav.tmpl", "<nav></nav>")
    writer = BundleWriter(cache=cache, sink=sink, public_dir=tmp_path, events=events)

    target = writer.write(_bundle())

    assert target == (tmp_path / "js" / "templates.js").resolve()
    assert "put('app/partials/nav.tmpl'" in sink.writes[target]
    assert events.names() == ["bundle_written"]
    assert events.events[0].detail["module"] == "app.templates"


def test_write_errors_propagate(tmp_path: Path) -> None:
    class BrokenSink:
        def write_file(self, path: Path, text: str) -> None:
            raise PermissionError(f"denied: {path}")

    writer = BundleWriter(cache=CompileCache(), sink=BrokenSink(), public_dir=tmp_path)

    with pytest.raises(PermissionError):
        writer.write(_bundle())
