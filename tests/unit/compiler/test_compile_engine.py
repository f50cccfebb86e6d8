from __future__ import annotations

from pathlib import Path

import pytest

from tplbundle.bundler import ClassificationRegistry
from tplbundle.compiler import CompileEngine, CompileFailure, LocalFileSink, RenderOptions
from tplbundle.config import CliOverrides, PluginConfig, default_config, merge_config
from tplbundle.index import CompileCache, PassTracker
from tplbundle.logging import MemoryEventLog

SCENARIO = {
    "singles": ["views/*.tmpl"],
    "bundles": {"bundle.js": {"module": "app.templates", "pattern": "partials/**"}},
}


class EchoRenderer:
    def __init__(self) -> None:
        self.calls: list[RenderOptions] = []

    def render(self, source_text: str, options: RenderOptions) -> str:
        self.calls.append(options)
        if "FAIL" in source_text:
            raise CompileFailure("unexpected token", options.filename)
        return source_text


class Harness:
    def __init__(self, config: PluginConfig, sink: object | None = None) -> None:
        self.config = config
        self.registry = ClassificationRegistry(config.singles, config.bundles)
        self.cache = CompileCache()
        self.tracker = PassTracker()
        self.renderer = EchoRenderer()
        self.events = MemoryEventLog()
        self.engine = CompileEngine(
            registry=self.registry,
            cache=self.cache,
            tracker=self.tracker,
            renderer=self.renderer,
            sink=sink or LocalFileSink(),
            config=config,
            events=self.events,
        )


def _config(tmp_path: Path, payload: dict[str, object], optimize: bool = False) -> PluginConfig:
    return merge_config(default_config(tmp_path), payload, CliOverrides(optimize=optimize))


def test_single_is_written_and_not_cached(tmp_path: Path) -> None:
    harness = Harness(_config(tmp_path, SCENARIO))

    output = harness.engine.compile("<h1>home</h1>", "views/home.tmpl")

    assert output == "<h1>home</h1>"
    target = tmp_path / "public" / "views" / "home.html"
    assert target.read_text(encoding="utf-8") == "<h1>home</h1>"
    assert len(harness.cache) == 0
    assert len(harness.tracker) == 0
    assert harness.events.names() == ["compiled"]


def test_bundle_member_is_escaped_into_cache(tmp_path: Path) -> None:
    harness = Harness(_config(tmp_path, SCENARIO))

    output = harness.engine.compile("<nav>\n'hi'</nav>", "partials/nav.tmpl")

    assert output == "<nav>\n'hi'</nav>"
    assert harness.cache.get("partials/nav.tmpl") == "<nav>\\n\\'hi\\'</nav>"
    assert harness.tracker.changed() == ("partials/nav.tmpl",)
    assert not (tmp_path / "public").exists()


def test_unmatched_path_returns_none_without_side_effects(tmp_path: Path) -> None:
    harness = Harness(_config(tmp_path, SCENARIO))

    assert harness.engine.compile("<p></p>", "lib/other.tmpl") is None
    assert harness.renderer.calls == []
    assert len(harness.cache) == 0
    assert len(harness.tracker) == 0


def test_recompile_replaces_cache_entry(tmp_path: Path) -> None:
    harness = Harness(_config(tmp_path, SCENARIO))
    harness.engine.compile("<a></a>", "partials/a.tmpl")
    harness.engine.compile("<nav>v1</nav>", "partials/nav.tmpl")
    harness.tracker.clear()

    harness.engine.compile("<nav>v2</nav>", "partials/nav.tmpl")

    assert harness.cache.items() == (
        ("partials/a.tmpl", "<a></a>"),
        ("partials/nav.tmpl", "<nav>v2</nav>"),
    )
    assert harness.tracker.changed() == ("partials/nav.tmpl",)


def test_compile_failure_leaves_state_untouched(tmp_path: Path) -> None:
    harness = Harness(_config(tmp_path, SCENARIO))
    harness.engine.compile("<nav>ok</nav>", "partials/nav.tmpl")
    harness.tracker.clear()

    with pytest.raises(CompileFailure) as excinfo:
        harness.engine.compile("FAIL", "partials/nav.tmpl")

    assert excinfo.value.source_path == str((tmp_path / "partials" / "nav.tmpl").resolve())
    assert harness.cache.get("partials/nav.tmpl") == "<nav>ok</nav>"
    assert len(harness.tracker) == 0
    assert harness.events.names()[-1] == "compile_failed"


def test_path_can_be_both_single_and_bundle_member(tmp_path: Path) -> None:
    payload = {
        "singles": ["views/*.tmpl"],
        "bundles": {"all.js": {"module": "app.all", "pattern": "**/*.tmpl"}},
    }
    harness = Harness(_config(tmp_path, payload))

    harness.engine.compile("<h1>home</h1>", "views/home.tmpl")
    harness.engine.compile("<h1>home</h1>", "views/home.tmpl")

    assert (tmp_path / "public" / "views" / "home.html").exists()
    assert harness.cache.get("views/home.tmpl") == "<h1>home</h1>"
    assert harness.tracker.changed() == ("views/home.tmpl",)
    assert harness.events.names().count("classification_overlap") == 1


def test_single_write_failure_does_not_cache(tmp_path: Path) -> None:
    class BrokenSink:
        def write_file(self, path: Path, text: str) -> None:
            raise PermissionError(f"denied: {path}")

    payload = {
        "singles": ["views/*.tmpl"],
        "bundles": {"all.js": {"module": "app.all", "pattern": "**/*.tmpl"}},
    }
    harness = Harness(_config(tmp_path, payload), sink=BrokenSink())

    with pytest.raises(PermissionError):
        harness.engine.compile("<h1>home</h1>", "views/home.tmpl")

    assert len(harness.cache) == 0
    assert len(harness.tracker) == 0


def test_render_options_follow_configuration(tmp_path: Path) -> None:
    payload = {**SCENARIO, "locals": {"title": "Home"}}
    harness = Harness(_config(tmp_path, payload, optimize=True))

    harness.engine.compile("<h1></h1>", "views/home.tmpl")

    options = harness.renderer.calls[0]
    assert options.filename == str((tmp_path / "views" / "home.tmpl").resolve())
    assert options.doctype == "5"
    assert options.pretty is False
    assert options.locals == {"title": "Home"}


def test_explicit_pretty_overrides_optimize(tmp_path: Path) -> None:
    payload = {**SCENARIO, "render_options": {"pretty": True, "doctype": "xml"}}
    harness = Harness(_config(tmp_path, payload, optimize=True))

    options = harness.engine.render_options("views/home.tmpl")

    assert options.pretty is True
    assert options.doctype == "xml"


def test_single_output_path_strips_root_and_swaps_extension(tmp_path: Path) -> None:
    payload = {"root": "app/", "singles": ["app/views/**"]}
    harness = Harness(_config(tmp_path, payload))

    target = harness.engine.single_output_path("app/views/admin/users.tmpl")

    assert target == (tmp_path / "public" / "views" / "admin" / "users.html").resolve()


def test_single_output_path_stays_under_public_dir(tmp_path: Path) -> None:
    payload = {"root": "app", "singles": ["app/**"]}
    harness = Harness(_config(tmp_path, payload))

    assert harness.engine.single_output_path("app/views/home.tmpl") == (
        (tmp_path / "public" / "views" / "home.html").resolve()
    )
    assert harness.engine.single_output_path("home.tmpl") == (
        (tmp_path / "public" / "home.html").resolve()
    )
