"""Command line entrypoint running one full build pass."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import TextIO

from tplbundle.bundler import BundleWriteError, GeneratedFile, SourceFile
from tplbundle.config import CliOverrides, ConfigurationError
from tplbundle.index import discover_templates
from tplbundle.logging import EventLog, JsonlEventLog
from tplbundle.plugin import TemplateBundlePlugin, create_plugin


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for build configuration overrides."""
    parser = argparse.ArgumentParser(prog="tplbundle")
    parser.add_argument("command", choices=("build", "check", "events"))
    parser.add_argument("--project-root", required=False, default=".")
    parser.add_argument("--source-dir", required=False, default=None)
    parser.add_argument("--public-dir", required=False, default=None)
    parser.add_argument("--optimize", action="store_true", default=None)
    parser.add_argument("--event-log", required=False, default=None)
    parser.add_argument("--name", required=False, default=None)
    parser.add_argument("--since", required=False, default=None)
    parser.add_argument("--limit", type=int, required=False, default=50)
    return parser


def run_build(plugin: TemplateBundlePlugin) -> dict[str, object]:
    """Compile every discovered template, then reconcile bundles once."""
    build = plugin.config.build
    sources = discover_templates(
        build.project_root, build.source_dir, plugin.extension, build.exclude_globs
    )
    compiled: list[str] = []
    ignored: list[str] = []
    failed: list[dict[str, str]] = []
    for source in sources:
        result = plugin.compile(source.read_text(), source.path)
        if result is None:
            ignored.append(source.path)
            continue
        if result.error is not None:
            failed.append({"path": source.path, "message": result.error.message})
            continue
        compiled.append(source.path)

    manifest = [
        GeneratedFile(
            path=str(build.public_dir),
            source_files=tuple(SourceFile(path=source.path) for source in sources),
        )
    ]
    reconciled = plugin.on_compile(manifest)
    return {
        "compiled": compiled,
        "ignored": ignored,
        "failed": failed,
        "deleted": list(reconciled.deleted),
        "bundles_written": list(reconciled.dirty_bundles),
    }


def run_check(plugin: TemplateBundlePlugin) -> dict[str, object]:
    """Report each template's first bundle and any single/bundle overlaps."""
    build = plugin.config.build
    sources = discover_templates(
        build.project_root, build.source_dir, plugin.extension, build.exclude_globs
    )
    paths = [source.path for source in sources]
    return {
        "config": plugin.config.to_public_dict(),
        "templates": len(sources),
        "bundled": plugin.bundle_assignments(paths),
        "overlapping": list(plugin.overlapping_paths(paths)),
    }


def run_events(
    log: JsonlEventLog, name: str | None, since: str | None, limit: int
) -> dict[str, object]:
    """Return recorded build events from a previous run's event log."""
    events = log.query(name=name, since=since, limit=limit)
    return {"events": [event.to_record() for event in events]}


def main(argv: list[str] | None = None, out_stream: TextIO | None = None) -> int:
    """Entrypoint for the tplbundle command."""
    out = out_stream or sys.stdout
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    if args.command == "events":
        if args.event_log is None:
            _write(out, {"ok": False, "error": "The events command requires --event-log."})
            return 2
        summary = run_events(JsonlEventLog(Path(args.event_log)), args.name, args.since, args.limit)
        _write(out, {"ok": True, **summary})
        return 0

    overrides = CliOverrides(
        source_dir=Path(args.source_dir).resolve() if args.source_dir is not None else None,
        public_dir=Path(args.public_dir).resolve() if args.public_dir is not None else None,
        optimize=args.optimize,
    )
    events: EventLog | None = None
    if args.event_log is not None:
        events = JsonlEventLog(Path(args.event_log))
    try:
        plugin = create_plugin(args.project_root, overrides=overrides, events=events)
    except ConfigurationError as exc:
        _write(out, {"ok": False, "error": str(exc)})
        return 2

    if args.command == "check":
        _write(out, {"ok": True, **run_check(plugin)})
        return 0

    try:
        summary = run_build(plugin)
    except BundleWriteError as exc:
        _write(out, {"ok": False, "error": str(exc)})
        return 1
    ok = not summary["failed"]
    _write(out, {"ok": ok, **summary})
    return 0 if ok else 1


def _write(out: TextIO, payload: dict[str, object]) -> None:
    out.write(f"{json.dumps(payload, sort_keys=True)}\n")


if __name__ == "__main__":
    raise SystemExit(main())
