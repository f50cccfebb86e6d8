"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

CONFIG_FILE_NAME = "tplbundle.toml"

DEFAULT_TEMPLATE_EXTENSION = ".tmpl"
DEFAULT_OUTPUT_EXTENSION = ".html"
DEFAULT_DOCTYPE = "5"
DEFAULT_PUBLIC_DIR = "public"
DEFAULT_EXCLUDE_GLOBS = (
    "**/.git/**",
    "**/__pycache__/**",
    "**/.venv/**",
    "**/node_modules/**",
)

_RENDER_CONTROL_KEYS = frozenset({"doctype", "pretty"})


class ConfigurationError(ValueError):
    """Raised when plugin configuration has an unsupported shape."""


@dataclass(slots=True, frozen=True)
class BundleSpec:
    """Validated bundle definition prior to matcher construction."""

    target_path: str
    module: str
    pattern: object


@dataclass(slots=True, frozen=True)
class RenderConfig:
    """Render settings shared by every compile."""

    doctype: str
    pretty: bool | None
    environment_options: dict[str, object]


@dataclass(slots=True, frozen=True)
class BuildConfig:
    """Build-wide settings owned by the surrounding pipeline."""

    project_root: Path
    source_dir: Path
    public_dir: Path
    optimize: bool
    exclude_globs: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class PluginConfig:
    """Fully merged template bundling configuration."""

    build: BuildConfig
    root: str | None
    extension: str
    output_extension: str
    singles: tuple[object, ...]
    bundles: tuple[BundleSpec, ...]
    locals: dict[str, object]
    render: RenderConfig

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable config snapshot for CLI output."""
        return {
            "project_root": str(self.build.project_root),
            "source_dir": str(self.build.source_dir),
            "public_dir": str(self.build.public_dir),
            "optimize": self.build.optimize,
            "root": self.root,
            "extension": self.extension,
            "output_extension": self.output_extension,
            "singles_count": len(self.singles),
            "bundles": [
                {"target_path": bundle.target_path, "module": bundle.module}
                for bundle in self.bundles
            ],
            "doctype": self.render.doctype,
        }


@dataclass(slots=True, frozen=True)
class CliOverrides:
    """Optional startup overrides applied at highest precedence."""

    source_dir: Path | None = None
    public_dir: Path | None = None
    optimize: bool | None = None


def default_config(project_root: Path) -> PluginConfig:
    """Build default config for a given project root."""
    resolved_root = project_root.resolve()
    return PluginConfig(
        build=BuildConfig(
            project_root=resolved_root,
            source_dir=resolved_root,
            public_dir=resolved_root / DEFAULT_PUBLIC_DIR,
            optimize=False,
            exclude_globs=DEFAULT_EXCLUDE_GLOBS,
        ),
        root=None,
        extension=DEFAULT_TEMPLATE_EXTENSION,
        output_extension=DEFAULT_OUTPUT_EXTENSION,
        singles=(),
        bundles=(),
        locals={},
        render=RenderConfig(doctype=DEFAULT_DOCTYPE, pretty=None, environment_options={}),
    )


def load_config_file(project_root: Path) -> dict[str, object]:
    """Load optional tplbundle.toml from project root."""
    config_path = project_root / CONFIG_FILE_NAME
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        try:
            payload = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigurationError(f"Invalid TOML in {CONFIG_FILE_NAME}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError(f"{CONFIG_FILE_NAME} must contain a top-level table.")
    return payload


def parse_singles(value: object) -> tuple[object, ...]:
    """Validate the singles setting, which must be an ordered list of patterns."""
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        raise ConfigurationError(
            "Config field 'singles' must be a list of strings or match patterns."
        )
    return tuple(value)


def parse_bundles(value: object) -> tuple[BundleSpec, ...]:
    """Validate the bundles table keyed by bundle target path."""
    if value is None:
        return ()
    if not isinstance(value, Mapping):
        raise ConfigurationError(
            "Config field 'bundles' must be a table of bundle path to bundle settings."
        )
    specs: list[BundleSpec] = []
    for target_path, raw in value.items():
        if not isinstance(raw, Mapping):
            raise ConfigurationError(f"Config field 'bundles.{target_path}' must be a table.")
        module = raw.get("module")
        if not isinstance(module, str) or not module:
            raise ConfigurationError(f"Missing module name for bundle: {target_path}")
        if raw.get("pattern") is None:
            raise ConfigurationError(f"Missing pattern for bundle: {target_path}")
        specs.append(
            BundleSpec(target_path=str(target_path), module=module, pattern=raw["pattern"])
        )
    return tuple(specs)


def merge_config(
    base: PluginConfig, payload: Mapping[str, object], overrides: CliOverrides
) -> PluginConfig:
    """Merge defaults, config file payload, then CLI/startup overrides."""
    build_payload = _get_table(payload, "build")
    render_payload = _get_table(payload, "render_options")
    locals_payload = _get_table(payload, "locals")

    root = _optional_str(payload.get("root"), "root", base.root)
    extension = _extension(payload.get("extension"), "extension", base.extension)
    output_extension = _extension(
        payload.get("output_extension"), "output_extension", base.output_extension
    )

    source_dir = base.build.source_dir
    if "source_dir" in build_payload:
        source_dir = base.build.project_root / _required_str(
            build_payload["source_dir"], "build.source_dir"
        )
    public_dir = base.build.public_dir
    if "public_dir" in build_payload:
        public_dir = base.build.project_root / _required_str(
            build_payload["public_dir"], "build.public_dir"
        )
    optimize = base.build.optimize
    if "optimize" in build_payload:
        raw_optimize = build_payload["optimize"]
        if not isinstance(raw_optimize, bool):
            raise ConfigurationError("Config field 'build.optimize' must be a boolean.")
        optimize = raw_optimize
    exclude_globs = base.build.exclude_globs
    if "exclude_globs" in build_payload:
        exclude_globs = _tuple_of_strings(build_payload["exclude_globs"], "build", "exclude_globs")

    doctype = base.render.doctype
    if "doctype" in render_payload:
        doctype = _doctype(render_payload["doctype"])
    pretty = base.render.pretty
    if "pretty" in render_payload:
        raw_pretty = render_payload["pretty"]
        if not isinstance(raw_pretty, bool):
            raise ConfigurationError("Config field 'render_options.pretty' must be a boolean.")
        pretty = raw_pretty
    environment_options = dict(base.render.environment_options)
    environment_options.update(
        {key: value for key, value in render_payload.items() if key not in _RENDER_CONTROL_KEYS}
    )

    merged = PluginConfig(
        build=BuildConfig(
            project_root=base.build.project_root,
            source_dir=source_dir.resolve(),
            public_dir=public_dir.resolve(),
            optimize=optimize,
            exclude_globs=exclude_globs,
        ),
        root=root,
        extension=extension,
        output_extension=output_extension,
        singles=parse_singles(payload["singles"]) if "singles" in payload else base.singles,
        bundles=parse_bundles(payload["bundles"]) if "bundles" in payload else base.bundles,
        locals={**base.locals, **locals_payload},
        render=RenderConfig(
            doctype=doctype,
            pretty=pretty,
            environment_options=environment_options,
        ),
    )
    return apply_cli_overrides(merged, overrides)


def apply_cli_overrides(config: PluginConfig, overrides: CliOverrides) -> PluginConfig:
    """Apply startup overrides at highest precedence."""
    build = config.build
    return PluginConfig(
        build=BuildConfig(
            project_root=build.project_root,
            source_dir=(overrides.source_dir or build.source_dir).resolve(),
            public_dir=(overrides.public_dir or build.public_dir).resolve(),
            optimize=overrides.optimize if overrides.optimize is not None else build.optimize,
            exclude_globs=build.exclude_globs,
        ),
        root=config.root,
        extension=config.extension,
        output_extension=config.output_extension,
        singles=config.singles,
        bundles=config.bundles,
        locals=config.locals,
        render=config.render,
    )


def load_effective_config(
    project_root: Path, overrides: CliOverrides | None = None
) -> PluginConfig:
    """Load effective config using merge order defaults -> config file -> overrides."""
    resolved_root = project_root.resolve()
    base = default_config(resolved_root)
    payload = load_config_file(resolved_root)
    return merge_config(base, payload, overrides or CliOverrides())


def _get_table(payload: Mapping[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Config section '{key}' must be a table.")
    return dict(value)


def _tuple_of_strings(value: object, section: str, field: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ConfigurationError(f"Config field '{section}.{field}' must be a list of strings.")
    output: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ConfigurationError(
                f"Config field '{section}.{field}' must contain only strings."
            )
        output.append(item)
    return tuple(output)


def _required_str(value: object, name: str) -> str:
    if not isinstance(value, str) or not value:
        raise ConfigurationError(f"Config field '{name}' must be a non-empty string.")
    return value


def _optional_str(value: object, name: str, default: str | None) -> str | None:
    if value is None:
        return default
    if not isinstance(value, str):
        raise ConfigurationError(f"Config field '{name}' must be a string.")
    return value


def _extension(value: object, name: str, default: str) -> str:
    if value is None:
        return default
    if not isinstance(value, str) or not value.startswith(".") or len(value) < 2:
        raise ConfigurationError(f"Config field '{name}' must look like '.ext'.")
    return value


def _doctype(value: object) -> str:
    # Numeric doctypes such as 5 are accepted and used in string form.
    if isinstance(value, bool):
        raise ConfigurationError("Config field 'render_options.doctype' must be a string.")
    if isinstance(value, (int, float)):
        return str(value)
    if not isinstance(value, str):
        raise ConfigurationError("Config field 'render_options.doctype' must be a string.")
    return value
