"""Template rendering through jinja2."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from jinja2 import Environment, FileSystemLoader, TemplateError, TemplateSyntaxError

from tplbundle.config import DEFAULT_DOCTYPE, ConfigurationError

DOCTYPES = {
    "html": "<!DOCTYPE html>",
    "5": "<!DOCTYPE html>",
    "xml": '<?xml version="1.0" encoding="utf-8" ?>',
    "transitional": (
        '<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.0 Transitional//EN" '
        '"http://www.w3.org/TR/xhtml1/DTD/xhtml1-transitional.dtd">'
    ),
    "strict": (
        '<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.0 Strict//EN" '
        '"http://www.w3.org/TR/xhtml1/DTD/xhtml1-strict.dtd">'
    ),
    "frameset": (
        '<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.0 Frameset//EN" '
        '"http://www.w3.org/TR/xhtml1/DTD/xhtml1-frameset.dtd">'
    ),
    "1.1": (
        '<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.1//EN" '
        '"http://www.w3.org/TR/xhtml11/DTD/xhtml11.dtd">'
    ),
    "basic": (
        '<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML Basic 1.1//EN" '
        '"http://www.w3.org/TR/xhtml-basic/xhtml-basic11.dtd">'
    ),
    "mobile": (
        '<!DOCTYPE html PUBLIC "-//WAPFORUM//DTD XHTML Mobile 1.2//EN" '
        '"http://www.openmobilealliance.org/tech/DTD/xhtml-mobile12.dtd">'
    ),
}

_INTER_TAG_WHITESPACE = re.compile(r">\s+<")


@dataclass(slots=True, frozen=True)
class RenderOptions:
    """Per-file options handed to a renderer."""

    filename: str
    doctype: str = DEFAULT_DOCTYPE
    pretty: bool = True
    locals: Mapping[str, object] = field(default_factory=dict)


class CompileFailure(Exception):
    """Raised when one template source cannot be rendered."""

    def __init__(self, message: str, source_path: str) -> None:
        super().__init__(f"{source_path}: {message}")
        self.message = message
        self.source_path = source_path


class Renderer(Protocol):
    """Turns template source text into rendered markup."""

    def render(self, source_text: str, options: RenderOptions) -> str:
        """Return rendered text or raise CompileFailure."""


def doctype_declaration(doctype: str) -> str:
    """Markup declaration for a doctype shorthand; unknown values are used verbatim."""
    return DOCTYPES.get(doctype.lower(), f"<!DOCTYPE {doctype}>")


def compact_markup(text: str) -> str:
    """Drop whitespace between tags and around the document."""
    return _INTER_TAG_WHITESPACE.sub("><", text).strip()


class Jinja2Renderer:
    """Renderer backed by a shared jinja2 Environment.

    ``{% include %}`` and ``{% extends %}`` resolve against ``search_path`` when
    one is given. Templates see their ``locals`` plus a ``doctype`` variable
    holding the declaration for the configured doctype.
    """

    def __init__(
        self,
        search_path: Path | None = None,
        environment_options: Mapping[str, object] | None = None,
    ) -> None:
        loader = FileSystemLoader(str(search_path)) if search_path is not None else None
        try:
            self._environment = Environment(loader=loader, **dict(environment_options or {}))
        except TypeError as exc:
            raise ConfigurationError(
                f"Config section 'render_options' has an unsupported option: {exc}"
            ) from exc

    @property
    def environment(self) -> Environment:
        return self._environment

    def render(self, source_text: str, options: RenderOptions) -> str:
        context: dict[str, object] = {"doctype": doctype_declaration(options.doctype)}
        context.update(options.locals)
        try:
            template = self._environment.from_string(source_text)
            rendered = template.render(context)
        except TemplateSyntaxError as exc:
            raise CompileFailure(
                f"Template syntax error at line {exc.lineno}: {exc.message}", options.filename
            ) from exc
        except TemplateError as exc:
            raise CompileFailure(f"Template render error: {exc}", options.filename) from exc
        # Expression errors over user supplied locals.
        except (ArithmeticError, LookupError, TypeError, ValueError) as exc:
            raise CompileFailure(
                f"Template render error: {type(exc).__name__}: {exc}", options.filename
            ) from exc
        if not options.pretty:
            rendered = compact_markup(rendered)
        return rendered
