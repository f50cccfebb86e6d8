"""Template compilation package."""

from .engine import CompileEngine
from .render import (
    CompileFailure,
    Jinja2Renderer,
    Renderer,
    RenderOptions,
    compact_markup,
    doctype_declaration,
)
from .sink import FileSink, LocalFileSink

__all__ = [
    "CompileEngine",
    "CompileFailure",
    "FileSink",
    "Jinja2Renderer",
    "LocalFileSink",
    "RenderOptions",
    "Renderer",
    "compact_markup",
    "doctype_declaration",
]
