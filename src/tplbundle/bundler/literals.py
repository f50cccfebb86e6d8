"""Escaping of rendered markup for single-quoted script string literals."""

from __future__ import annotations


def quote_literal(text: str) -> str:
    """Escape text for use between single quotes of a script string literal."""
    return (
        text.replace("\\", "\\\\")
        .replace("\r", "\\r")
        .replace("\n", "\\n")
        .replace("'", "\\'")
    )


def escape_template_body(rendered: str) -> str:
    """Prepare rendered markup for embedding in a bundle.

    Exactly one leading newline is dropped before escaping.
    """
    if rendered.startswith("\n"):
        rendered = rendered[1:]
    return quote_literal(rendered)
