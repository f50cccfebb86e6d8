"""Bundle classification, serialization and reconciliation."""

from .literals import escape_template_body, quote_literal
from .models import Bundle, GeneratedFile, ReconcileResult, SourceFile
from .reconcile import BundleWriteError, ReconcilePass, template_sources
from .registry import ClassificationRegistry
from .writer import BundleWriter

__all__ = [
    "Bundle",
    "BundleWriteError",
    "BundleWriter",
    "ClassificationRegistry",
    "GeneratedFile",
    "ReconcilePass",
    "ReconcileResult",
    "SourceFile",
    "escape_template_body",
    "quote_literal",
    "template_sources",
]
