"""Compile state and template discovery package."""

from .cache import CompileCache, PassTracker
from .discovery import TemplateSource, discover_templates, should_exclude

__all__ = [
    "CompileCache",
    "PassTracker",
    "TemplateSource",
    "discover_templates",
    "should_exclude",
]
