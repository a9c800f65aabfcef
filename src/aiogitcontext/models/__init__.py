"""Pydantic models for aiogitcontext."""

from .common import ImportFailure, ImportResult, ValidationResult
from .context import Context, sanitize_input, validate_context
from .templates import ContextTemplate, get_template, list_templates

__all__ = [
    "Context",
    "ContextTemplate",
    "ImportFailure",
    "ImportResult",
    "ValidationResult",
    "get_template",
    "list_templates",
    "sanitize_input",
    "validate_context",
]
