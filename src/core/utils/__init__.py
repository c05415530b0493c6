"""Core utility functions."""

from src.core.utils.naming import apply_template, format_date_range, template_variables
from src.core.utils.tenant_utils import schema_name_for_slug, validate_schema_name

__all__ = [
    "apply_template",
    "format_date_range",
    "schema_name_for_slug",
    "template_variables",
    "validate_schema_name",
]
