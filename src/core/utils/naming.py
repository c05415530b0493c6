"""Template substitution utilities for generated documents.

Contract templates use double-brace placeholders with fallback syntax:
- {{advertiserName}} - Direct substitution
- {{agencyName|advertiserName}} - Use agencyName, fall back to advertiserName
- {{dateRange}} - Formatted flight dates (e.g., "Oct 7-14, 2025")

Unknown or empty placeholders render as an empty string.
"""

import re
from datetime import date
from typing import Any

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")


def format_date_range(start: date, end: date) -> str:
    """Format date range for display.

    Examples:
        - Same month: "Oct 07-14, 2025"
        - Different months: "Oct 15 - Nov 05, 2025"
        - Different years: "Dec 28, 2024 - Jan 05, 2025"
    """
    if start.year != end.year:
        return f"{start.strftime('%b %d, %Y')} - {end.strftime('%b %d, %Y')}"
    elif start.month != end.month:
        return f"{start.strftime('%b %d')} - {end.strftime('%b %d, %Y')}"
    else:
        return f"{start.strftime('%b %d')}-{end.strftime('%d, %Y')}"


def apply_template(template: str, context: dict[str, Any]) -> str:
    """Substitute ``{{variable}}`` placeholders from context.

    Examples:
        >>> apply_template("IO for {{campaignName}}", {"campaignName": "Q1 Launch"})
        'IO for Q1 Launch'

        >>> apply_template("Bill to {{agencyName|advertiserName}}", {"agencyName": None, "advertiserName": "Acme"})
        'Bill to Acme'
    """

    def _substitute(match: re.Match) -> str:
        for var_name in match.group(1).split("|"):
            candidate = context.get(var_name.strip())
            if candidate is not None and candidate != "":
                return str(candidate)
        return ""

    return PLACEHOLDER_PATTERN.sub(_substitute, template)


def template_variables(template: str) -> list[str]:
    """List the distinct variable names referenced by a template, in order."""
    names: list[str] = []
    for match in PLACEHOLDER_PATTERN.finditer(template):
        for var_name in match.group(1).split("|"):
            var_name = var_name.strip()
            if var_name not in names:
                names.append(var_name)
    return names
