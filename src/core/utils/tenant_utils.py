"""Tenant schema helpers.

Each organization owns a PostgreSQL schema (``org_<slug>``). Schema names are
interpolated into SQL by SQLAlchemy's schema translation, so they are checked
against a strict identifier pattern before any session is opened.
"""

import re

SCHEMA_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]{0,62}$")


def validate_schema_name(schema_name: str) -> str:
    """Return schema_name unchanged if it is a safe PostgreSQL identifier.

    Raises:
        ValueError: If the name is empty, too long, or contains other characters
    """
    if not schema_name or not SCHEMA_NAME_PATTERN.match(schema_name):
        raise ValueError(f"Invalid tenant schema name: {schema_name!r}")
    return schema_name


def schema_name_for_slug(slug: str) -> str:
    """Derive the schema name for an organization slug.

    Example:
        >>> schema_name_for_slug("PodcastFlow-Pro")
        'org_podcastflow_pro'
    """
    normalized = re.sub(r"[^a-z0-9]+", "_", slug.lower()).strip("_")
    return validate_schema_name(f"org_{normalized}")
