"""Custom SQLAlchemy JSON type for PostgreSQL JSONB with validation.

Used for organization settings, rate snapshots, conflict lists and notification
payloads. PostgreSQL only.
"""

import logging
from typing import Any

from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Dialect
from sqlalchemy.types import TypeDecorator

logger = logging.getLogger(__name__)


class JSONType(TypeDecorator):
    """PostgreSQL JSONB type that only accepts dicts and lists.

    Usage:
        class Organization(Base):
            settings: Mapped[dict | None] = mapped_column(JSONType)

    Python None is stored as SQL NULL, not JSON null. Scalars and strings are
    rejected on write rather than coerced.
    """

    impl = JSONB(none_as_null=True)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Dialect) -> dict | list | None:
        if value is None:
            return None

        if not isinstance(value, dict | list):
            raise TypeError(f"JSONType column expects a dict or list, got {type(value).__name__}")

        return value

    def process_result_value(self, value: Any, dialect: Dialect) -> dict | list | None:
        if value is None:
            return None

        if isinstance(value, dict | list):
            return value

        logger.error(f"Unexpected type in JSONB column: {type(value).__name__}. Value: {repr(value)[:100]}")
        raise TypeError(
            f"Unexpected type in JSONB column: {type(value).__name__}. "
            "PostgreSQL JSONB should always return dict or list."
        )
