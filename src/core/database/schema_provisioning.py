"""Creation of the shared tables and of per-organization schemas."""

import logging

from sqlalchemy import Engine, text
from sqlalchemy.schema import CreateSchema

from src.core.database.models import TENANT_SCHEMA, Base, shared_tables, tenant_tables
from src.core.utils.tenant_utils import validate_schema_name

logger = logging.getLogger(__name__)


def create_shared_tables(engine: Engine) -> None:
    """Create organizations and notifications in the default schema (idempotent)."""
    Base.metadata.create_all(engine, tables=shared_tables())
    logger.info("Shared tables ready")


def provision_tenant_schema(engine: Engine, schema_name: str) -> None:
    """Create ``schema_name`` and every tenant table inside it (idempotent)."""
    validate_schema_name(schema_name)
    with engine.begin() as conn:
        conn.execute(CreateSchema(schema_name, if_not_exists=True))
        translated = conn.execution_options(schema_translate_map={TENANT_SCHEMA: schema_name})
        Base.metadata.create_all(translated, tables=tenant_tables())
    logger.info(f"Provisioned tenant schema {schema_name}")


def drop_tenant_schema(engine: Engine, schema_name: str) -> None:
    """Drop an organization schema and everything in it."""
    validate_schema_name(schema_name)
    with engine.begin() as conn:
        conn.execute(text(f'DROP SCHEMA IF EXISTS "{schema_name}" CASCADE'))
    logger.info(f"Dropped tenant schema {schema_name}")
