import argparse
import os
import sys

# Add project root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../.."))

from src.core.config import validate_configuration
from src.core.database.database_session import get_engine
from src.core.database.schema_provisioning import create_shared_tables, provision_tenant_schema
from src.core.logging_config import setup_structured_logging


def init_db(schemas: list[str] | None = None, exit_on_error: bool = False) -> None:
    """Create shared tables and provision the given organization schemas.

    Args:
        schemas: Tenant schema names to create (e.g. ["org_acme"])
        exit_on_error: If True, exit process on error. If False, raise exception.
    """
    try:
        engine = get_engine()
        print("Creating shared tables...")
        create_shared_tables(engine)

        for schema_name in schemas or []:
            print(f"Provisioning schema {schema_name}...")
            provision_tenant_schema(engine, schema_name)
    except Exception as e:
        if exit_on_error:
            print(f"❌ Database initialization failed: {e}")
            sys.exit(1)
        raise

    print(f"✅ Database ready ({len(schemas or [])} tenant schema(s) provisioned)")


def main():
    parser = argparse.ArgumentParser(description="Initialize the workflow database")
    parser.add_argument("--schema", action="append", help="Tenant schema to provision (can be used multiple times)")
    args = parser.parse_args()

    setup_structured_logging()
    validate_configuration()
    init_db(schemas=args.schema, exit_on_error=True)


if __name__ == "__main__":
    main()
