#!/usr/bin/env python3
"""Mark inventory reservations whose TTL has elapsed as expired.

Run periodically (e.g. from cron) for each organization schema:
    python -m scripts.ops.expire_reservations --schema org_acme --schema org_beta
"""

import argparse

from src.core.database.database_session import get_tenant_session
from src.core.logging_config import setup_structured_logging
from src.services.inventory_reservation_service import SqlInventoryReservationService


def expire_for_schema(schema_name: str) -> int:
    with get_tenant_session(schema_name) as session:
        expired = SqlInventoryReservationService(session).expire_stale_reservations()
        session.commit()
    return expired


def main():
    parser = argparse.ArgumentParser(description="Expire stale inventory reservations")
    parser.add_argument("--schema", action="append", required=True, help="Organization schema (repeatable)")
    args = parser.parse_args()

    setup_structured_logging()
    for schema_name in args.schema:
        expired = expire_for_schema(schema_name)
        print(f"✅ {schema_name}: {expired} reservation(s) expired")


if __name__ == "__main__":
    main()
