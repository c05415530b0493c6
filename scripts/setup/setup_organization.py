#!/usr/bin/env python3
"""
Simple CLI to set up an organization: a row in the shared organizations table,
its own PostgreSQL schema, and its workflow automation settings.
"""

import argparse
import json
import sys
import uuid

from sqlalchemy import select

from src.core.database.database_session import get_db_session, get_engine
from src.core.database.models import Organization
from src.core.database.schema_provisioning import provision_tenant_schema
from src.core.utils.tenant_utils import schema_name_for_slug
from src.services.workflow.settings import STAGE_THRESHOLDS, WorkflowAutomationSettings


def build_workflow_settings(args) -> dict:
    """workflowAutomation block from CLI flags, validated like the engine reads it."""
    workflow: dict = {
        "autoStages": {
            f"at{threshold}": threshold not in (args.disable_stage or []) for threshold in STAGE_THRESHOLDS
        },
        "inventory": {"reserveAt90": not args.no_reserve_at_90, "reservationTtlHours": args.reservation_ttl_hours},
        "talentApprovals": {"hostRead": args.host_read_approval, "endorsed": args.endorsed_approval},
        "contracts": {"autoGenerate": not args.no_contracts},
    }
    if args.exclusivity_policy:
        workflow["exclusivity"] = {"policy": args.exclusivity_policy}
    if args.invoice_day:
        workflow["billing"] = {
            "invoiceDayOfMonth": args.invoice_day,
            "timezone": args.timezone,
            "prebillWhenNoTerms": args.prebill_when_no_terms,
        }

    WorkflowAutomationSettings.model_validate(workflow)
    return workflow


def create_organization(args):
    slug = args.slug or args.name.lower().replace(" ", "-")
    schema_name = schema_name_for_slug(slug)
    workflow = build_workflow_settings(args)

    with get_db_session() as session:
        existing = session.scalars(select(Organization).filter_by(slug=slug)).first()
        if existing:
            print(f"Error: Organization '{slug}' already exists")
            sys.exit(1)

        organization = Organization(
            id=args.organization_id or f"org_{uuid.uuid4().hex[:12]}",
            name=args.name,
            slug=slug,
            schema_name=schema_name,
            is_active=True,
            settings={"workflowAutomation": workflow},
        )
        session.add(organization)
        session.commit()
        organization_id = organization.id

    provision_tenant_schema(get_engine(), schema_name)

    print(f"✅ Organization '{args.name}' created")
    print(f"   ID: {organization_id}")
    print(f"   Schema: {schema_name}")
    print(f"   Workflow automation: {json.dumps(workflow)}")


def main():
    parser = argparse.ArgumentParser(description="Set up an organization for the campaign workflow")
    parser.add_argument("name", help="Organization display name")
    parser.add_argument("--slug", help="URL slug (default: derived from name)")
    parser.add_argument("--organization-id", help="Organization ID (default: generated)")

    # Workflow automation options
    parser.add_argument(
        "--disable-stage", type=int, action="append", choices=[10, 35, 65, 90, 100], help="Disable a stage band"
    )
    parser.add_argument("--exclusivity-policy", choices=["BLOCK", "WARN"], help="Category exclusivity policy")
    parser.add_argument("--no-reserve-at-90", action="store_true", help="Do not reserve inventory at 90%%")
    parser.add_argument("--reservation-ttl-hours", type=int, default=72, help="Inventory hold TTL in hours")
    parser.add_argument("--host-read-approval", action="store_true", help="Require talent approval for host reads")
    parser.add_argument("--endorsed-approval", action="store_true", help="Require talent approval for endorsements")
    parser.add_argument("--no-contracts", action="store_true", help="Do not generate contracts at 100%%")
    parser.add_argument("--invoice-day", type=int, help="Create billing schedules on this day of month (1-28)")
    parser.add_argument("--timezone", default="America/Los_Angeles", help="Billing timezone")
    parser.add_argument("--prebill-when-no-terms", action="store_true", help="Pre-bill advertisers without terms")

    args = parser.parse_args()
    if args.invoice_day is not None and not 1 <= args.invoice_day <= 28:
        parser.error("--invoice-day must be between 1 and 28")

    create_organization(args)


if __name__ == "__main__":
    main()
