#!/usr/bin/env python3
"""Move a campaign through the pipeline from the command line.

Examples:
    python -m scripts.ops.transition_campaign advance cmp_123 90 \\
        --organization-id org_1 --schema org_acme --user ops_admin --idempotency-key ticket-481
    python -m scripts.ops.transition_campaign reject cmp_123 --schema org_acme --user ops_admin

Prints the result as JSON and exits non-zero when the transition failed.
"""

import argparse
import json
import sys

from src.core.logging_config import setup_structured_logging
from src.core.schemas import StageTransitionRequest
from src.services.workflow.factory import build_stage_engine


def advance(args) -> dict:
    engine = build_stage_engine()
    request = StageTransitionRequest(
        campaign_id=args.campaign_id,
        target_stage=args.target_stage,
        organization_id=args.organization_id,
        schema_name=args.schema,
        user_id=args.user,
        idempotency_key=args.idempotency_key,
        force=args.force,
    )
    return engine.transition_to_stage(request).to_response()


def reject(args) -> dict:
    engine = build_stage_engine()
    result = engine.reject_at_90_percent(
        campaign_id=args.campaign_id,
        schema_name=args.schema,
        user_id=args.user,
        organization_id=args.organization_id,
    )
    return result.to_response()


def main():
    parser = argparse.ArgumentParser(description="Campaign stage transitions")
    subparsers = parser.add_subparsers(dest="command", required=True)

    advance_parser = subparsers.add_parser("advance", help="Transition a campaign to a target stage")
    advance_parser.add_argument("campaign_id")
    advance_parser.add_argument("target_stage", type=int, help="Target probability (0-100)")
    advance_parser.add_argument("--organization-id", required=True)
    advance_parser.add_argument("--idempotency-key", help="Stable key to make retries safe")
    advance_parser.add_argument("--force", action="store_true", help="Allow a backward move")
    advance_parser.set_defaults(handler=advance)

    reject_parser = subparsers.add_parser("reject", help="Reject a campaign at 90%% back to 65%%")
    reject_parser.add_argument("campaign_id")
    reject_parser.add_argument("--organization-id", help="Organization for notifications (default: campaign's)")
    reject_parser.set_defaults(handler=reject)

    for sub in (advance_parser, reject_parser):
        sub.add_argument("--schema", required=True, help="Organization schema name (e.g. org_acme)")
        sub.add_argument("--user", required=True, help="Acting user ID")

    args = parser.parse_args()
    setup_structured_logging()

    response = args.handler(args)
    print(json.dumps(response, indent=2))
    if not response["success"]:
        sys.exit(1)


if __name__ == "__main__":
    main()
