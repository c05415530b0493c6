"""Talent/producer approval requests for host-read and endorsed spots."""

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.core.database.models import ScheduledSpot, TalentApprovalRequest
from src.services.workflow.interfaces import TalentApprovalService

logger = logging.getLogger(__name__)


class SqlTalentApprovalService(TalentApprovalService):
    def __init__(self, session: Session):
        self.session = session

    def create_talent_approval(self, campaign_id: str, requested_by: str, spot_types: list[str]) -> str:
        """Open a pending approval covering the shows that carry the given spot types.

        The request does not block the pipeline; talent answers it asynchronously. A campaign keeps
        one pending request: running the band again (after a rejection or forced move) widens the
        pending request with any new spot types and shows instead of opening another.
        """
        if not spot_types:
            raise ValueError("At least one spot type is required for a talent approval")

        show_ids = self.session.scalars(
            select(ScheduledSpot.show_id)
            .where(ScheduledSpot.campaign_id == campaign_id, ScheduledSpot.spot_type.in_(spot_types))
            .distinct()
        ).all()

        pending = self.session.scalars(
            select(TalentApprovalRequest)
            .where(TalentApprovalRequest.campaign_id == campaign_id, TalentApprovalRequest.status == "pending")
            .order_by(TalentApprovalRequest.requested_at.desc())
        ).first()
        if pending is not None:
            pending.spot_types = sorted(set(pending.spot_types or []) | set(spot_types))
            pending.show_ids = sorted(set(pending.show_ids or []) | set(show_ids))
            self.session.flush()
            logger.info(f"Talent approval {pending.id} still pending for campaign {campaign_id}, scope updated")
            return pending.id

        approval = TalentApprovalRequest(
            id=f"tap_{uuid.uuid4().hex[:16]}",
            campaign_id=campaign_id,
            spot_types=sorted(set(spot_types)),
            show_ids=sorted(show_ids),
            status="pending",
            requested_by=requested_by,
            requested_at=datetime.now(UTC),
        )
        self.session.add(approval)
        self.session.flush()

        logger.info(f"Talent approval {approval.id} requested for campaign {campaign_id} ({', '.join(spot_types)})")
        return approval.id
