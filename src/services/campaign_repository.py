"""Campaign persistence for the stage engine.

Every method works on the session of the current tenant unit of work; nothing
here commits.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.sql import func

from src.core.database.models import Campaign, CampaignActivity, Schedule, ScheduledSpot
from src.core.schemas import CampaignStatus
from src.services.workflow.interfaces import (
    CampaignRecord,
    CampaignRepository,
    ScheduleItemRecord,
    ScheduleRecord,
)

logger = logging.getLogger(__name__)


def campaign_to_record(campaign: Campaign) -> CampaignRecord:
    return CampaignRecord(
        id=campaign.id,
        organization_id=campaign.organization_id,
        name=campaign.name,
        advertiser_id=campaign.advertiser_id,
        probability=campaign.probability,
        status=campaign.status,
        agency_id=campaign.agency_id,
        category_id=campaign.category_id,
        total_budget=campaign.total_budget,
        start_date=campaign.start_date,
        end_date=campaign.end_date,
    )


class SqlCampaignRepository(CampaignRepository):
    def __init__(self, session: Session):
        self.session = session

    def get_for_update(self, campaign_id: str) -> CampaignRecord | None:
        stmt = select(Campaign).where(Campaign.id == campaign_id).with_for_update()
        campaign = self.session.scalars(stmt).first()
        if campaign is None:
            return None
        return campaign_to_record(campaign)

    def activate_presale(self, campaign_id: str, user_id: str) -> bool:
        stmt = (
            update(Campaign)
            .where(Campaign.id == campaign_id, Campaign.status == CampaignStatus.DRAFT.value)
            .values(
                status=CampaignStatus.ACTIVE_PRESALE.value,
                last_status_change_at=datetime.now(UTC),
                last_status_change_by=user_id,
                updated_at=func.now(),
            )
        )
        return self.session.execute(stmt).rowcount > 0

    def set_status(self, campaign_id: str, status: str, user_id: str) -> None:
        self.session.execute(
            update(Campaign)
            .where(Campaign.id == campaign_id)
            .values(
                status=status,
                last_status_change_at=datetime.now(UTC),
                last_status_change_by=user_id,
                updated_at=func.now(),
            )
        )

    def latest_schedule(self, campaign_id: str) -> ScheduleRecord | None:
        stmt = (
            select(Schedule)
            .where(Schedule.campaign_id == campaign_id)
            .options(selectinload(Schedule.items))
            .order_by(Schedule.created_at.desc())
            .limit(1)
        )
        schedule = self.session.scalars(stmt).first()
        if schedule is None:
            return None
        return ScheduleRecord(
            id=schedule.id,
            campaign_id=schedule.campaign_id,
            items=[
                ScheduleItemRecord(
                    id=item.id,
                    show_id=item.show_id,
                    air_date=item.air_date,
                    placement_type=item.placement_type,
                    rate_card_price=item.rate_card_price,
                    negotiated_price=item.negotiated_price,
                )
                for item in schedule.items
            ],
        )

    def mark_schedule_validated(self, schedule_id: str, rate_snapshot: list[dict[str, Any]]) -> None:
        schedule = self.session.get(Schedule, schedule_id)
        if schedule is None:
            logger.warning(f"Schedule {schedule_id} disappeared before validation")
            return
        schedule.status = "validated"
        schedule.validated_at = datetime.now(UTC)
        schedule.rate_snapshot = rate_snapshot
        self.session.flush()

    def distinct_spot_types(self, campaign_id: str) -> list[str]:
        stmt = select(ScheduledSpot.spot_type).where(ScheduledSpot.campaign_id == campaign_id).distinct()
        return sorted(self.session.scalars(stmt).all())

    def update_stage(self, campaign_id: str, probability: int, user_id: str, status: str | None = None) -> None:
        values: dict[str, Any] = {
            "probability": probability,
            "last_status_change_at": datetime.now(UTC),
            "last_status_change_by": user_id,
            "updated_at": func.now(),
        }
        if status is not None:
            values["status"] = status
        self.session.execute(update(Campaign).where(Campaign.id == campaign_id).values(**values))

    def record_activity(
        self,
        campaign_id: str,
        action: str,
        previous_stage: int,
        new_stage: int,
        user_id: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.session.add(
            CampaignActivity(
                campaign_id=campaign_id,
                action=action,
                previous_stage=previous_stage,
                new_stage=new_stage,
                actor_id=user_id,
                details=details,
            )
        )
        self.session.flush()
