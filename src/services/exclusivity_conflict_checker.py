"""Category exclusivity conflict detection.

A campaign conflicts when, on a show it is scheduled on and during its flight:

- an active category exclusivity for the same category is held by another
  advertiser, or
- another live campaign (probability >= 65, not cancelled) from a different
  advertiser in the same category has spots on that show.

The checker only reads; what to do with conflicts (block or warn) is decided
by the caller's policy.
"""

import logging
from datetime import date
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from src.core.database.models import Campaign, CategoryExclusivity, ScheduledSpot
from src.core.schemas import CampaignStatus
from src.services.workflow.interfaces import ConflictChecker

logger = logging.getLogger(__name__)

LIVE_CAMPAIGN_PROBABILITY = 65


class SqlConflictChecker(ConflictChecker):
    def __init__(self, session: Session):
        self.session = session

    def check_category_conflicts(self, campaign_id: str, category_id: str, policy: str) -> list[dict[str, Any]]:
        campaign = self.session.get(Campaign, campaign_id)
        if campaign is None:
            return []

        spots = self.session.execute(
            select(ScheduledSpot.show_id, ScheduledSpot.air_date).where(ScheduledSpot.campaign_id == campaign_id)
        ).all()
        if not spots:
            return []

        show_ids = sorted({spot.show_id for spot in spots})
        flight_start, flight_end = self._flight_window(campaign, [spot.air_date for spot in spots])

        conflicts = self._exclusivity_conflicts(campaign, category_id, show_ids, flight_start, flight_end)
        conflicts.extend(self._competing_campaigns(campaign, category_id, show_ids, flight_start, flight_end))

        if conflicts:
            logger.info(
                f"Found {len(conflicts)} exclusivity conflict(s) for campaign {campaign_id} "
                f"in category {category_id} (policy {policy})"
            )
        return conflicts

    @staticmethod
    def _flight_window(campaign: Campaign, air_dates: list[date]) -> tuple[date, date]:
        return campaign.start_date or min(air_dates), campaign.end_date or max(air_dates)

    def _exclusivity_conflicts(
        self, campaign: Campaign, category_id: str, show_ids: list[str], flight_start: date, flight_end: date
    ) -> list[dict[str, Any]]:
        stmt = (
            select(CategoryExclusivity)
            .where(
                CategoryExclusivity.is_active.is_(True),
                CategoryExclusivity.category_id == category_id,
                CategoryExclusivity.show_id.in_(show_ids),
                CategoryExclusivity.start_date <= flight_end,
                CategoryExclusivity.end_date >= flight_start,
                or_(
                    CategoryExclusivity.advertiser_id.is_(None),
                    CategoryExclusivity.advertiser_id != campaign.advertiser_id,
                ),
                or_(CategoryExclusivity.campaign_id.is_(None), CategoryExclusivity.campaign_id != campaign.id),
            )
            .order_by(CategoryExclusivity.show_id, CategoryExclusivity.start_date)
        )
        return [
            {
                "type": "category_exclusivity",
                "exclusivityId": exclusivity.id,
                "showId": exclusivity.show_id,
                "advertiserId": exclusivity.advertiser_id,
                "campaignId": exclusivity.campaign_id,
                "startDate": exclusivity.start_date.isoformat(),
                "endDate": exclusivity.end_date.isoformat(),
            }
            for exclusivity in self.session.scalars(stmt).all()
        ]

    def _competing_campaigns(
        self, campaign: Campaign, category_id: str, show_ids: list[str], flight_start: date, flight_end: date
    ) -> list[dict[str, Any]]:
        stmt = (
            select(Campaign.id, Campaign.name, Campaign.advertiser_id, Campaign.probability, ScheduledSpot.show_id)
            .join(ScheduledSpot, ScheduledSpot.campaign_id == Campaign.id)
            .where(
                Campaign.id != campaign.id,
                Campaign.category_id == category_id,
                Campaign.advertiser_id != campaign.advertiser_id,
                Campaign.probability >= LIVE_CAMPAIGN_PROBABILITY,
                Campaign.status != CampaignStatus.CANCELLED.value,
                ScheduledSpot.show_id.in_(show_ids),
                ScheduledSpot.air_date >= flight_start,
                ScheduledSpot.air_date <= flight_end,
            )
            .distinct()
            .order_by(Campaign.id, ScheduledSpot.show_id)
        )
        return [
            {
                "type": "competing_campaign",
                "campaignId": row.id,
                "campaignName": row.name,
                "advertiserId": row.advertiser_id,
                "probability": row.probability,
                "showId": row.show_id,
            }
            for row in self.session.execute(stmt).all()
        ]
