"""Order and ad request creation at the 100% stage."""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.core.database.models import AdRequest, Order, ScheduledSpot, Show
from src.services.workflow.interfaces import CampaignRecord, OrderService

logger = logging.getLogger(__name__)


class SqlOrderService(OrderService):
    def __init__(self, session: Session):
        self.session = session

    def create_order(self, campaign: CampaignRecord, user_id: str) -> str:
        """Copy advertiser, agency and budget from the campaign as they are now.

        A campaign has at most one order; if it already has one (it reached 100% before a forced
        move back down), that order is returned unchanged.
        """
        existing = self.session.scalars(select(Order).where(Order.campaign_id == campaign.id)).first()
        if existing is not None:
            logger.info(f"Campaign {campaign.id} already has order {existing.id}")
            return existing.id

        order = Order(
            id=f"ord_{uuid.uuid4().hex[:16]}",
            campaign_id=campaign.id,
            advertiser_id=campaign.advertiser_id,
            agency_id=campaign.agency_id,
            total_amount=campaign.total_budget,
            status="confirmed",
            created_by=user_id,
        )
        self.session.add(order)
        self.session.flush()
        logger.info(f"Created order {order.id} for campaign {campaign.id}")
        return order.id

    def generate_ad_requests(self, order_id: str, campaign_id: str, user_id: str) -> list[str]:
        stmt = (
            select(Show)
            .join(ScheduledSpot, ScheduledSpot.show_id == Show.id)
            .where(ScheduledSpot.campaign_id == campaign_id)
            .distinct()
            .order_by(Show.id)
        )
        shows = self.session.scalars(stmt).all()
        existing = {
            ad_request.show_id: ad_request.id
            for ad_request in self.session.scalars(select(AdRequest).where(AdRequest.order_id == order_id)).all()
        }

        ad_request_ids = []
        created = 0
        for show in shows:
            if show.id in existing:
                ad_request_ids.append(existing[show.id])
                continue
            ad_request = AdRequest(
                id=f"adr_{uuid.uuid4().hex[:16]}",
                order_id=order_id,
                campaign_id=campaign_id,
                show_id=show.id,
                assigned_to_id=show.host_talent_id,
                title=f"Ad production - {show.name}",
                status="pending",
                created_by=user_id,
            )
            self.session.add(ad_request)
            ad_request_ids.append(ad_request.id)
            created += 1

        self.session.flush()
        logger.info(f"Generated {created} ad requests for order {order_id} ({len(existing)} already present)")
        return ad_request_ids
