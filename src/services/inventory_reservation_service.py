"""Inventory holds for campaigns entering reservations (90%).

A slot is identified by (show, air date, placement type). A campaign holds one
reservation per scheduled spot; a slot held by another campaign, and not yet
expired, cannot be reserved. Reservations are written in the caller's session,
so a failed transition leaves no partial holds.
"""

import logging
import uuid
from datetime import UTC, datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from src.core.database.models import InventoryReservation, ScheduledSpot
from src.services.workflow.errors import InventoryUnavailableError
from src.services.workflow.interfaces import InventoryReservationService

logger = logging.getLogger(__name__)

RESERVED = "reserved"


class SqlInventoryReservationService(InventoryReservationService):
    def __init__(self, session: Session):
        self.session = session

    def reserve_inventory(self, campaign_id: str, ttl_hours: int, user_id: str) -> list[str]:
        """Reserve every scheduled spot of the campaign not already held by it.

        Raises:
            ValueError: If ttl_hours is not positive
            InventoryUnavailableError: If any slot is held by another campaign
        """
        if ttl_hours <= 0:
            raise ValueError("Reservation TTL must be positive")

        now = datetime.now(UTC)
        expires_at = now + timedelta(hours=ttl_hours)

        spots = self.session.scalars(
            select(ScheduledSpot)
            .where(ScheduledSpot.campaign_id == campaign_id)
            .order_by(ScheduledSpot.air_date, ScheduledSpot.show_id)
        ).all()
        if not spots:
            logger.info(f"Campaign {campaign_id} has no scheduled spots to reserve")
            return []

        # Lock live holds on the affected shows so concurrent reservations serialize
        active = self.session.scalars(
            select(InventoryReservation)
            .where(
                InventoryReservation.status == RESERVED,
                InventoryReservation.expires_at > now,
                InventoryReservation.show_id.in_(sorted({spot.show_id for spot in spots})),
            )
            .with_for_update()
        ).all()

        held_by_others = {
            (r.show_id, r.air_date, r.placement_type): r.campaign_id for r in active if r.campaign_id != campaign_id
        }
        already_held = {r.scheduled_spot_id for r in active if r.campaign_id == campaign_id}

        reservations = []
        for spot in spots:
            slot = (spot.show_id, spot.air_date, spot.placement_type)
            if slot in held_by_others:
                raise InventoryUnavailableError(
                    f"Inventory unavailable: {spot.placement_type} on show {spot.show_id} for "
                    f"{spot.air_date.isoformat()} is reserved by campaign {held_by_others[slot]}"
                )
            if spot.id in already_held:
                continue
            reservations.append(
                InventoryReservation(
                    id=f"res_{uuid.uuid4().hex[:16]}",
                    campaign_id=campaign_id,
                    scheduled_spot_id=spot.id,
                    show_id=spot.show_id,
                    air_date=spot.air_date,
                    placement_type=spot.placement_type,
                    status=RESERVED,
                    expires_at=expires_at,
                    created_by=user_id,
                )
            )

        self.session.add_all(reservations)
        self.session.flush()
        logger.info(f"Reserved {len(reservations)} slots for campaign {campaign_id} until {expires_at.isoformat()}")
        return [reservation.id for reservation in reservations]

    def release_inventory(self, campaign_id: str) -> int:
        stmt = (
            update(InventoryReservation)
            .where(InventoryReservation.campaign_id == campaign_id, InventoryReservation.status == RESERVED)
            .values(status="released", released_at=datetime.now(UTC))
        )
        released = self.session.execute(stmt).rowcount
        logger.info(f"Released {released} reservations for campaign {campaign_id}")
        return released

    def expire_stale_reservations(self, now: datetime | None = None) -> int:
        """Mark holds whose TTL has elapsed as expired."""
        now = now or datetime.now(UTC)
        stmt = (
            update(InventoryReservation)
            .where(InventoryReservation.status == RESERVED, InventoryReservation.expires_at <= now)
            .values(status="expired")
        )
        expired = self.session.execute(stmt).rowcount
        if expired:
            logger.info(f"Expired {expired} stale inventory reservations")
        return expired
