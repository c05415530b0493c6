"""Recurring monthly billing schedules for orders."""

import logging
import uuid
from datetime import UTC, date, datetime

import pytz
from sqlalchemy import select
from sqlalchemy.orm import Session

from src.core.database.models import BillingSchedule, Order
from src.services.workflow.errors import BillingScheduleError
from src.services.workflow.interfaces import BillingScheduleService

logger = logging.getLogger(__name__)


def next_invoice_date(day_of_month: int, timezone: str, now: datetime | None = None) -> date:
    """First ``day_of_month`` strictly after today in ``timezone``.

    Example:
        >>> next_invoice_date(15, "UTC", datetime(2025, 3, 10, tzinfo=UTC))
        datetime.date(2025, 3, 15)
        >>> next_invoice_date(15, "UTC", datetime(2025, 12, 20, tzinfo=UTC))
        datetime.date(2026, 1, 15)
    """
    if not 1 <= day_of_month <= 28:
        raise BillingScheduleError(f"Invoice day must be between 1 and 28, got {day_of_month}")
    try:
        tz = pytz.timezone(timezone)
    except pytz.UnknownTimeZoneError as e:
        raise BillingScheduleError(f"Unknown billing timezone: {timezone}") from e

    now = now or datetime.now(UTC)
    today = now.astimezone(tz).date()
    if today.day < day_of_month:
        return today.replace(day=day_of_month)
    if today.month == 12:
        return date(today.year + 1, 1, day_of_month)
    return date(today.year, today.month + 1, day_of_month)


class SqlBillingScheduleService(BillingScheduleService):
    def __init__(self, session: Session):
        self.session = session

    def create_billing_schedule(
        self, order_id: str, day_of_month: int, timezone: str, prebill_enabled: bool, user_id: str
    ) -> str:
        """Create the monthly invoice schedule for an order.

        An order has at most one schedule; an existing one is returned as is.

        Raises:
            BillingScheduleError: If the order is missing or the inputs are invalid
        """
        order = self.session.get(Order, order_id)
        if order is None:
            raise BillingScheduleError(f"Order {order_id} not found")

        existing = self.session.scalars(select(BillingSchedule).where(BillingSchedule.order_id == order_id)).first()
        if existing is not None:
            logger.info(f"Order {order_id} already has billing schedule {existing.id}")
            return existing.id

        schedule = BillingSchedule(
            id=f"bsc_{uuid.uuid4().hex[:16]}",
            order_id=order_id,
            schedule_type="monthly",
            day_of_month=day_of_month,
            timezone=timezone,
            next_invoice_date=next_invoice_date(day_of_month, timezone),
            prebill_enabled=bool(prebill_enabled),
            is_active=True,
            created_by=user_id,
        )
        self.session.add(schedule)
        self.session.flush()

        logger.info(
            f"Billing schedule {schedule.id} for order {order_id}: day {day_of_month} ({timezone}), "
            f"next invoice {schedule.next_invoice_date.isoformat()}"
        )
        return schedule.id
