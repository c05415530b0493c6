"""SQLAlchemy models for database schema.

Shared tables (organizations, notifications) live in the default schema.
Everything else belongs to an organization and is declared against the
placeholder schema ``tenant``; sessions opened with ``get_tenant_session``
translate it to the organization's real schema (``org_<slug>``).
"""

import logging
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    DECIMAL,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from src.core.database.json_type import JSONType

logger = logging.getLogger(__name__)

# Placeholder schema name rewritten per organization via schema_translate_map
TENANT_SCHEMA = "tenant"


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models using SQLAlchemy 2.0 declarative style."""

    pass


# ---------------------------------------------------------------------------
# Shared schema
# ---------------------------------------------------------------------------


class Organization(Base):
    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    schema_name: Mapped[str] = mapped_column(String(63), unique=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Holds {"workflowAutomation": {...}} among other organization settings
    settings: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    notifications = relationship("Notification", back_populates="organization", cascade="all, delete-orphan")


class Notification(Base):
    """In-app notification produced by workflow events."""

    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    organization_id: Mapped[str] = mapped_column(
        String(50), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    campaign_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    data: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())

    organization = relationship("Organization", back_populates="notifications")

    __table_args__ = (
        Index("idx_notifications_org", "organization_id"),
        Index("idx_notifications_created", "created_at"),
    )


# ---------------------------------------------------------------------------
# Per-organization schema
# ---------------------------------------------------------------------------


class Advertiser(Base):
    __tablename__ = "advertisers"
    __table_args__ = {"schema": TENANT_SCHEMA}

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Net payment days; 0 means no credit terms
    credit_terms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class Agency(Base):
    __tablename__ = "agencies"
    __table_args__ = {"schema": TENANT_SCHEMA}

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class Category(Base):
    __tablename__ = "categories"
    __table_args__ = {"schema": TENANT_SCHEMA}

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    parent_id: Mapped[str | None] = mapped_column(String(100), nullable=True)


class Show(Base):
    __tablename__ = "shows"
    __table_args__ = {"schema": TENANT_SCHEMA}

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    host_talent_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    producer_id: Mapped[str | None] = mapped_column(String(100), nullable=True)


class Campaign(Base):
    """A sales opportunity moving through the probability pipeline."""

    __tablename__ = "campaigns"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    organization_id: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    advertiser_id: Mapped[str] = mapped_column(String(100), ForeignKey(f"{TENANT_SCHEMA}.advertisers.id"))
    agency_id: Mapped[str | None] = mapped_column(
        String(100), ForeignKey(f"{TENANT_SCHEMA}.agencies.id"), nullable=True
    )
    category_id: Mapped[str | None] = mapped_column(
        String(100), ForeignKey(f"{TENANT_SCHEMA}.categories.id"), nullable=True
    )
    total_budget: Mapped[Decimal | None] = mapped_column(DECIMAL(15, 2), nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    probability: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="draft")
    last_status_change_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_status_change_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    advertiser = relationship("Advertiser")
    agency = relationship("Agency")
    schedules = relationship("Schedule", back_populates="campaign", cascade="all, delete-orphan")
    scheduled_spots = relationship("ScheduledSpot", back_populates="campaign", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("probability >= 0 AND probability <= 100", name="ck_campaigns_probability_range"),
        Index("idx_campaigns_status", "status"),
        Index("idx_campaigns_category", "category_id"),
        {"schema": TENANT_SCHEMA},
    )


class Schedule(Base):
    """Proposed placement plan built in the schedule builder."""

    __tablename__ = "schedules"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    campaign_id: Mapped[str] = mapped_column(
        String(100), ForeignKey(f"{TENANT_SCHEMA}.campaigns.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")  # draft, validated
    validated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # Baseline rates captured at 35% for later delta tracking
    rate_snapshot: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    campaign = relationship("Campaign", back_populates="schedules")
    items = relationship("ScheduleItem", back_populates="schedule", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_schedules_campaign", "campaign_id", "created_at"),
        {"schema": TENANT_SCHEMA},
    )


class ScheduleItem(Base):
    __tablename__ = "schedule_items"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    schedule_id: Mapped[str] = mapped_column(
        String(100), ForeignKey(f"{TENANT_SCHEMA}.schedules.id", ondelete="CASCADE"), nullable=False
    )
    show_id: Mapped[str] = mapped_column(String(100), ForeignKey(f"{TENANT_SCHEMA}.shows.id"), nullable=False)
    air_date: Mapped[date] = mapped_column(Date, nullable=False)
    placement_type: Mapped[str] = mapped_column(String(20), nullable=False)  # pre-roll, mid-roll, post-roll
    rate_card_price: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False)
    negotiated_price: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False)

    schedule = relationship("Schedule", back_populates="items")

    __table_args__ = (
        Index("idx_schedule_items_schedule", "schedule_id"),
        {"schema": TENANT_SCHEMA},
    )


class ScheduledSpot(Base):
    """A committed spot on a show episode for a campaign."""

    __tablename__ = "scheduled_spots"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    campaign_id: Mapped[str] = mapped_column(
        String(100), ForeignKey(f"{TENANT_SCHEMA}.campaigns.id", ondelete="CASCADE"), nullable=False
    )
    show_id: Mapped[str] = mapped_column(String(100), ForeignKey(f"{TENANT_SCHEMA}.shows.id"), nullable=False)
    air_date: Mapped[date] = mapped_column(Date, nullable=False)
    placement_type: Mapped[str] = mapped_column(String(20), nullable=False)
    spot_type: Mapped[str] = mapped_column(String(20), nullable=False)  # host_read, endorsement, pre_produced
    rate: Mapped[Decimal | None] = mapped_column(DECIMAL(10, 2), nullable=True)

    campaign = relationship("Campaign", back_populates="scheduled_spots")

    __table_args__ = (
        CheckConstraint(
            "spot_type IN ('host_read', 'endorsement', 'pre_produced')", name="ck_scheduled_spots_spot_type"
        ),
        Index("idx_scheduled_spots_campaign", "campaign_id"),
        Index("idx_scheduled_spots_slot", "show_id", "air_date", "placement_type"),
        {"schema": TENANT_SCHEMA},
    )


class CategoryExclusivity(Base):
    """Exclusive hold of an advertising category on a show for a date window."""

    __tablename__ = "category_exclusivities"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    show_id: Mapped[str] = mapped_column(String(100), ForeignKey(f"{TENANT_SCHEMA}.shows.id"), nullable=False)
    category_id: Mapped[str] = mapped_column(String(100), nullable=False)
    advertiser_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    campaign_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("idx_category_exclusivities_lookup", "is_active", "show_id", "category_id"),
        {"schema": TENANT_SCHEMA},
    )


class InventoryReservation(Base):
    """Time-bounded hold on one ad slot for a campaign."""

    __tablename__ = "inventory_reservations"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    campaign_id: Mapped[str] = mapped_column(
        String(100), ForeignKey(f"{TENANT_SCHEMA}.campaigns.id", ondelete="CASCADE"), nullable=False
    )
    scheduled_spot_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    show_id: Mapped[str] = mapped_column(String(100), nullable=False)
    air_date: Mapped[date] = mapped_column(Date, nullable=False)
    placement_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="reserved")
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    released_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            "status IN ('reserved', 'released', 'expired', 'confirmed')", name="ck_inventory_reservations_status"
        ),
        Index("idx_inventory_reservations_campaign", "campaign_id", "status"),
        Index("idx_inventory_reservations_slot", "show_id", "air_date", "placement_type", "status"),
        {"schema": TENANT_SCHEMA},
    )


class TalentApprovalRequest(Base):
    __tablename__ = "talent_approval_requests"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    campaign_id: Mapped[str] = mapped_column(
        String(100), ForeignKey(f"{TENANT_SCHEMA}.campaigns.id", ondelete="CASCADE"), nullable=False
    )
    spot_types: Mapped[list] = mapped_column(JSONType, nullable=False)
    show_ids: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    requested_by: Mapped[str] = mapped_column(String(100), nullable=False)
    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    responded_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'denied', 'expired')", name="ck_talent_approval_requests_status"
        ),
        Index("idx_talent_approval_requests_campaign", "campaign_id"),
        {"schema": TENANT_SCHEMA},
    )


class Order(Base):
    """Post-sale order. Advertiser, agency and total are copied from the campaign."""

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    campaign_id: Mapped[str] = mapped_column(
        String(100), ForeignKey(f"{TENANT_SCHEMA}.campaigns.id"), nullable=False, unique=True
    )
    advertiser_id: Mapped[str] = mapped_column(String(100), nullable=False)
    agency_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    total_amount: Mapped[Decimal | None] = mapped_column(DECIMAL(15, 2), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="confirmed")
    contract_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    campaign = relationship("Campaign")
    ad_requests = relationship("AdRequest", back_populates="order", cascade="all, delete-orphan")

    __table_args__ = {"schema": TENANT_SCHEMA}


class AdRequest(Base):
    """Production work item for one show (and its host talent) on an order."""

    __tablename__ = "ad_requests"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    order_id: Mapped[str] = mapped_column(
        String(100), ForeignKey(f"{TENANT_SCHEMA}.orders.id", ondelete="CASCADE"), nullable=False
    )
    campaign_id: Mapped[str] = mapped_column(String(100), nullable=False)
    show_id: Mapped[str] = mapped_column(String(100), ForeignKey(f"{TENANT_SCHEMA}.shows.id"), nullable=False)
    assigned_to_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    order = relationship("Order", back_populates="ad_requests")

    __table_args__ = (
        Index("idx_ad_requests_order", "order_id"),
        Index("idx_ad_requests_show", "show_id"),
        {"schema": TENANT_SCHEMA},
    )


class ContractTemplate(Base):
    __tablename__ = "contract_templates"
    __table_args__ = {"schema": TENANT_SCHEMA}

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    html_template: Mapped[str] = mapped_column(Text, nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class Contract(Base):
    __tablename__ = "contracts"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    order_id: Mapped[str] = mapped_column(
        String(100), ForeignKey(f"{TENANT_SCHEMA}.orders.id", ondelete="CASCADE"), nullable=False
    )
    template_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    content: Mapped[str] = mapped_column(Text, nullable=False)
    variables: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("idx_contracts_order", "order_id"),
        {"schema": TENANT_SCHEMA},
    )


class BillingSchedule(Base):
    """Recurring monthly invoice schedule for an order."""

    __tablename__ = "billing_schedules"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    order_id: Mapped[str] = mapped_column(
        String(100), ForeignKey(f"{TENANT_SCHEMA}.orders.id", ondelete="CASCADE"), nullable=False
    )
    schedule_type: Mapped[str] = mapped_column(String(20), nullable=False, default="monthly")
    day_of_month: Mapped[int] = mapped_column(Integer, nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False)
    next_invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    prebill_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        CheckConstraint("day_of_month >= 1 AND day_of_month <= 28", name="ck_billing_schedules_day"),
        UniqueConstraint("order_id", name="uq_billing_schedules_order"),
        {"schema": TENANT_SCHEMA},
    )


class CampaignActivity(Base):
    """Audit trail of pipeline stage changes."""

    __tablename__ = "campaign_activities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    campaign_id: Mapped[str] = mapped_column(String(100), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    previous_stage: Mapped[int] = mapped_column(Integer, nullable=False)
    new_stage: Mapped[int] = mapped_column(Integer, nullable=False)
    actor_id: Mapped[str] = mapped_column(String(100), nullable=False)
    details: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("idx_campaign_activities_campaign", "campaign_id", "created_at"),
        {"schema": TENANT_SCHEMA},
    )


def tenant_tables() -> list:
    """Tables created inside each organization schema, in dependency order."""
    return [table for table in Base.metadata.sorted_tables if table.schema == TENANT_SCHEMA]


def shared_tables() -> list:
    """Tables created once in the default schema."""
    return [table for table in Base.metadata.sorted_tables if table.schema is None]
