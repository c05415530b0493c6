"""Contracts between the stage engine and the services it drives.

The engine never touches SQL. It works through a ``TenantWorkflow``: one unit
of work scoped to an organization schema that exposes the campaign repository
and every collaborating service. All writes made through one workflow are
committed or rolled back together.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from src.services.workflow.settings import WorkflowAutomationSettings


@dataclass
class CampaignRecord:
    id: str
    organization_id: str
    name: str
    advertiser_id: str
    probability: int
    status: str
    agency_id: str | None = None
    category_id: str | None = None
    total_budget: Decimal | None = None
    start_date: date | None = None
    end_date: date | None = None


@dataclass
class ScheduleItemRecord:
    id: str
    show_id: str
    air_date: date
    placement_type: str
    rate_card_price: Decimal
    negotiated_price: Decimal


@dataclass
class ScheduleRecord:
    id: str
    campaign_id: str
    items: list[ScheduleItemRecord] = field(default_factory=list)


class CampaignRepository(ABC):
    """Campaign reads and writes inside a tenant schema."""

    @abstractmethod
    def get_for_update(self, campaign_id: str) -> CampaignRecord | None:
        """Load the campaign and hold a row lock until the unit of work ends."""

    @abstractmethod
    def activate_presale(self, campaign_id: str, user_id: str) -> bool:
        """Move a draft campaign to active_presale. Returns False if it was not draft."""

    @abstractmethod
    def set_status(self, campaign_id: str, status: str, user_id: str) -> None:
        pass

    @abstractmethod
    def latest_schedule(self, campaign_id: str) -> ScheduleRecord | None:
        """Most recently created schedule with its items."""

    @abstractmethod
    def mark_schedule_validated(self, schedule_id: str, rate_snapshot: list[dict[str, Any]]) -> None:
        pass

    @abstractmethod
    def distinct_spot_types(self, campaign_id: str) -> list[str]:
        pass

    @abstractmethod
    def update_stage(self, campaign_id: str, probability: int, user_id: str, status: str | None = None) -> None:
        """Persist the new probability; optionally reset status in the same write."""

    @abstractmethod
    def record_activity(
        self,
        campaign_id: str,
        action: str,
        previous_stage: int,
        new_stage: int,
        user_id: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        pass


class OrderService(ABC):
    @abstractmethod
    def create_order(self, campaign: CampaignRecord, user_id: str) -> str:
        """Create a confirmed order snapshotting advertiser, agency and budget."""

    @abstractmethod
    def generate_ad_requests(self, order_id: str, campaign_id: str, user_id: str) -> list[str]:
        """One ad request per distinct scheduled show, assigned to its host talent."""


class InventoryReservationService(ABC):
    @abstractmethod
    def reserve_inventory(self, campaign_id: str, ttl_hours: int, user_id: str) -> list[str]:
        """Hold every scheduled slot of the campaign; all or nothing."""

    @abstractmethod
    def release_inventory(self, campaign_id: str) -> int:
        """Release all active holds of the campaign. Returns how many were released."""

    @abstractmethod
    def expire_stale_reservations(self, now: datetime | None = None) -> int:
        pass


class TalentApprovalService(ABC):
    @abstractmethod
    def create_talent_approval(self, campaign_id: str, requested_by: str, spot_types: list[str]) -> str:
        pass


class ConflictChecker(ABC):
    @abstractmethod
    def check_category_conflicts(self, campaign_id: str, category_id: str, policy: str) -> list[dict[str, Any]]:
        """Pure read; returns JSON-compatible conflict descriptions."""


class ContractService(ABC):
    @abstractmethod
    def generate_contract(self, order_id: str, template_id: str, user_id: str) -> str:
        pass


class BillingScheduleService(ABC):
    @abstractmethod
    def create_billing_schedule(
        self, order_id: str, day_of_month: int, timezone: str, prebill_enabled: bool, user_id: str
    ) -> str:
        pass


class TenantWorkflow(ABC):
    """Unit of work over one organization schema."""

    campaigns: CampaignRepository
    orders: OrderService
    inventory: InventoryReservationService
    talent_approvals: TalentApprovalService
    conflicts: ConflictChecker
    contracts: ContractService
    billing: BillingScheduleService

    @abstractmethod
    def commit(self) -> None:
        pass

    @abstractmethod
    def rollback(self) -> None:
        pass


# Opens a unit of work for a schema name; leaving the context without commit() discards it
TenantWorkflowFactory = Callable[[str], AbstractContextManager[TenantWorkflow]]


class WorkflowSettingsProvider(ABC):
    @abstractmethod
    def get_settings(self, organization_id: str) -> WorkflowAutomationSettings:
        """Settings for the organization; defaults when it has none."""
