"""Per-organization workflow automation settings.

Stored as ``organizations.settings["workflowAutomation"]`` with camelCase keys:

    {
      "autoStages": {"at10": true, "at35": true, "at65": true, "at90": true, "at100": true},
      "exclusivity": {"policy": "BLOCK"},
      "inventory": {"reserveAt90": true, "reservationTtlHours": 72},
      "talentApprovals": {"hostRead": true, "endorsed": false},
      "contracts": {"autoGenerate": true, "emailTemplateId": "contract_default"},
      "billing": {"invoiceDayOfMonth": 15, "timezone": "America/Los_Angeles", "prebillWhenNoTerms": true}
    }

Anything missing falls back to the defaults below (or to ``WorkflowEngineConfig``).
"""

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.core.config import get_workflow_config

logger = logging.getLogger(__name__)

STAGE_THRESHOLDS = (10, 35, 65, 90, 100)
MAX_INVOICE_DAY = 28


class ExclusivityPolicy(str, Enum):
    BLOCK = "BLOCK"
    WARN = "WARN"


class _SettingsModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class AutoStages(_SettingsModel):
    at10: bool = True
    at35: bool = True
    at65: bool = True
    at90: bool = True
    at100: bool = True

    def is_enabled(self, threshold: int) -> bool:
        """Whether the band at ``threshold`` may run."""
        if threshold not in STAGE_THRESHOLDS:
            raise ValueError(f"Unknown stage threshold: {threshold}")
        return getattr(self, f"at{threshold}")


class ExclusivitySettings(_SettingsModel):
    policy: ExclusivityPolicy | None = None

    @field_validator("policy", mode="before")
    @classmethod
    def normalize_policy(cls, v):
        if isinstance(v, str):
            v = v.strip().upper()
            if not v:
                return None
            # Anything other than BLOCK only warns
            return v if v == ExclusivityPolicy.BLOCK.value else ExclusivityPolicy.WARN.value
        return v


class InventorySettings(_SettingsModel):
    reserve_at90: bool = True
    reservation_ttl_hours: int = Field(
        default_factory=lambda: get_workflow_config().default_reservation_ttl_hours, gt=0
    )


class TalentApprovalSettings(_SettingsModel):
    host_read: bool = False
    endorsed: bool = False

    def required_for(self, spot_types: list[str]) -> bool:
        """True if any scheduled spot type needs talent sign-off."""
        return ("host_read" in spot_types and self.host_read) or ("endorsement" in spot_types and self.endorsed)


class ContractSettings(_SettingsModel):
    auto_generate: bool = True
    email_template_id: str | None = None

    @property
    def template_id(self) -> str:
        return self.email_template_id or get_workflow_config().default_contract_template_id


class BillingSettings(_SettingsModel):
    """Billing preferences for the 100% band.

    Parsed on every transition. The invoice day is clamped into 1..28; the
    timezone is only checked when the 100% band creates the schedule
    (``next_invoice_date``).
    """

    invoice_day_of_month: int = Field(default_factory=lambda: get_workflow_config().default_invoice_day)
    timezone: str = Field(default_factory=lambda: get_workflow_config().default_timezone)
    prebill_when_no_terms: bool = False

    @field_validator("invoice_day_of_month")
    @classmethod
    def clamp_invoice_day(cls, v: int) -> int:
        clamped = min(max(v, 1), MAX_INVOICE_DAY)
        if clamped != v:
            logger.warning(f"Invoice day {v} is outside 1-{MAX_INVOICE_DAY}, using {clamped}")
        return clamped


class WorkflowAutomationSettings(_SettingsModel):
    auto_stages: AutoStages = Field(default_factory=AutoStages)
    exclusivity: ExclusivitySettings = Field(default_factory=ExclusivitySettings)
    inventory: InventorySettings = Field(default_factory=InventorySettings)
    talent_approvals: TalentApprovalSettings = Field(default_factory=TalentApprovalSettings)
    contracts: ContractSettings = Field(default_factory=ContractSettings)
    # No billing block means no billing schedule at 100%
    billing: BillingSettings | None = None

    @classmethod
    def from_organization_settings(cls, settings: dict[str, Any] | None) -> "WorkflowAutomationSettings":
        """Build from an organization's ``settings`` JSON; missing pieces take defaults."""
        workflow = (settings or {}).get("workflowAutomation") or {}
        return cls.model_validate(workflow)
