"""Pydantic models exchanged with callers of the stage engine.

Results serialize with camelCase keys (``model_dump(by_alias=True)``) so they
can be returned verbatim by the API layer:

    {"success": true, "previousStage": 0, "currentStage": 35,
     "sideEffects": [{"action": "CAMPAIGN_ACTIVATED", ...}], "errors": []}
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CampaignStatus(str, Enum):
    """Campaign status values. Status follows the probability band except on rejection."""

    DRAFT = "draft"
    ACTIVE_PRESALE = "active_presale"
    IN_RESERVATIONS = "in_reservations"
    NEEDS_REVISION = "needs_revision"
    APPROVED = "approved"
    CANCELLED = "cancelled"

    @classmethod
    def for_probability(cls, probability: int) -> "CampaignStatus":
        """Status implied by the highest band at or below ``probability``."""
        if probability >= 100:
            return cls.APPROVED
        if probability >= 90:
            return cls.IN_RESERVATIONS
        if probability >= 10:
            return cls.ACTIVE_PRESALE
        return cls.DRAFT


class SideEffectAction(str, Enum):
    """Tags for entries in a transition's side-effect log."""

    CAMPAIGN_ACTIVATED = "CAMPAIGN_ACTIVATED"
    RATE_DELTA_TRACKING_STARTED = "RATE_DELTA_TRACKING_STARTED"
    SCHEDULE_VALIDATED = "SCHEDULE_VALIDATED"
    SCHEDULE_CHECK = "SCHEDULE_CHECK"
    TALENT_APPROVAL_REQUESTED = "TALENT_APPROVAL_REQUESTED"
    EXCLUSIVITY_CONFLICT_DETECTED = "EXCLUSIVITY_CONFLICT_DETECTED"
    INVENTORY_RESERVED = "INVENTORY_RESERVED"
    MOVED_TO_RESERVATIONS = "MOVED_TO_RESERVATIONS"
    ORDER_CREATED = "ORDER_CREATED"
    AD_REQUESTS_GENERATED = "AD_REQUESTS_GENERATED"
    CONTRACT_GENERATED = "CONTRACT_GENERATED"
    BILLING_SCHEDULE_CREATED = "BILLING_SCHEDULE_CREATED"
    INVENTORY_RELEASED = "INVENTORY_RELEASED"
    STAGE_FORCED_BACKWARD = "STAGE_FORCED_BACKWARD"


class SideEffect(BaseModel):
    """One entry of the append-only side-effect log.

    Action-specific fields (``scheduleId``, ``reservationIds``, ...) are kept as
    extra attributes and serialized as given.
    """

    model_config = ConfigDict(extra="allow", use_enum_values=True)

    action: SideEffectAction
    description: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def record(cls, action: SideEffectAction, description: str, **fields: Any) -> "SideEffect":
        """Build a side effect stamped with the current UTC time."""
        return cls(action=action, description=description, **fields)

    @property
    def details(self) -> dict[str, Any]:
        """Action-specific fields only."""
        return dict(self.model_extra or {})


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StageTransitionRequest(_CamelModel):
    """Input to ``StageEngine.transition_to_stage``.

    ``target_stage`` is range-checked by the engine so an out-of-range value
    comes back as a failed result rather than a validation exception.
    """

    campaign_id: str
    target_stage: int
    organization_id: str
    schema_name: str
    user_id: str
    idempotency_key: str | None = None
    force: bool = False


class StageTransitionResult(_CamelModel):
    """Outcome and audit record of one transition."""

    success: bool
    previous_stage: int
    current_stage: int
    side_effects: list[SideEffect] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @property
    def actions(self) -> list[str]:
        return [effect.action for effect in self.side_effects]

    def to_response(self) -> dict[str, Any]:
        """JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
