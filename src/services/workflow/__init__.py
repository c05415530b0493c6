"""Campaign stage transition workflow."""

from src.services.workflow.errors import (
    BillingScheduleError,
    CampaignNotFoundError,
    ContractGenerationError,
    ExclusivityBlockedError,
    IllegalTransitionError,
    InventoryUnavailableError,
    StageTransitionError,
)
from src.services.workflow.idempotency import IdempotencyCache, InMemoryIdempotencyCache
from src.services.workflow.settings import WorkflowAutomationSettings
from src.services.workflow.stage_engine import StageEngine

__all__ = [
    "BillingScheduleError",
    "CampaignNotFoundError",
    "ContractGenerationError",
    "ExclusivityBlockedError",
    "IdempotencyCache",
    "IllegalTransitionError",
    "InMemoryIdempotencyCache",
    "InventoryUnavailableError",
    "StageEngine",
    "StageTransitionError",
    "WorkflowAutomationSettings",
]
