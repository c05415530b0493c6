"""Exceptions raised inside a stage transition.

None of these escape ``StageEngine``; the engine turns them into the
``errors`` list of a failed ``StageTransitionResult``.
"""

from src.core.schemas import SideEffect


class StageTransitionError(Exception):
    """Base class for transition failures."""


class CampaignNotFoundError(StageTransitionError):
    def __init__(self, campaign_id: str):
        super().__init__("Campaign not found")
        self.campaign_id = campaign_id


class IllegalTransitionError(StageTransitionError):
    """Raised for moves the pipeline does not allow (backward without force, bad reject)."""


class ExclusivityBlockedError(StageTransitionError):
    """Category exclusivity conflict under the BLOCK policy.

    Carries the EXCLUSIVITY_CONFLICT_DETECTED record so the failed result can
    still describe the conflict.
    """

    def __init__(self, side_effect: SideEffect, conflicts: list[dict]):
        super().__init__("Category exclusivity conflict - transition blocked")
        self.side_effect = side_effect
        self.conflicts = conflicts


class CollaboratorError(StageTransitionError):
    """Base class for failures reported by a collaborating service."""


class InventoryUnavailableError(CollaboratorError):
    """A requested ad slot is already held by another campaign."""


class ContractGenerationError(CollaboratorError):
    pass


class BillingScheduleError(CollaboratorError):
    pass
