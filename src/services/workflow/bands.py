"""Stage band handlers.

Each band is a policy object: a threshold, a settings toggle and an
``execute`` step that returns the side effects it caused. The engine runs the
bands in ascending threshold order; adding or removing a band does not touch
orchestration code.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from src.core.schemas import CampaignStatus, SideEffect, SideEffectAction
from src.services.workflow.errors import ExclusivityBlockedError
from src.services.workflow.interfaces import CampaignRecord, TenantWorkflow
from src.services.workflow.settings import ExclusivityPolicy, WorkflowAutomationSettings

logger = logging.getLogger(__name__)


@dataclass
class BandContext:
    """Everything a band handler needs for one transition."""

    campaign: CampaignRecord
    workflow: TenantWorkflow
    settings: WorkflowAutomationSettings
    user_id: str
    organization_id: str


class StageBand(ABC):
    threshold: int

    def enabled(self, settings: WorkflowAutomationSettings) -> bool:
        return settings.auto_stages.is_enabled(self.threshold)

    def should_run(self, starting_probability: int, target_stage: int, settings: WorkflowAutomationSettings) -> bool:
        """Newly crossed and not switched off for the organization."""
        return target_stage >= self.threshold and starting_probability < self.threshold and self.enabled(settings)

    @abstractmethod
    def execute(self, ctx: BandContext) -> list[SideEffect]:
        """Perform the band's one-time work. May raise to abort the transition."""


class ActivatePresaleBand(StageBand):
    """10%: draft campaigns become active pre-sale and get schedule builder access."""

    threshold = 10

    def execute(self, ctx: BandContext) -> list[SideEffect]:
        changed = ctx.workflow.campaigns.activate_presale(ctx.campaign.id, ctx.user_id)
        if changed:
            ctx.campaign.status = CampaignStatus.ACTIVE_PRESALE.value
        return [
            SideEffect.record(
                SideEffectAction.CAMPAIGN_ACTIVATED,
                "Campaign marked as active pre-sale",
                scheduleBuilderEnabled=True,
                statusChanged=changed,
            )
        ]


class ScheduleValidationBand(StageBand):
    """35%: snapshot baseline rates from the latest schedule for delta tracking."""

    threshold = 35

    def execute(self, ctx: BandContext) -> list[SideEffect]:
        schedule = ctx.workflow.campaigns.latest_schedule(ctx.campaign.id)
        if schedule is None or not schedule.items:
            # Missing schedule is informational only
            return [SideEffect.record(SideEffectAction.SCHEDULE_CHECK, "No valid schedule with items found")]

        baseline_rates = [
            {
                "rateCardPrice": float(item.rate_card_price),
                "negotiatedPrice": float(item.negotiated_price),
                "placementType": item.placement_type,
            }
            for item in schedule.items
        ]
        ctx.workflow.campaigns.mark_schedule_validated(schedule.id, baseline_rates)

        return [
            SideEffect.record(
                SideEffectAction.RATE_DELTA_TRACKING_STARTED,
                "Rate card delta tracking initiated",
                scheduleId=schedule.id,
                itemCount=len(schedule.items),
                baselineRates=baseline_rates,
            ),
            SideEffect.record(
                SideEffectAction.SCHEDULE_VALIDATED,
                "Schedule marked as validated with items",
                scheduleId=schedule.id,
            ),
        ]


class TalentAndExclusivityBand(StageBand):
    """65%: request talent sign-off where required, then enforce category exclusivity."""

    threshold = 65

    def execute(self, ctx: BandContext) -> list[SideEffect]:
        effects: list[SideEffect] = []
        campaign = ctx.campaign

        spot_types = ctx.workflow.campaigns.distinct_spot_types(campaign.id)
        if ctx.settings.talent_approvals.required_for(spot_types):
            approval_id = ctx.workflow.talent_approvals.create_talent_approval(
                campaign_id=campaign.id, requested_by=ctx.user_id, spot_types=spot_types
            )
            effects.append(
                SideEffect.record(
                    SideEffectAction.TALENT_APPROVAL_REQUESTED,
                    "Talent/Producer approval request created",
                    approvalId=approval_id,
                    spotTypes=spot_types,
                )
            )

        policy = ctx.settings.exclusivity.policy
        if policy is None or not campaign.category_id:
            return effects

        conflicts = ctx.workflow.conflicts.check_category_conflicts(
            campaign_id=campaign.id, category_id=campaign.category_id, policy=policy.value
        )
        if not conflicts:
            return effects

        blocked = policy == ExclusivityPolicy.BLOCK
        conflict_effect = SideEffect.record(
            SideEffectAction.EXCLUSIVITY_CONFLICT_DETECTED,
            f"Category exclusivity {'blocked' if blocked else 'warning'}",
            policy=policy.value,
            conflicts=conflicts,
        )
        if blocked:
            logger.warning(f"Exclusivity conflict blocks campaign {campaign.id}: {len(conflicts)} conflict(s)")
            raise ExclusivityBlockedError(conflict_effect, conflicts)

        logger.info(f"Exclusivity conflict on campaign {campaign.id} allowed under WARN policy")
        effects.append(conflict_effect)
        return effects


class InventoryReservationBand(StageBand):
    """90%: hold inventory with a TTL and move the campaign into reservations."""

    threshold = 90

    def execute(self, ctx: BandContext) -> list[SideEffect]:
        effects: list[SideEffect] = []
        inventory = ctx.settings.inventory

        if inventory.reserve_at90:
            reservation_ids = ctx.workflow.inventory.reserve_inventory(
                campaign_id=ctx.campaign.id, ttl_hours=inventory.reservation_ttl_hours, user_id=ctx.user_id
            )
            effects.append(
                SideEffect.record(
                    SideEffectAction.INVENTORY_RESERVED,
                    f"Inventory reserved with {inventory.reservation_ttl_hours} hour TTL",
                    reservationIds=reservation_ids,
                    ttlHours=inventory.reservation_ttl_hours,
                )
            )

        ctx.workflow.campaigns.set_status(ctx.campaign.id, CampaignStatus.IN_RESERVATIONS.value, ctx.user_id)
        ctx.campaign.status = CampaignStatus.IN_RESERVATIONS.value
        effects.append(
            SideEffect.record(SideEffectAction.MOVED_TO_RESERVATIONS, "Campaign moved to reservations pending approval")
        )
        return effects


class FinalizeOrderBand(StageBand):
    """100%: create the order and its downstream paperwork, then approve the campaign."""

    threshold = 100

    def execute(self, ctx: BandContext) -> list[SideEffect]:
        effects: list[SideEffect] = []
        workflow = ctx.workflow
        campaign = ctx.campaign

        order_id = workflow.orders.create_order(campaign, ctx.user_id)
        effects.append(
            SideEffect.record(
                SideEffectAction.ORDER_CREATED,
                "Campaign copied to Post-Sale (Order)",
                orderId=order_id,
                advertiserId=campaign.advertiser_id,
                agencyId=campaign.agency_id,
                totalAmount=float(campaign.total_budget) if campaign.total_budget is not None else None,
            )
        )

        ad_request_ids = workflow.orders.generate_ad_requests(order_id, campaign.id, ctx.user_id)
        effects.append(
            SideEffect.record(
                SideEffectAction.AD_REQUESTS_GENERATED,
                "Ad requests created for shows/talent",
                adRequestIds=ad_request_ids,
            )
        )

        contracts = ctx.settings.contracts
        if contracts.auto_generate:
            contract_id = workflow.contracts.generate_contract(
                order_id=order_id, template_id=contracts.template_id, user_id=ctx.user_id
            )
            effects.append(
                SideEffect.record(
                    SideEffectAction.CONTRACT_GENERATED,
                    f"Contract generated using template: {contracts.template_id}",
                    contractId=contract_id,
                    orderId=order_id,
                )
            )

        billing = ctx.settings.billing
        if billing is not None:
            billing_schedule_id = workflow.billing.create_billing_schedule(
                order_id=order_id,
                day_of_month=billing.invoice_day_of_month,
                timezone=billing.timezone,
                prebill_enabled=billing.prebill_when_no_terms,
                user_id=ctx.user_id,
            )
            effects.append(
                SideEffect.record(
                    SideEffectAction.BILLING_SCHEDULE_CREATED,
                    f"Monthly billing schedule created (day {billing.invoice_day_of_month})",
                    billingScheduleId=billing_schedule_id,
                    prebillEnabled=billing.prebill_when_no_terms,
                )
            )

        workflow.campaigns.set_status(campaign.id, CampaignStatus.APPROVED.value, ctx.user_id)
        campaign.status = CampaignStatus.APPROVED.value
        return effects


def default_bands() -> list[StageBand]:
    """The five pipeline bands in ascending order."""
    return [
        ActivatePresaleBand(),
        ScheduleValidationBand(),
        TalentAndExclusivityBand(),
        InventoryReservationBand(),
        FinalizeOrderBand(),
    ]
