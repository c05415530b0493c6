"""Campaign stage transition engine.

Moves a campaign's win probability forward through the pipeline and runs the
one-time work attached to each newly crossed band (10/35/65/90/100):

    engine = build_stage_engine()
    result = engine.transition_to_stage(
        StageTransitionRequest(campaign_id="cmp_1", target_stage=90, organization_id="org_1",
                               schema_name="org_acme", user_id="usr_1", idempotency_key="req-42")
    )
    if not result.success:
        print(result.errors)

A transition is a single unit of work: the campaign row is locked, every band
writes through the same session, and nothing is committed unless the whole
cascade succeeds. Notifications go out after the commit. No exception escapes
either public method; failures come back in ``result.errors``.
"""

import logging
import time
from collections.abc import Callable

from src.core.config import get_workflow_config
from src.core.logging_config import workflow_structured_logger
from src.core.metrics import (
    idempotent_replays_total,
    stage_band_executions_total,
    stage_transition_duration,
    stage_transition_total,
)
from src.core.schemas import (
    CampaignStatus,
    SideEffect,
    SideEffectAction,
    StageTransitionRequest,
    StageTransitionResult,
)
from src.core.utils.tenant_utils import validate_schema_name
from src.services.workflow.bands import BandContext, StageBand, default_bands
from src.services.workflow.errors import (
    CampaignNotFoundError,
    ExclusivityBlockedError,
    IllegalTransitionError,
    StageTransitionError,
)
from src.services.workflow.idempotency import IdempotencyCache, InMemoryIdempotencyCache
from src.services.workflow.interfaces import CampaignRecord, TenantWorkflowFactory, WorkflowSettingsProvider
from src.services.workflow.notifications import (
    DomainEvent,
    NotificationPublisher,
    publish_safely,
    rejection_events,
    transition_events,
)

logger = logging.getLogger(__name__)

MIN_STAGE = 0
MAX_STAGE = 100
REJECTION_STAGE = 65


class StageEngine:
    """Orchestrates stage transitions for campaigns in any organization schema."""

    def __init__(
        self,
        open_workflow: TenantWorkflowFactory,
        settings_provider: WorkflowSettingsProvider,
        publisher: NotificationPublisher,
        cache: IdempotencyCache | None = None,
        bands: list[StageBand] | None = None,
        idempotency_ttl_seconds: int | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._open_workflow = open_workflow
        self._settings_provider = settings_provider
        self._publisher = publisher
        self._cache = cache if cache is not None else InMemoryIdempotencyCache()
        self._bands = sorted(bands if bands is not None else default_bands(), key=lambda band: band.threshold)
        self._ttl_seconds = idempotency_ttl_seconds or get_workflow_config().idempotency_ttl_seconds
        self._clock = clock

    @property
    def bands(self) -> list[StageBand]:
        return list(self._bands)

    def cache_key(self, request: StageTransitionRequest) -> str:
        """Caller key, or one derived from the request and the current time; scoped to the schema."""
        key = request.idempotency_key or f"{request.campaign_id}-{request.target_stage}-{int(self._clock() * 1000)}"
        return f"{request.schema_name}:{key}"

    def transition_to_stage(self, request: StageTransitionRequest) -> StageTransitionResult:
        cache_key = self.cache_key(request)
        cached = self._cache.get(cache_key)
        if cached is not None:
            logger.info(f"Idempotent response for transition {cache_key}")
            idempotent_replays_total.inc()
            stage_transition_total.labels(operation="transition", outcome="replayed").inc()
            return cached

        start = time.perf_counter()
        result, outcome, events = self._run_transition(request)
        duration = time.perf_counter() - start

        if result.success:
            self._cache.set(cache_key, result, self._ttl_seconds)
            self._publish(events)

        stage_transition_total.labels(operation="transition", outcome=outcome).inc()
        stage_transition_duration.labels(operation="transition").observe(duration)
        workflow_structured_logger.log_stage_transition(
            campaign_id=request.campaign_id,
            schema_name=request.schema_name,
            previous_stage=result.previous_stage,
            target_stage=request.target_stage,
            success=result.success,
            actions=result.actions,
            errors=result.errors,
            duration_ms=duration * 1000,
        )
        return result

    def _run_transition(
        self, request: StageTransitionRequest
    ) -> tuple[StageTransitionResult, str, list[DomainEvent]]:
        previous_stage = 0
        side_effects: list[SideEffect] = []

        try:
            if not MIN_STAGE <= request.target_stage <= MAX_STAGE:
                raise ValueError(
                    f"Target stage must be between {MIN_STAGE} and {MAX_STAGE}, got {request.target_stage}"
                )
            validate_schema_name(request.schema_name)

            settings = self._settings_provider.get_settings(request.organization_id)

            with self._open_workflow(request.schema_name) as workflow:
                campaign = workflow.campaigns.get_for_update(request.campaign_id)
                if campaign is None:
                    raise CampaignNotFoundError(request.campaign_id)

                previous_stage = campaign.probability
                target = request.target_stage
                if target < previous_stage and not request.force:
                    raise IllegalTransitionError(f"Cannot transition backwards from {previous_stage}% to {target}%")

                ctx = BandContext(
                    campaign=campaign,
                    workflow=workflow,
                    settings=settings,
                    user_id=request.user_id,
                    organization_id=request.organization_id,
                )
                # Guards use the probability loaded at the start of this call
                for band in self._bands:
                    if not band.should_run(previous_stage, target, settings):
                        continue
                    logger.debug(f"Running {band.threshold}% band for campaign {campaign.id}")
                    side_effects.extend(band.execute(ctx))
                    stage_band_executions_total.labels(band=str(band.threshold)).inc()

                reset_status = None
                if target < previous_stage:
                    reset_status = CampaignStatus.for_probability(target).value
                    side_effects.append(
                        SideEffect.record(
                            SideEffectAction.STAGE_FORCED_BACKWARD,
                            f"Stage forced backward from {previous_stage}% to {target}%",
                            status=reset_status,
                        )
                    )

                workflow.campaigns.update_stage(campaign.id, target, request.user_id, status=reset_status)
                workflow.campaigns.record_activity(
                    campaign_id=campaign.id,
                    action="stage_forced_backward" if reset_status else "stage_transition",
                    previous_stage=previous_stage,
                    new_stage=target,
                    user_id=request.user_id,
                    details={"actions": [effect.action for effect in side_effects]},
                )
                workflow.commit()

        except ExclusivityBlockedError as e:
            return self._failed(previous_stage, str(e), [e.side_effect]), "blocked", []
        except (StageTransitionError, ValueError) as e:
            logger.warning(f"Stage transition rejected for campaign {request.campaign_id}: {e}")
            return self._failed(previous_stage, str(e)), "failed", []
        except Exception as e:
            logger.exception(f"Stage transition error for campaign {request.campaign_id}")
            return self._failed(previous_stage, str(e) or type(e).__name__), "error", []

        result = StageTransitionResult(
            success=True,
            previous_stage=previous_stage,
            current_stage=request.target_stage,
            side_effects=side_effects,
        )
        events = transition_events(
            organization_id=request.organization_id,
            campaign_id=campaign.id,
            campaign_name=campaign.name,
            target_stage=request.target_stage,
            side_effects=side_effects,
        )
        return result, "success", events

    def reject_at_90_percent(
        self, campaign_id: str, schema_name: str, user_id: str, organization_id: str | None = None
    ) -> StageTransitionResult:
        """Send a campaign at 90% back to 65% for revision, releasing its inventory holds."""
        start = time.perf_counter()
        previous_stage = 0
        campaign: CampaignRecord | None = None
        released_count = 0

        try:
            validate_schema_name(schema_name)
            with self._open_workflow(schema_name) as workflow:
                campaign = workflow.campaigns.get_for_update(campaign_id)
                if campaign is None:
                    raise CampaignNotFoundError(campaign_id)

                previous_stage = campaign.probability
                if not 90 <= previous_stage < MAX_STAGE:
                    raise IllegalTransitionError(
                        f"Only campaigns at 90% can be rejected (campaign is at {previous_stage}%)"
                    )

                released_count = workflow.inventory.release_inventory(campaign_id)
                workflow.campaigns.update_stage(
                    campaign_id, REJECTION_STAGE, user_id, status=CampaignStatus.NEEDS_REVISION.value
                )
                workflow.campaigns.record_activity(
                    campaign_id=campaign_id,
                    action="rejected_at_90",
                    previous_stage=previous_stage,
                    new_stage=REJECTION_STAGE,
                    user_id=user_id,
                    details={"releasedCount": released_count},
                )
                workflow.commit()

        except (StageTransitionError, ValueError) as e:
            logger.warning(f"Rejection refused for campaign {campaign_id}: {e}")
            result = self._failed(previous_stage, str(e))
            self._record_rejection(campaign_id, schema_name, result, start, "failed")
            return result
        except Exception as e:
            logger.exception(f"Error rejecting campaign {campaign_id} at 90%")
            result = self._failed(previous_stage, str(e) or type(e).__name__)
            self._record_rejection(campaign_id, schema_name, result, start, "error")
            return result

        result = StageTransitionResult(
            success=True,
            previous_stage=previous_stage,
            current_stage=REJECTION_STAGE,
            side_effects=[
                SideEffect.record(
                    SideEffectAction.INVENTORY_RELEASED,
                    f"Released {released_count} inventory reservations",
                    releasedCount=released_count,
                )
            ],
        )
        self._publish(
            rejection_events(
                organization_id=organization_id or campaign.organization_id,
                campaign_id=campaign_id,
                campaign_name=campaign.name,
                released_count=released_count,
            )
        )
        self._record_rejection(campaign_id, schema_name, result, start, "success")
        return result

    def _record_rejection(
        self, campaign_id: str, schema_name: str, result: StageTransitionResult, start: float, outcome: str
    ) -> None:
        duration = time.perf_counter() - start
        stage_transition_total.labels(operation="reject_at_90", outcome=outcome).inc()
        stage_transition_duration.labels(operation="reject_at_90").observe(duration)
        workflow_structured_logger.log_stage_transition(
            campaign_id=campaign_id,
            schema_name=schema_name,
            previous_stage=result.previous_stage,
            target_stage=REJECTION_STAGE,
            success=result.success,
            actions=result.actions,
            errors=result.errors,
            duration_ms=duration * 1000,
        )

    def _publish(self, events: list[DomainEvent]) -> None:
        for event in events:
            publish_safely(self._publisher, event)

    @staticmethod
    def _failed(previous_stage: int, error: str, side_effects: list[SideEffect] | None = None) -> StageTransitionResult:
        """Failed result that leaves the campaign where it was.

        ``previous_stage`` is 0 when the failure happened before the campaign row was
        loaded (bad target, bad schema, settings or lookup failure, missing campaign);
        0 then means "unknown", not that the campaign is at 0%.
        """
        return StageTransitionResult(
            success=False,
            previous_stage=previous_stage,
            current_stage=previous_stage,
            side_effects=side_effects or [],
            errors=[error],
        )
