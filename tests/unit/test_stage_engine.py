"""Unit tests for StageEngine.transition_to_stage and reject_at_90_percent.

The engine runs against the in-memory tenant store, which commits or discards
each unit of work the way a database transaction would.
"""

from unittest.mock import MagicMock

import pytest

from src.core.schemas import CampaignStatus, SideEffectAction
from src.services.workflow.idempotency import InMemoryIdempotencyCache
from src.services.workflow.notifications import NotificationPublisher
from src.services.workflow.stage_engine import StageEngine
from tests.fixtures import RequestFactory

A = SideEffectAction


class TestForwardOnly:
    """Backward moves are rejected unless forced."""

    @pytest.mark.parametrize("probability,target", [(35, 10), (65, 0), (90, 65), (100, 99)])
    def test_backward_transition_rejected_without_force(self, engine, store, campaign_factory, probability, target):
        campaign = campaign_factory.create(probability=probability)

        result = engine.transition_to_stage(RequestFactory.create(campaign.id, target))

        assert result.success is False
        assert result.errors == [f"Cannot transition backwards from {probability}% to {target}%"]
        assert result.previous_stage == probability
        assert result.current_stage == probability
        assert store.campaign(campaign.id).probability == probability
        assert store.commits == 0

    def test_backward_rejection_runs_no_bands(self, engine, store, campaign_factory):
        campaign = campaign_factory.create(probability=65)

        engine.transition_to_stage(RequestFactory.create(campaign.id, 35))

        assert store.calls == ["get_for_update"]

    def test_same_stage_is_accepted_without_side_effects(self, engine, store, campaign_factory):
        campaign = campaign_factory.create(probability=35)

        result = engine.transition_to_stage(RequestFactory.create(campaign.id, 35))

        assert result.success is True
        assert result.side_effects == []
        assert store.campaign(campaign.id).probability == 35


class TestCascade:
    """Band cascade ordering and guards."""

    def test_zero_to_hundred_runs_every_band_in_order(self, engine, store, campaign_factory, settings_provider):
        settings_provider.configure({"billing": {"invoiceDayOfMonth": 1, "timezone": "UTC"}})
        campaign = campaign_factory.create(probability=0)

        result = engine.transition_to_stage(RequestFactory.create(campaign.id, 100))

        assert result.success is True
        assert result.errors == []
        assert result.actions == [
            A.CAMPAIGN_ACTIVATED,
            A.RATE_DELTA_TRACKING_STARTED,
            A.SCHEDULE_VALIDATED,
            A.INVENTORY_RESERVED,
            A.MOVED_TO_RESERVATIONS,
            A.ORDER_CREATED,
            A.AD_REQUESTS_GENERATED,
            A.CONTRACT_GENERATED,
            A.BILLING_SCHEDULE_CREATED,
        ]

        persisted = store.campaign(campaign.id)
        assert persisted.probability == 100
        assert persisted.status == CampaignStatus.APPROVED.value
        assert len(store.state.orders) == 1
        assert len(store.state.ad_requests) == 2
        assert len(store.state.contracts) == 1
        assert len(store.state.billing_schedules) == 1
        assert store.commits == 1

    def test_invoice_day_past_28_does_not_block_early_bands(self, engine, store, campaign_factory, settings_provider):
        settings_provider.configure({"billing": {"invoiceDayOfMonth": 31, "timezone": "UTC"}})
        campaign = campaign_factory.create(probability=0)

        early = engine.transition_to_stage(RequestFactory.create(campaign.id, 10, idempotency_key="to-10"))
        closed = engine.transition_to_stage(RequestFactory.create(campaign.id, 100, idempotency_key="to-100"))

        assert early.success is True
        assert early.actions == [A.CAMPAIGN_ACTIVATED]
        assert closed.success is True
        assert store.state.billing_schedules[0]["day_of_month"] == 28
        assert store.state.billing_schedules[0]["next_invoice_date"].day == 28

    def test_unknown_billing_timezone_fails_only_at_100(self, engine, store, campaign_factory, settings_provider):
        settings_provider.configure({"billing": {"timezone": "Mars/Olympus_Mons"}})
        campaign = campaign_factory.create(probability=0)

        reserved = engine.transition_to_stage(RequestFactory.create(campaign.id, 90, idempotency_key="to-90"))
        closed = engine.transition_to_stage(RequestFactory.create(campaign.id, 100, idempotency_key="to-100"))

        assert reserved.success is True
        assert closed.success is False
        assert closed.errors == ["Unknown billing timezone: Mars/Olympus_Mons"]
        assert store.campaign(campaign.id).probability == 90
        assert store.state.orders == []

    def test_band_status_calls_follow_threshold_order(self, engine, store, campaign_factory):
        campaign = campaign_factory.create(probability=0)

        engine.transition_to_stage(RequestFactory.create(campaign.id, 100))

        assert store.calls == [
            "get_for_update",
            "activate_presale",
            "set_status:in_reservations",
            "set_status:approved",
            "update_stage",
        ]

    def test_bands_already_passed_do_not_rerun(self, engine, store, campaign_factory):
        campaign = campaign_factory.create(probability=35)

        result = engine.transition_to_stage(RequestFactory.create(campaign.id, 90))

        assert A.CAMPAIGN_ACTIVATED not in result.actions
        assert A.SCHEDULE_VALIDATED not in result.actions
        assert result.actions == [A.INVENTORY_RESERVED, A.MOVED_TO_RESERVATIONS]

    def test_disabled_band_is_skipped_and_probability_still_moves(
        self, engine, store, campaign_factory, settings_provider
    ):
        """Campaign at 0 with at90 disabled jumps to 95: 10/35/65 work happens, no inventory held."""
        settings_provider.configure({"autoStages": {"at90": False}, "talentApprovals": {"hostRead": True}})
        campaign = campaign_factory.create(campaign_id="C1", probability=0, spot_type="host_read")

        result = engine.transition_to_stage(RequestFactory.create(campaign.id, 95))

        assert result.success is True
        assert A.INVENTORY_RESERVED not in result.actions
        assert A.MOVED_TO_RESERVATIONS not in result.actions
        assert A.CAMPAIGN_ACTIVATED in result.actions
        assert A.SCHEDULE_VALIDATED in result.actions
        assert A.TALENT_APPROVAL_REQUESTED in result.actions
        assert store.campaign("C1").probability == 95
        assert store.active_reservations("C1") == []

    def test_reserve_at90_false_still_moves_to_reservations(self, engine, store, campaign_factory, settings_provider):
        settings_provider.configure({"inventory": {"reserveAt90": False}})
        campaign = campaign_factory.create(probability=65)

        result = engine.transition_to_stage(RequestFactory.create(campaign.id, 90))

        assert result.actions == [A.MOVED_TO_RESERVATIONS]
        assert store.campaign(campaign.id).status == CampaignStatus.IN_RESERVATIONS.value

    def test_missing_schedule_is_informational(self, engine, store, campaign_factory):
        campaign = campaign_factory.create(probability=10, with_schedule=False)

        result = engine.transition_to_stage(RequestFactory.create(campaign.id, 35))

        assert result.success is True
        assert result.actions == [A.SCHEDULE_CHECK]
        assert store.campaign(campaign.id).probability == 35

    def test_settings_loaded_for_request_organization(self, engine, campaign_factory, settings_provider):
        campaign = campaign_factory.create(probability=0)

        engine.transition_to_stage(RequestFactory.create(campaign.id, 10, organization_id="org_other"))

        assert settings_provider.requested == ["org_other"]

    def test_activity_row_records_actions(self, engine, store, campaign_factory):
        campaign = campaign_factory.create(probability=0)

        engine.transition_to_stage(RequestFactory.create(campaign.id, 10, user_id="usr_ae"))

        assert store.state.activities == [
            {
                "campaign_id": campaign.id,
                "action": "stage_transition",
                "previous_stage": 0,
                "new_stage": 10,
                "actor_id": "usr_ae",
                "details": {"actions": [A.CAMPAIGN_ACTIVATED.value]},
            }
        ]


class TestExclusivity:
    """Category exclusivity under BLOCK and WARN."""

    CONFLICT = {"type": "competing_campaign", "campaignId": "cmp_rival", "probability": 90}

    def test_block_policy_fails_and_leaves_campaign_untouched(
        self, engine, store, campaign_factory, settings_provider, publisher
    ):
        settings_provider.configure({"exclusivity": {"policy": "BLOCK"}})
        campaign = campaign_factory.create(probability=0)
        store.add_conflict(campaign.category_id, self.CONFLICT)

        result = engine.transition_to_stage(RequestFactory.create(campaign.id, 90))

        assert result.success is False
        assert "exclusivity conflict" in result.errors[0]
        assert result.actions == [A.EXCLUSIVITY_CONFLICT_DETECTED]
        assert result.side_effects[0].details["conflicts"] == [self.CONFLICT]

        persisted = store.campaign(campaign.id)
        assert persisted.probability == 0
        assert persisted.status == CampaignStatus.DRAFT.value
        # The 10% and 35% work is discarded with the rest of the cascade
        assert store.state.validated_schedules == {}
        assert store.state.reservations == []
        assert store.commits == 0
        assert store.rollbacks == 1
        assert publisher.events == []

    def test_warn_policy_records_conflict_and_continues(self, engine, store, campaign_factory, settings_provider):
        settings_provider.configure({"exclusivity": {"policy": "warn"}})
        campaign = campaign_factory.create(probability=35)
        store.add_conflict(campaign.category_id, self.CONFLICT)

        result = engine.transition_to_stage(RequestFactory.create(campaign.id, 90))

        assert result.success is True
        assert result.actions == [A.EXCLUSIVITY_CONFLICT_DETECTED, A.INVENTORY_RESERVED, A.MOVED_TO_RESERVATIONS]
        assert result.side_effects[0].details["policy"] == "WARN"
        assert store.campaign(campaign.id).probability == 90

    def test_no_policy_skips_conflict_check(self, engine, store, campaign_factory):
        campaign = campaign_factory.create(probability=35)
        store.add_conflict(campaign.category_id, self.CONFLICT)

        result = engine.transition_to_stage(RequestFactory.create(campaign.id, 65))

        assert result.success is True
        assert result.actions == []

    def test_block_not_reached_when_target_below_65(self, engine, store, campaign_factory, settings_provider):
        settings_provider.configure({"exclusivity": {"policy": "BLOCK"}})
        campaign = campaign_factory.create(probability=0)
        store.add_conflict(campaign.category_id, self.CONFLICT)

        result = engine.transition_to_stage(RequestFactory.create(campaign.id, 60))

        assert result.success is True
        assert store.campaign(campaign.id).probability == 60


class TestIdempotency:
    """Repeated requests with the same key."""

    def test_same_key_returns_identical_result_and_runs_once(self, engine, store, campaign_factory, publisher):
        campaign = campaign_factory.create(probability=65)
        request = RequestFactory.create(campaign.id, 90, idempotency_key="req-42")

        first = engine.transition_to_stage(request)
        second = engine.transition_to_stage(request)

        assert first.success is True
        assert second.to_response() == first.to_response()
        assert len(store.active_reservations(campaign.id)) == 2
        assert store.commits == 1
        assert publisher.types().count("campaign_status_changed") == 1

    def test_replay_is_returned_even_after_state_changed(self, engine, store, campaign_factory):
        campaign = campaign_factory.create(probability=0)
        request = RequestFactory.create(campaign.id, 35, idempotency_key="req-1")

        first = engine.transition_to_stage(request)
        engine.transition_to_stage(RequestFactory.create(campaign.id, 65, idempotency_key="req-2"))
        replay = engine.transition_to_stage(request)

        assert replay.to_response() == first.to_response()
        assert store.campaign(campaign.id).probability == 65

    def test_keys_are_scoped_per_schema(self, engine, store, campaign_factory):
        campaign = campaign_factory.create(probability=0)

        engine.transition_to_stage(RequestFactory.create(campaign.id, 10, idempotency_key="k", schema_name="org_a"))
        engine.transition_to_stage(RequestFactory.create(campaign.id, 35, idempotency_key="k", schema_name="org_b"))

        assert store.opened_schemas == ["org_a", "org_b"]
        assert store.campaign(campaign.id).probability == 35

    def test_failures_are_not_cached(self, engine, store, campaign_factory):
        request = RequestFactory.create("cmp_late", 10, idempotency_key="req-late")

        first = engine.transition_to_stage(request)
        campaign_factory.create(campaign_id="cmp_late", probability=0)
        second = engine.transition_to_stage(request)

        assert first.success is False
        assert second.success is True

    def test_generated_key_uses_campaign_target_and_clock(self, store, settings_provider, publisher):
        engine = StageEngine(store.open_workflow, settings_provider, publisher, clock=lambda: 1700000000.5)

        key = engine.cache_key(RequestFactory.create("cmp_1", 90))

        assert key == "org_test:cmp_1-90-1700000000500"

    def test_cached_result_expires_after_ttl(self, store, campaign_factory, settings_provider, publisher):
        now = [0.0]
        cache = InMemoryIdempotencyCache(clock=lambda: now[0])
        engine = StageEngine(store.open_workflow, settings_provider, publisher, cache=cache, idempotency_ttl_seconds=60)
        campaign = campaign_factory.create(probability=0)
        request = RequestFactory.create(campaign.id, 10, idempotency_key="req-ttl")

        engine.transition_to_stage(request)
        now[0] = 61.0
        engine.transition_to_stage(request)

        assert store.commits == 2


class TestForcedBackward:
    """force=True lowers the probability without re-running bands."""

    def test_backward_requires_force(self, engine, store, campaign_factory):
        """Campaign at 65 without schedule items: 35 is refused, then accepted with force."""
        campaign_factory.create(campaign_id="C2", probability=65, with_schedule=False)

        refused = engine.transition_to_stage(RequestFactory.create("C2", 35))
        forced = engine.transition_to_stage(RequestFactory.create("C2", 35, force=True))

        assert refused.success is False
        assert forced.success is True
        assert forced.previous_stage == 65
        assert forced.current_stage == 35
        assert forced.actions == [A.STAGE_FORCED_BACKWARD]
        assert A.SCHEDULE_VALIDATED not in forced.actions
        assert A.SCHEDULE_CHECK not in forced.actions

        persisted = store.campaign("C2")
        assert persisted.probability == 35
        assert persisted.status == CampaignStatus.ACTIVE_PRESALE.value
        assert store.state.activities[-1]["action"] == "stage_forced_backward"

    def test_forced_backward_keeps_reservations(self, engine, store, campaign_factory):
        campaign = campaign_factory.create(probability=65)
        engine.transition_to_stage(RequestFactory.create(campaign.id, 90))

        result = engine.transition_to_stage(RequestFactory.create(campaign.id, 10, force=True))

        assert result.side_effects[0].details == {"status": CampaignStatus.ACTIVE_PRESALE.value}
        assert len(store.active_reservations(campaign.id)) == 2

    def test_bands_rerun_on_next_forward_move(self, engine, store, campaign_factory):
        campaign = campaign_factory.create(probability=90)
        engine.transition_to_stage(RequestFactory.create(campaign.id, 10, force=True))

        result = engine.transition_to_stage(RequestFactory.create(campaign.id, 35))

        assert result.actions == [A.RATE_DELTA_TRACKING_STARTED, A.SCHEDULE_VALIDATED]

    def test_force_on_forward_move_is_a_normal_transition(self, engine, store, campaign_factory):
        campaign = campaign_factory.create(probability=0)

        result = engine.transition_to_stage(RequestFactory.create(campaign.id, 10, force=True))

        assert result.actions == [A.CAMPAIGN_ACTIVATED]

    @pytest.mark.parametrize("lowered_to", [95, 90])
    def test_reaching_100_twice_keeps_one_order(self, engine, store, campaign_factory, settings_provider, lowered_to):
        settings_provider.configure(
            {"talentApprovals": {"hostRead": True}, "billing": {"invoiceDayOfMonth": 1, "timezone": "UTC"}}
        )
        campaign = campaign_factory.create(probability=0, spot_type="host_read")

        first = engine.transition_to_stage(RequestFactory.create(campaign.id, 100, idempotency_key="first-close"))
        lowered = engine.transition_to_stage(
            RequestFactory.create(campaign.id, lowered_to, force=True, idempotency_key="reopen")
        )
        second = engine.transition_to_stage(RequestFactory.create(campaign.id, 100, idempotency_key="second-close"))

        assert (first.success, lowered.success, second.success) == (True, True, True)
        assert A.ORDER_CREATED in second.actions
        order_id = store.state.orders[0]["id"]
        assert first.side_effects[first.actions.index(A.ORDER_CREATED)].details["orderId"] == order_id
        assert second.side_effects[second.actions.index(A.ORDER_CREATED)].details["orderId"] == order_id
        assert len(store.state.orders) == 1
        assert len(store.state.ad_requests) == 2
        assert len(store.state.contracts) == 1
        assert len(store.state.billing_schedules) == 1
        assert len(store.state.talent_approvals) == 1
        assert store.campaign(campaign.id).status == CampaignStatus.APPROVED.value

    def test_rerunning_65_keeps_one_pending_talent_approval(self, engine, store, campaign_factory, settings_provider):
        settings_provider.configure({"talentApprovals": {"hostRead": True}})
        campaign = campaign_factory.create(probability=0, spot_type="host_read")

        engine.transition_to_stage(RequestFactory.create(campaign.id, 90, idempotency_key="to-90"))
        engine.transition_to_stage(RequestFactory.create(campaign.id, 65, force=True, idempotency_key="back-to-65"))
        engine.transition_to_stage(RequestFactory.create(campaign.id, 35, force=True, idempotency_key="back-to-35"))
        again = engine.transition_to_stage(RequestFactory.create(campaign.id, 90, idempotency_key="to-90-again"))

        assert again.success is True
        assert A.TALENT_APPROVAL_REQUESTED in again.actions
        assert len(store.state.talent_approvals) == 1
        assert store.state.talent_approvals[0]["status"] == "pending"
        assert len(store.active_reservations(campaign.id)) == 2
        assert store.state.orders == []

    def test_reaching_90_twice_after_force_to_65(self, engine, store, campaign_factory, settings_provider):
        settings_provider.configure({"talentApprovals": {"hostRead": True}})
        campaign = campaign_factory.create(probability=0, spot_type="host_read")

        engine.transition_to_stage(RequestFactory.create(campaign.id, 90, idempotency_key="to-90"))
        lowered = engine.transition_to_stage(
            RequestFactory.create(campaign.id, 65, force=True, idempotency_key="back-to-65")
        )
        again = engine.transition_to_stage(RequestFactory.create(campaign.id, 90, idempotency_key="to-90-again"))

        assert lowered.actions == [A.STAGE_FORCED_BACKWARD]
        assert again.success is True
        # 65 was not crossed on the way back up, so only the 90% band runs
        assert A.TALENT_APPROVAL_REQUESTED not in again.actions
        assert A.INVENTORY_RESERVED in again.actions
        assert len(store.state.talent_approvals) == 1
        assert len(store.active_reservations(campaign.id)) == 2
        assert store.state.orders == []
        assert store.state.contracts == []
        assert store.state.billing_schedules == []


class TestFailures:
    """Every failure comes back as a result, never an exception."""

    @pytest.mark.parametrize("target", [-1, 101, 250])
    def test_out_of_range_target(self, engine, store, campaign_factory, target):
        campaign = campaign_factory.create(probability=10)

        result = engine.transition_to_stage(RequestFactory.create(campaign.id, target))

        assert result.success is False
        assert result.errors == [f"Target stage must be between 0 and 100, got {target}"]
        assert store.opened_schemas == []

    def test_campaign_not_found(self, engine, store):
        result = engine.transition_to_stage(RequestFactory.create("cmp_missing", 10))

        assert result.success is False
        assert result.errors == ["Campaign not found"]
        assert result.previous_stage == 0
        assert result.current_stage == 0
        assert result.side_effects == []

    def test_invalid_schema_name(self, engine, store):
        result = engine.transition_to_stage(RequestFactory.create("cmp_1", 10, schema_name="public; drop"))

        assert result.success is False
        assert store.opened_schemas == []

    def test_collaborator_failure_rolls_back_whole_cascade(self, engine, store, campaign_factory, publisher):
        campaign = campaign_factory.create(probability=0)
        store.overrides["contracts"] = MagicMock()
        store.overrides["contracts"].generate_contract.side_effect = RuntimeError("template renderer down")

        result = engine.transition_to_stage(RequestFactory.create(campaign.id, 100))

        assert result.success is False
        assert result.errors == ["template renderer down"]
        assert result.current_stage == 0
        persisted = store.campaign(campaign.id)
        assert persisted.probability == 0
        assert persisted.status == CampaignStatus.DRAFT.value
        assert store.state.orders == []
        assert store.state.reservations == []
        assert publisher.events == []

    def test_inventory_conflict_fails_transition(self, engine, store, campaign_factory):
        rival = campaign_factory.create(campaign_id="cmp_rival", probability=65, category_id=None)
        engine.transition_to_stage(RequestFactory.create(rival.id, 90))
        campaign = campaign_factory.create(campaign_id="cmp_late", probability=65, category_id=None)

        result = engine.transition_to_stage(RequestFactory.create(campaign.id, 90))

        assert result.success is False
        assert "reserved by campaign cmp_rival" in result.errors[0]
        assert store.campaign(campaign.id).probability == 65

    def test_settings_failure_is_reported(self, store, campaign_factory, publisher):
        provider = MagicMock()
        provider.get_settings.side_effect = RuntimeError("settings store unavailable")
        engine = StageEngine(store.open_workflow, provider, publisher)
        campaign = campaign_factory.create(probability=0)

        result = engine.transition_to_stage(RequestFactory.create(campaign.id, 10))

        assert result.success is False
        assert result.errors == ["settings store unavailable"]


class TestNotifications:
    """Events are published after commit and never affect the result."""

    def test_status_changed_plus_side_effect_events(self, engine, campaign_factory, settings_provider, publisher):
        settings_provider.configure({"talentApprovals": {"hostRead": True}})
        campaign = campaign_factory.create(probability=0, spot_type="host_read", name="Spring Mattress Push")

        engine.transition_to_stage(RequestFactory.create(campaign.id, 100))

        assert publisher.types() == [
            "campaign_status_changed",
            "talent_approval_requested",
            "inventory_reserved",
            "contract_generated",
        ]
        status_event = publisher.events[0]
        assert status_event.message == "Campaign Spring Mattress Push moved to 100%"
        assert status_event.organization_id == "org_test"
        assert status_event.data == {"campaignId": campaign.id, "stage": 100}

    def test_events_published_only_after_commit(self, store, campaign_factory, settings_provider):
        commits_seen = []

        class RecordingPublisher(NotificationPublisher):
            def publish(self, event):
                commits_seen.append(store.commits)

        engine = StageEngine(store.open_workflow, settings_provider, RecordingPublisher())
        campaign = campaign_factory.create(probability=0)

        engine.transition_to_stage(RequestFactory.create(campaign.id, 10))

        assert commits_seen == [1]

    def test_publisher_failure_does_not_fail_transition(self, store, campaign_factory, settings_provider):
        failing = MagicMock(spec=NotificationPublisher)
        failing.name = "broken"
        failing.publish.side_effect = ConnectionError("smtp down")
        engine = StageEngine(store.open_workflow, settings_provider, failing)
        campaign = campaign_factory.create(probability=0)

        result = engine.transition_to_stage(RequestFactory.create(campaign.id, 90))

        assert result.success is True
        assert store.campaign(campaign.id).probability == 90
        assert failing.publish.call_count == 2


class TestRejectAt90:
    """The single supported 90% -> 65% edge."""

    def test_rejection_round_trip(self, engine, store, campaign_factory, publisher):
        campaign = campaign_factory.create(probability=65)
        engine.transition_to_stage(RequestFactory.create(campaign.id, 90))
        assert len(store.active_reservations(campaign.id)) == 2
        publisher.clear()

        rejected = engine.reject_at_90_percent(campaign.id, "org_test", "usr_manager")

        assert rejected.success is True
        assert rejected.previous_stage == 90
        assert rejected.current_stage == 65
        assert rejected.actions == [A.INVENTORY_RELEASED]
        assert rejected.side_effects[0].details == {"releasedCount": 2}
        assert rejected.side_effects[0].description == "Released 2 inventory reservations"
        persisted = store.campaign(campaign.id)
        assert persisted.probability == 65
        assert persisted.status == CampaignStatus.NEEDS_REVISION.value
        assert store.active_reservations(campaign.id) == []
        assert publisher.types() == ["inventory_released", "campaign_rejected"]
        assert store.state.activities[-1]["action"] == "rejected_at_90"

        again = engine.transition_to_stage(RequestFactory.create(campaign.id, 90))

        assert again.success is True
        assert A.INVENTORY_RESERVED in again.actions
        assert len(store.active_reservations(campaign.id)) == 2
        assert store.campaign(campaign.id).status == CampaignStatus.IN_RESERVATIONS.value

    @pytest.mark.parametrize("probability", [0, 65, 89, 100])
    def test_only_campaigns_at_90_can_be_rejected(self, engine, store, campaign_factory, probability):
        campaign = campaign_factory.create(probability=probability)

        result = engine.reject_at_90_percent(campaign.id, "org_test", "usr_manager")

        assert result.success is False
        assert result.errors == [f"Only campaigns at 90% can be rejected (campaign is at {probability}%)"]
        assert store.campaign(campaign.id).probability == probability

    def test_rejection_of_missing_campaign(self, engine):
        result = engine.reject_at_90_percent("cmp_missing", "org_test", "usr_manager")

        assert result.success is False
        assert result.errors == ["Campaign not found"]

    def test_rejection_with_no_holds_releases_zero(self, engine, store, campaign_factory, publisher):
        campaign = campaign_factory.create(probability=90)

        result = engine.reject_at_90_percent(campaign.id, "org_test", "usr_manager", organization_id="org_x")

        assert result.success is True
        assert result.side_effects[0].details == {"releasedCount": 0}
        assert {event.organization_id for event in publisher.events} == {"org_x"}

    def test_release_failure_is_reported_and_rolled_back(self, engine, store, campaign_factory):
        campaign = campaign_factory.create(probability=90)
        store.overrides["inventory"] = MagicMock()
        store.overrides["inventory"].release_inventory.side_effect = RuntimeError("lock timeout")

        result = engine.reject_at_90_percent(campaign.id, "org_test", "usr_manager")

        assert result.success is False
        assert result.errors == ["lock timeout"]
        assert store.campaign(campaign.id).probability == 90
        assert store.commits == 0
