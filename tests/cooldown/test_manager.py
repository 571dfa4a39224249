"""Tests for the cooldown manager query surface."""

import logging

import pytest

from mitplan.cooldown.manager import CooldownManager
from mitplan.cooldown.models import (
    ABILITY_NOT_FOUND,
    ALREADY_ASSIGNED,
    JOB_NOT_SELECTED,
    NO_CHARGES,
    NO_INSTANCES,
    NO_STACK_RESOURCE,
    ON_COOLDOWN,
    REQUIRES_ACTIVE_WINDOW,
    SHARED_COOLDOWN,
    Assignment,
)

ROSTER = ("WAR", "PLD", "SCH", "WHM")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_manager(catalogue, events, assignments=None, roster=ROSTER, level=None):
    return CooldownManager(
        catalogue,
        events=events,
        assignments=assignments or {},
        selected_jobs=list(roster),
        level=level,
    )


def _assign(ability_id, **kwargs):
    return Assignment(ability_id=ability_id, **kwargs)


class TestSingleCharge:
    def test_unknown_ability(self, catalogue, events):
        result = _make_manager(catalogue, events).check_availability("nope", 10)
        assert result.reason == ABILITY_NOT_FOUND
        assert not result.can_assign()

    def test_unused_available(self, catalogue, events):
        result = _make_manager(catalogue, events).check_availability("single", 10)
        assert result.is_available
        assert result.can_assign()
        assert result.last_used_time is None

    def test_on_cooldown(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e1": [_assign("single")]})
        result = m.check_availability("single", 40)
        assert result.reason == ON_COOLDOWN
        assert result.next_available_time == 70
        assert result.available_charges == 0
        assert result.last_used_event_id == "e1"
        assert result.last_used_event_name == "Opener"

    def test_available_exactly_at_cooldown_end(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e1": [_assign("single")]})
        assert m.check_availability("single", 70).is_available
        assert not m.check_availability("single", 69.9).is_available

    def test_usage_after_target_ignored(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e1": [_assign("single")]})
        assert m.check_availability("single", 5).is_available

    def test_precast_moves_usage_earlier(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e4": [_assign("single", precast_seconds=30)]})
        result = m.check_availability("single", 80)
        assert result.reason == ON_COOLDOWN
        assert result.last_used_time == 70
        assert result.next_available_time == 130


class TestAlreadyAssigned:
    def test_same_event_rejected(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e1": [_assign("single")]})
        result = m.check_availability("single", 10, "e1")
        assert result.reason == ALREADY_ASSIGNED
        assert result.last_used_event_name == "Opener"

    def test_exclude_current_assignment_skips_check(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e1": [_assign("single")]})
        result = m.check_availability("single", 10, "e1", exclude_current_assignment=True)
        assert result.reason == ON_COOLDOWN

    def test_not_time_filtered(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e4": [_assign("single")]})
        assert m.check_availability("single", 10, "e4").reason == ALREADY_ASSIGNED

    def test_multi_charge_repeat_on_tank_buster(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e3": [_assign("charged")]})
        result = m.check_availability("charged", 70, "e3")
        assert result.is_available
        assert result.available_charges == 1

    def test_multi_charge_repeat_on_plain_event_rejected(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e2": [_assign("charged")]})
        assert m.check_availability("charged", 20, "e2").reason == ALREADY_ASSIGNED

    def test_multi_instance_repeat_on_tank_buster(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e3": [_assign("tb_role")]})
        result = m.check_availability("tb_role", 70, "e3")
        assert result.is_available
        assert result.available_instances == 1
        assert result.total_instances == 2

    def test_raid_wide_never_repeats(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e3": [_assign("shared_role")]})
        assert m.check_availability("shared_role", 70, "e3").reason == ALREADY_ASSIGNED

    def test_single_target_checked_per_tank(self, catalogue, events):
        m = _make_manager(
            catalogue, events, {"e2": [_assign("charged", tank_position="mainTank")]},
        )
        off = m.check_availability("charged", 20, "e2", tank_position="offTank")
        assert off.is_available
        assert off.available_charges == 1
        main = m.check_availability("charged", 20, "e2", tank_position="mainTank")
        assert main.reason == ALREADY_ASSIGNED
        assert m.check_availability("charged", 20, "e2").reason == ALREADY_ASSIGNED


class TestActiveWindow:
    def test_inside_referenced_duration(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e1": [_assign("window_source")]})
        assert m.check_availability("window_user", 25).is_available
        assert m.check_availability("window_user", 30).is_available
        assert m.check_availability("window_user", 31).reason == REQUIRES_ACTIVE_WINDOW

    def test_explicit_duration(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e1": [_assign("window_source")]})
        assert m.check_availability("window_fixed", 40).is_available
        assert m.check_availability("window_fixed", 41).reason == REQUIRES_ACTIVE_WINDOW

    def test_no_window_opened(self, catalogue, events):
        m = _make_manager(catalogue, events)
        assert m.check_availability("window_user", 10).reason == REQUIRES_ACTIVE_WINDOW

    def test_unknown_window_ability(self, catalogue, events, caplog):
        m = _make_manager(catalogue, events)
        with caplog.at_level(logging.WARNING):
            result = m.check_availability("window_orphan", 10)
        assert result.reason == REQUIRES_ACTIVE_WINDOW
        assert "unknown ability missing" in caplog.text


class TestSharedCooldownGroup:
    def test_member_use_blocks_other_member(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e1": [_assign("group_a")]})
        result = m.check_availability("group_b", 30)
        assert result.reason == SHARED_COOLDOWN
        assert result.next_available_time == 40
        assert result.shared_cooldown_group == "g"

    def test_group_uses_longest_cooldown(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e1": [_assign("group_a")]})
        # group_a alone would be back at 35
        assert m.check_availability("group_a", 35).reason == SHARED_COOLDOWN
        assert m.check_availability("group_a", 40).is_available

    def test_unused_group_available(self, catalogue, events):
        result = _make_manager(catalogue, events).check_availability("group_b", 0)
        assert result.is_available
        assert result.shared_cooldown_group == "g"


class TestRoleShared:
    def test_lanes_exhausted(self, catalogue, events):
        m = _make_manager(
            catalogue, events, {"e1": [_assign("shared_role")], "e2": [_assign("shared_role")]},
        )
        result = m.check_availability("shared_role", 50)
        assert result.reason == NO_INSTANCES
        assert result.total_instances == 2
        assert result.available_instances == 0
        assert result.next_available_time == 70
        assert result.is_role_shared

    def test_lane_recovers(self, catalogue, events):
        m = _make_manager(
            catalogue, events, {"e1": [_assign("shared_role")], "e2": [_assign("shared_role")]},
        )
        assert m.check_availability("shared_role", 70).available_instances == 1

    def test_caster_specific(self, catalogue, events):
        m = _make_manager(
            catalogue, events, {"e1": [_assign("shared_role", caster_job_id="PLD")]},
        )
        war = m.check_availability("shared_role", 30, caster_job_id="WAR")
        assert war.is_available
        assert war.total_instances == 1
        pld = m.check_availability("shared_role", 30, caster_job_id="PLD")
        assert pld.reason == NO_INSTANCES
        assert pld.next_available_time == 70

    def test_caster_view_matches_pooled_view(self, catalogue, events):
        m = _make_manager(
            catalogue, events, {"e1": [_assign("shared_role")], "e2": [_assign("shared_role")]},
        )
        assert not m.check_availability("shared_role", 30).can_assign()
        war = m.check_availability("shared_role", 30, caster_job_id="WAR")
        assert war.reason == NO_INSTANCES
        assert war.next_available_time == 70
        pld = m.check_availability("shared_role", 30, caster_job_id="PLD")
        assert pld.next_available_time == 80

    def test_unselected_caster(self, catalogue, events):
        result = _make_manager(catalogue, events).check_availability(
            "shared_role", 30, caster_job_id="DRK",
        )
        assert result.reason == NO_INSTANCES
        assert result.total_instances == 0

    def test_empty_roster(self, catalogue, events):
        result = _make_manager(catalogue, events, roster=()).check_availability("shared_role", 0)
        assert result.reason == NO_INSTANCES
        assert not result.can_assign()


class TestMultiCharge:
    def test_no_charges(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e1": [_assign("charged")], "e2": [_assign("charged")]})
        result = m.check_availability("charged", 25)
        assert result.reason == NO_CHARGES
        assert result.total_charges == 2
        assert result.next_available_time == 40

    def test_charge_returns(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e1": [_assign("charged")], "e2": [_assign("charged")]})
        result = m.check_availability("charged", 40)
        assert result.is_available
        assert result.available_charges == 1

    def test_counts_within_bounds(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e1": [_assign("charged")], "e2": [_assign("charged")]})
        for t in range(0, 100, 5):
            result = m.check_availability("charged", t)
            assert 0 <= result.available_charges <= result.total_charges


class TestStackConsumers:
    PLAN = {
        "e1": [Assignment(ability_id="consumer_a"), Assignment(ability_id="consumer_b")],
        "e2": [Assignment(ability_id="consumer_a")],
    }

    def test_provider_job_required(self, catalogue, events):
        m = _make_manager(catalogue, events, roster=("WAR",))
        assert m.check_availability("consumer_a", 0).reason == JOB_NOT_SELECTED

    def test_full_gauge(self, catalogue, events):
        result = _make_manager(catalogue, events).check_availability("consumer_a", 0)
        assert result.is_available
        assert result.available_stacks == 3
        assert result.total_stacks == 3

    def test_empty_gauge(self, catalogue, events):
        m = _make_manager(catalogue, events, self.PLAN)
        result = m.check_availability("consumer_a", 50)
        assert result.reason == NO_STACK_RESOURCE
        assert result.next_available_time == 60
        assert result.available_stacks == 0

    def test_refilled_gauge(self, catalogue, events):
        m = _make_manager(catalogue, events, self.PLAN)
        result = m.check_availability("consumer_a", 60)
        assert result.is_available
        assert result.available_stacks == 3

    def test_ordinary_cooldown_still_applies(self, catalogue, events):
        m = _make_manager(catalogue, events, self.PLAN)
        result = m.check_availability("consumer_b", 15)
        assert result.reason == ON_COOLDOWN
        assert result.next_available_time == 40
        assert result.available_stacks == 1

    def test_refill_interval_from_provider(self, catalogue, events):
        m = _make_manager(catalogue, events)
        assert m.stack_refill_interval == 60
        assert m.stack_state(0).available_stacks == 3

    def test_simulated_consumption(self, catalogue, events):
        m = _make_manager(catalogue, events, self.PLAN)
        after = m.simulate_stack_consumption("consumer_a", 15)
        assert after.available_stacks == 0
        assert after.last_consumed_time == 15
        assert after.time_until_refill(15) == 45
        assert m.stack_state(15).available_stacks == 1

    def test_simulated_consumption_needs_consumer(self, catalogue, events):
        assert _make_manager(catalogue, events).simulate_stack_consumption("single", 15) is None


class TestLevelScaling:
    def test_cooldown_override(self, catalogue, events):
        plan = {"e1": [_assign("scaled")]}
        at_88 = _make_manager(catalogue, events, plan, level=88)
        assert at_88.check_availability("scaled", 100).is_available
        assert at_88.check_availability("scaled", 99).next_available_time == 100
        at_80 = _make_manager(catalogue, events, plan, level=80)
        assert at_80.check_availability("scaled", 100).next_available_time == 130

    def test_charge_override(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e1": [_assign("scaled")]}, level=90)
        result = m.check_availability("scaled", 50)
        assert result.total_charges == 2
        assert result.available_charges == 1


class TestQueries:
    def test_check_multiple(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e1": [_assign("single")]})
        results = m.check_multiple(["single", "charged"], 30)
        assert not results["single"].is_available
        assert results["charged"].is_available

    def test_list_available_filters_roster(self, catalogue, events):
        m = _make_manager(catalogue, events, roster=("WAR",))
        ids = {a.id for a, _ in m.list_available_at(0)}
        assert {"single", "group_a", "shared_role", "scaled"} <= ids
        assert "charged" not in ids
        assert "consumer_a" not in ids

    def test_list_available_filters_cooldown_and_level(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e1": [_assign("single")]}, roster=("WAR",), level=60)
        ids = {a.id for a, _ in m.list_available_at(30)}
        assert "single" not in ids
        assert "scaled" not in ids
        assert "group_a" in ids

    def test_empty_roster_disables_job_filter(self, catalogue, events):
        m = _make_manager(catalogue, events, roster=())
        ids = {a.id for a, _ in m.list_available_at(0)}
        assert "charged" in ids
        assert "shared_role" not in ids

    def test_simulate_does_not_mutate(self, catalogue, events):
        m = _make_manager(catalogue, events)
        result = m.simulate_usage("single", 100, "e4")
        assert result.reason == ON_COOLDOWN
        assert result.next_available_time == 160
        assert m.assignments == {}
        assert m.check_availability("single", 100).is_available

    def test_simulate_unknown_event(self, catalogue, events):
        m = _make_manager(catalogue, events)
        result = m.simulate_usage("single", 50, "adhoc")
        assert result.next_available_time == 110
        assert "adhoc" not in m.events_by_id

    def test_cooldown_timeline(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e1": [_assign("single")]})
        timeline = m.cooldown_timeline("single", 0, 80, 10)
        assert [s["time"] for s in timeline] == [0, 10, 20, 30, 40, 50, 60, 70, 80]
        assert [s["is_available"] for s in timeline] == [
            True, False, False, False, False, False, False, True, True,
        ]
        assert timeline[1]["reason"] == ON_COOLDOWN

    def test_cooldown_timeline_defaults(self, catalogue, events):
        timeline = _make_manager(catalogue, events).cooldown_timeline("single")
        assert len(timeline) == 601

    def test_cooldown_timeline_fractional_step_includes_end(self, catalogue, events):
        timeline = _make_manager(catalogue, events).cooldown_timeline("single", 0, 1, 0.1)
        assert len(timeline) == 11
        assert timeline[-1]["time"] == pytest.approx(1.0)

    def test_cooldown_timeline_bad_input(self, catalogue, events):
        m = _make_manager(catalogue, events)
        assert m.cooldown_timeline("nope") == []
        with pytest.raises(ValueError):
            m.cooldown_timeline("single", step=0)


class TestStateManagement:
    def test_results_cached(self, catalogue, events):
        m = _make_manager(catalogue, events)
        first = m.check_availability("single", 30)
        assert m.check_availability("single", 30) is first
        assert m.cache_stats()["availability"]["hits"] == 1

    def test_update_invalidates(self, catalogue, events):
        m = _make_manager(catalogue, events)
        assert m.check_availability("single", 30).is_available
        m.update(assignments={"e1": [_assign("single")]})
        assert m.check_availability("single", 30).reason == ON_COOLDOWN
        assert m.cache_stats()["availability"]["generation"] >= 2

    def test_partial_update_keeps_other_state(self, catalogue, events):
        m = _make_manager(catalogue, events, {"e1": [_assign("scaled")]}, level=80)
        m.update(level=88)
        assert m.level == 88
        assert len(m.usage_history("scaled")) == 1
        assert m.check_availability("scaled", 100).is_available

    def test_roster_update_normalized(self, catalogue, events):
        m = _make_manager(catalogue, events)
        m.update(selected_jobs={"tank": [{"id": "WAR", "selected": True}]})
        assert m.selected_jobs == frozenset({"WAR"})

    def test_update_accepts_raw_records(self, catalogue):
        m = CooldownManager(catalogue)
        m.update(
            events=[{"id": "x", "time": 5, "isTankBuster": True}],
            assignments={"x": [{"abilityId": "single"}]},
        )
        assert m.events_by_id["x"].is_tank_buster
        assert m.usage_history("single")[0].time == 5

    def test_fork_is_independent(self, catalogue, events):
        m = _make_manager(catalogue, events)
        forked = m.fork(assignments={"e1": [_assign("single")]})
        assert m.check_availability("single", 30).is_available
        assert forked.check_availability("single", 30).reason == ON_COOLDOWN
        assert forked.selected_jobs == m.selected_jobs

    def test_unknown_references_logged(self, catalogue, events, caplog):
        with caplog.at_level(logging.WARNING):
            _make_manager(
                catalogue, events,
                {"ghost": [_assign("single")], "e1": [_assign("nope")]},
            )
        assert "unknown event ghost" in caplog.text
        assert "unknown ability nope" in caplog.text
