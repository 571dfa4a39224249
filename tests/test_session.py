"""Tests for planning sessions and the session registry."""

import pytest

from mitplan.config import CollaborationConfig, Settings
from mitplan.session import PlanningSession, SessionRegistry
from mitplan.sync.snapshots import PlanSnapshot


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        collaboration=CollaborationConfig(editor_id="alice", conflict_strategy="merge"),
    )


@pytest.fixture
def session(catalogue, events, settings):
    return PlanningSession(
        catalogue,
        plan_id="p1",
        events=events,
        assignments={"e1": [{"abilityId": "single"}]},
        selected_jobs=["WAR", "SCH"],
        level=90,
        settings=settings,
    )


def test_session_wires_components(session):
    assert session.coordinator.editor_id == "alice"
    assert session.reconciler.strategy == "merge"
    assert session.coordinator.manager is session.manager
    assert session.manager.check_availability("single", 30).is_available is False


def test_summary(session):
    summary = session.summary()
    assert summary["plan_id"] == "p1"
    assert summary["event_count"] == 6
    assert summary["assignment_count"] == 1
    assert summary["selected_jobs"] == ["SCH", "WAR"]
    assert summary["level"] == 90
    assert summary["pending"] == 0
    assert summary["sync"]["editor_id"] == "alice"


def test_generated_plan_id(catalogue, settings):
    a = PlanningSession(catalogue, settings=settings)
    b = PlanningSession(catalogue, settings=settings)
    assert a.plan_id != b.plan_id


def test_apply_snapshot_updates_store(session):
    applied = session.apply_snapshot(PlanSnapshot(
        timestamp=1, assignments={"e4": [{"abilityId": "charged"}]}, origin="bob",
    ))
    assert applied
    assert [a.ability_id for a in session.store.snapshot()["e4"]] == ["charged"]
    assert session.store.last_origin == "bob"


def test_own_snapshot_leaves_store_alone(session):
    revision = session.store.revision
    assert not session.apply_snapshot(PlanSnapshot(timestamp=1, origin="alice"))
    assert session.store.revision == revision


async def test_add_then_snapshot_round(session):
    result = await session.coordinator.add_mitigation("e4", "single")
    assert result.success
    outgoing = session.reconciler.create_outgoing_snapshot()
    assert outgoing.origin == "alice"
    assert {"e1", "e4"} <= set(outgoing.assignments)


def test_from_settings_uses_default_level(settings):
    session = PlanningSession.from_settings(settings)
    assert session.manager.level == settings.engine.default_level
    assert len(session.catalogue) > 0


class TestSessionRegistry:
    def test_add_get_remove(self, session):
        registry = SessionRegistry()
        registry.add(session)
        assert registry.get("p1") is session
        assert len(registry) == 1
        assert registry.remove("p1")
        assert not registry.remove("p1")
        assert registry.get("p1") is None
