"""Shared fixtures: a compact ability catalogue and encounter timeline."""

import pytest

from mitplan.cooldown.catalogue import AbilityCatalogue
from mitplan.cooldown.models import AbilityDefinition, ActiveWindowRequirement, Event

TEST_ABILITIES = (
    AbilityDefinition(
        id="single", name="Single", base_cooldown=60, duration=10,
        eligible_jobs=("WAR",), target="area", for_raid_wide=True,
    ),
    AbilityDefinition(
        id="charged", name="Charged", base_cooldown=30, duration=10,
        charge_count=2, eligible_jobs=("WHM",), target="single",
        for_tank_busters=True,
    ),
    AbilityDefinition(
        id="shared_role", name="Shared Role", base_cooldown=60, duration=10,
        is_role_shared=True, eligible_jobs=("WAR", "PLD", "DRK"),
        target="area", for_tank_busters=True, for_raid_wide=True,
    ),
    AbilityDefinition(
        id="tb_role", name="Tank Buster Role", base_cooldown=60, duration=8,
        is_role_shared=True, eligible_jobs=("WAR", "PLD"),
        target="single", for_tank_busters=True,
    ),
    AbilityDefinition(
        id="group_a", name="Group A", base_cooldown=25, duration=8,
        eligible_jobs=("WAR",), target="self", shared_cooldown_group="g",
    ),
    AbilityDefinition(
        id="group_b", name="Group B", base_cooldown=30, duration=8,
        eligible_jobs=("WAR",), target="single", shared_cooldown_group="g",
    ),
    AbilityDefinition(
        id="window_source", name="Window Source", base_cooldown=120,
        duration=20, eligible_jobs=("WHM",), target="party",
    ),
    AbilityDefinition(
        id="window_user", name="Window User", base_cooldown=1,
        eligible_jobs=("WHM",), target="party",
        requires_active_window_of=ActiveWindowRequirement(ability_id="window_source"),
    ),
    AbilityDefinition(
        id="window_fixed", name="Window Fixed", base_cooldown=1,
        eligible_jobs=("WHM",), target="party",
        requires_active_window_of=ActiveWindowRequirement(
            ability_id="window_source", duration=30,
        ),
    ),
    AbilityDefinition(
        id="window_orphan", name="Window Orphan", base_cooldown=1,
        eligible_jobs=("WHM",), target="party",
        requires_active_window_of=ActiveWindowRequirement(ability_id="missing"),
    ),
    AbilityDefinition(
        id="provider", name="Provider", base_cooldown=60,
        eligible_jobs=("SCH",), target="self", provides_stack_resource=True,
    ),
    AbilityDefinition(
        id="consumer_a", name="Consumer A", base_cooldown=1,
        eligible_jobs=("SCH",), target="single", consumes_stack_resource=True,
    ),
    AbilityDefinition(
        id="consumer_b", name="Consumer B", base_cooldown=30, duration=15,
        eligible_jobs=("SCH",), target="area", consumes_stack_resource=True,
    ),
    AbilityDefinition(
        id="scaled", name="Scaled", base_cooldown=120, duration=15,
        level_cooldown_overrides={88: 90}, level_charge_overrides={90: 2},
        level_requirement=70, eligible_jobs=("WAR",), target="party",
    ),
)

TEST_EVENTS = (
    Event(id="e1", time=10, name="Opener"),
    Event(id="e2", time=20, name="Cleave"),
    Event(id="e3", time=70, name="Buster", is_tank_buster=True),
    Event(id="e4", time=100, name="Raidwide"),
    Event(id="e5", time=130, name="Raidwide 2"),
    Event(id="e6", time=200, name="Enrage"),
)

DEFAULT_ROSTER = ("WAR", "PLD", "SCH", "WHM")


@pytest.fixture
def catalogue():
    return AbilityCatalogue(TEST_ABILITIES)


@pytest.fixture
def events():
    return list(TEST_EVENTS)
