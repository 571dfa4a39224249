"""Small pure predicates behind the assignment and cooldown rules."""

from collections.abc import Iterable

from mitplan.cooldown.catalogue import cooldown_for_level
from mitplan.cooldown.models import (
    SPECIFIC_TANK_POSITIONS,
    AbilityDefinition,
    Event,
    UsageRecord,
)


def is_off_cooldown(used_at: float, cooldown: float, time: float) -> bool:
    """A lane used at ``used_at`` is free again from ``used_at + cooldown`` on."""
    return time - used_at >= cooldown


def is_tank_position_specific(
    ability: AbilityDefinition, tank_position: str | None,
) -> bool:
    return ability.target == "single" and tank_position in SPECIFIC_TANK_POSITIONS


def find_existing_assignment(
    usages: Iterable[UsageRecord],
    event_id: str,
    ability: AbilityDefinition,
    tank_position: str | None = None,
) -> UsageRecord | None:
    """Existing usage of ``ability`` on ``event_id`` that blocks a new one.

    Single-target abilities aimed at a specific tank only collide with usages
    on the same tank position.
    """
    per_position = is_tank_position_specific(ability, tank_position)
    for usage in usages:
        if usage.event_id != event_id:
            continue
        if per_position and usage.tank_position != tank_position:
            continue
        return usage
    return None


def allows_repeat_on_tank_buster(
    ability: AbilityDefinition,
    event: Event | None,
    total_charges: int,
    total_instances: int,
) -> bool:
    """Whether ``ability`` may be applied twice to the same event."""
    if event is None or not event.is_tank_buster:
        return False
    if not ability.for_tank_busters or ability.for_raid_wide:
        return False
    return total_charges > 1 or total_instances > 1


def shared_group_cooldown(
    members: Iterable[AbilityDefinition], level: int | None,
) -> float:
    """The longest level-scaled cooldown among a shared-cooldown group."""
    return max((cooldown_for_level(m, level) for m in members), default=0.0)


def find_covering_window(
    usages: Iterable[UsageRecord], target_time: float, duration: float,
) -> UsageRecord | None:
    """A usage whose active window [time, time + duration] contains ``target_time``."""
    for usage in usages:
        if usage.time <= target_time <= usage.time + duration:
            return usage
    return None
