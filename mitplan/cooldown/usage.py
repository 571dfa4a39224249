"""Resolve assignment maps into time-ordered usage records."""

import logging
from collections.abc import Mapping

from mitplan.cooldown.models import AssignmentMap, Event, UsageRecord

logger = logging.getLogger(__name__)


def resolve_usage_history(
    ability_id: str,
    assignments: AssignmentMap,
    events_by_id: Mapping[str, Event],
) -> list[UsageRecord]:
    """Collect every usage of ``ability_id`` sorted by effective time.

    Effective time is the event time minus the assignment's precast, floored
    at 0. Assignments on events missing from ``events_by_id`` are skipped.
    """
    usages: list[UsageRecord] = []
    for event_id, entries in assignments.items():
        matching = [a for a in entries if a.ability_id == ability_id]
        if not matching:
            continue

        event = events_by_id.get(event_id)
        if event is None:
            logger.debug(
                "Skipping %d %s assignment(s) on unknown event %s",
                len(matching), ability_id, event_id,
            )
            continue

        for assignment in matching:
            usages.append(UsageRecord(
                ability_id=ability_id,
                event_id=event_id,
                event_name=event.name,
                time=max(0.0, event.time - assignment.precast_seconds),
                tank_position=assignment.tank_position,
                caster_job_id=assignment.caster_job_id,
                instance_id=assignment.instance_id,
            ))

    usages.sort(key=lambda u: u.time)
    return usages


def usages_until(usages: list[UsageRecord], target_time: float) -> list[UsageRecord]:
    """Usages with effective time <= ``target_time`` (input must be sorted)."""
    return [u for u in usages if u.time <= target_time]
