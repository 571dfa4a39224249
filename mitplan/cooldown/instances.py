"""Availability of role-shared abilities: one cooldown lane per provider job."""

from collections.abc import Collection
from dataclasses import dataclass, field

from mitplan.cooldown.models import AbilityDefinition, UsageRecord


@dataclass
class CooldownLane:
    """One provider's copy of a role-shared ability (Available/OnCooldown)."""

    lane_id: str
    job_id: str
    next_available_time: float | None = None
    last_used_time: float | None = None
    last_used_event_id: str | None = None
    usages: list[UsageRecord] = field(default_factory=list)

    def is_available_at(self, time: float) -> bool:
        return self.next_available_time is None or time >= self.next_available_time

    def use(self, usage: UsageRecord, cooldown: float) -> None:
        self.last_used_time = usage.time
        self.last_used_event_id = usage.event_id
        self.next_available_time = usage.time + cooldown
        self.usages.append(usage)


@dataclass(frozen=True)
class InstancesState:
    ability_id: str
    total_instances: int
    available_instances: int
    lanes: tuple[CooldownLane, ...] = ()
    next_instance_available_at: float | None = None

    @property
    def has_instances_available(self) -> bool:
        return self.available_instances > 0

    def lane_for_job(self, job_id: str) -> CooldownLane | None:
        return next((lane for lane in self.lanes if lane.job_id == job_id), None)


def selected_providers(
    ability: AbilityDefinition, selected_jobs: Collection[str],
) -> list[str]:
    """Eligible jobs that are currently selected, in catalogue order."""
    return [job for job in ability.eligible_jobs if job in selected_jobs]


def assign_usages_to_lanes(
    lanes: list[CooldownLane],
    usages: list[UsageRecord],
    cooldown: float,
) -> None:
    """Distribute usages over lanes in time order.

    A usage whose caster job owns a lane goes to that lane. Otherwise it takes
    the first lane free at its time, or, when every lane is busy, the lane
    whose cooldown lapses soonest (ties resolved by lane order).
    """
    if not lanes:
        return
    by_job = {lane.job_id: lane for lane in lanes}
    for usage in sorted(usages, key=lambda u: u.time):
        lane = by_job.get(usage.caster_job_id) if usage.caster_job_id else None
        if lane is None:
            lane = next((ln for ln in lanes if ln.is_available_at(usage.time)), None)
        if lane is None:
            lane = min(lanes, key=lambda ln: ln.next_available_time or 0.0)
        lane.use(usage, cooldown)


def _summarize(
    ability_id: str, lanes: list[CooldownLane], target_time: float,
) -> InstancesState:
    free = [ln for ln in lanes if ln.is_available_at(target_time)]
    busy_until = [
        ln.next_available_time for ln in lanes
        if not ln.is_available_at(target_time) and ln.next_available_time is not None
    ]
    return InstancesState(
        ability_id=ability_id,
        total_instances=len(lanes),
        available_instances=len(free),
        lanes=tuple(lanes),
        next_instance_available_at=min(busy_until) if busy_until else None,
    )


def compute_instances_state(
    ability: AbilityDefinition,
    usages: list[UsageRecord],
    target_time: float,
    cooldown: float,
    selected_jobs: Collection[str],
    caster_job_id: str | None = None,
) -> InstancesState:
    """Lane state of a role-shared ability at ``target_time``.

    With ``caster_job_id`` the usages are still spread over every provider's
    lane, then only that caster's lane is reported; an unselected or
    ineligible caster has no lane at all.
    """
    relevant = [u for u in usages if u.time <= target_time]
    providers = selected_providers(ability, selected_jobs)

    if caster_job_id is not None and caster_job_id not in providers:
        return InstancesState(
            ability_id=ability.id, total_instances=0, available_instances=0,
        )

    lanes = [
        CooldownLane(lane_id=f"{ability.id}_{job}", job_id=job) for job in providers
    ]
    assign_usages_to_lanes(lanes, relevant, cooldown)
    state = _summarize(ability.id, lanes, target_time)
    if caster_job_id is None:
        return state
    return _summarize(ability.id, [state.lane_for_job(caster_job_id)], target_time)
