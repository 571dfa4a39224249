"""Cooldown manager: the query surface over one plan snapshot.

The manager owns the events, the assignment map, the selected roster and the
encounter level. Every query is a pure function of that snapshot plus the
query arguments, so results are memoized in explicit caches that ``update``
drops as a whole.
"""

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import replace
from typing import Any

from mitplan.cooldown import rules
from mitplan.cooldown.cache import AvailabilityKey, QueryCache
from mitplan.cooldown.catalogue import (
    AbilityCatalogue,
    charges_for_level,
    cooldown_for_level,
    duration_for_level,
)
from mitplan.cooldown.charges import ChargeState, compute_charge_state
from mitplan.cooldown.instances import (
    InstancesState,
    compute_instances_state,
    selected_providers,
)
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
    AbilityDefinition,
    Assignment,
    AssignmentMap,
    AvailabilityResult,
    Event,
    UsageRecord,
    parse_assignment_map,
)
from mitplan.cooldown.roster import normalize_roster
from mitplan.cooldown.stacks import StackResourceTracker, StackState
from mitplan.cooldown.usage import resolve_usage_history, usages_until

logger = logging.getLogger(__name__)

_UNSET: Any = object()


class CooldownManager:
    def __init__(
        self,
        catalogue: AbilityCatalogue,
        *,
        events: Iterable[Event] = (),
        assignments: Mapping[str, Any] | None = None,
        selected_jobs: Any = None,
        level: int | None = None,
        stack_capacity: int = 3,
        stack_refill_interval: float = 60.0,
    ) -> None:
        self.catalogue = catalogue
        self.stack_capacity = stack_capacity
        self.default_refill_interval = stack_refill_interval

        self.events: tuple[Event, ...] = ()
        self.events_by_id: dict[str, Event] = {}
        self.assignments: AssignmentMap = {}
        self.selected_jobs: frozenset[str] = frozenset()
        self.level: int | None = None

        self._usage_cache: QueryCache[str, list[UsageRecord]] = QueryCache("usage")
        self._availability_cache: QueryCache[AvailabilityKey, AvailabilityResult] = (
            QueryCache("availability")
        )
        self._stack_cache: QueryCache[float, StackState] = QueryCache("stacks")
        self._stacks: StackResourceTracker | None = None

        self.update(
            events=events,
            assignments=assignments,
            selected_jobs=selected_jobs,
            level=level,
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def update(
        self,
        *,
        events: Iterable[Event] = _UNSET,
        assignments: Mapping[str, Any] | None = _UNSET,
        selected_jobs: Any = _UNSET,
        level: int | None = _UNSET,
    ) -> None:
        """Re-point the manager at new data; omitted arguments keep their value."""
        if events is not _UNSET:
            self.events = tuple(
                e if isinstance(e, Event) else Event.model_validate(e) for e in events
            )
            self.events_by_id = {e.id: e for e in self.events}
        if assignments is not _UNSET:
            self.assignments = parse_assignment_map(assignments)
        if selected_jobs is not _UNSET:
            self.selected_jobs = normalize_roster(selected_jobs)
        if level is not _UNSET:
            self.level = level

        self._stacks = self._build_stack_tracker()
        self._audit_references()
        self.invalidate()

    def invalidate(self) -> None:
        self._usage_cache.invalidate()
        self._availability_cache.invalidate()
        self._stack_cache.invalidate()

    def fork(self, **overrides: Any) -> "CooldownManager":
        """Independent manager over the same snapshot, with ``overrides`` applied."""
        params: dict[str, Any] = {
            "events": self.events,
            "assignments": self.assignments,
            "selected_jobs": self.selected_jobs,
            "level": self.level,
        }
        params.update(overrides)
        return CooldownManager(
            self.catalogue,
            stack_capacity=self.stack_capacity,
            stack_refill_interval=self.default_refill_interval,
            **params,
        )

    def cache_stats(self) -> dict[str, dict[str, int]]:
        return {
            cache.name: cache.stats()
            for cache in (self._usage_cache, self._availability_cache, self._stack_cache)
        }

    @property
    def stack_refill_interval(self) -> float:
        provider = self.catalogue.stack_provider
        if provider is not None:
            return cooldown_for_level(provider, self.level)
        return self.default_refill_interval

    def _build_stack_tracker(self) -> StackResourceTracker | None:
        if not self.catalogue.stack_consumers:
            return None
        provider = self.catalogue.stack_provider
        return StackResourceTracker(
            capacity=self.stack_capacity,
            refill_interval=self.stack_refill_interval,
            provider_ids=[provider.id] if provider is not None else [],
            consumer_ids=[c.id for c in self.catalogue.stack_consumers],
        )

    def _audit_references(self) -> None:
        for event_id, entries in self.assignments.items():
            if event_id not in self.events_by_id:
                logger.warning(
                    "Assignments reference unknown event %s (%d entries)",
                    event_id, len(entries),
                )
            for assignment in entries:
                if assignment.ability_id not in self.catalogue:
                    logger.warning(
                        "Event %s references unknown ability %s",
                        event_id, assignment.ability_id,
                    )

    # ------------------------------------------------------------------
    # Tracker views
    # ------------------------------------------------------------------

    def usage_history(self, ability_id: str) -> list[UsageRecord]:
        cached = self._usage_cache.get(ability_id)
        if cached is not None:
            return cached
        return self._usage_cache.put(
            ability_id,
            resolve_usage_history(ability_id, self.assignments, self.events_by_id),
        )

    def charge_state(self, ability_id: str, target_time: float) -> ChargeState | None:
        ability = self.catalogue.get(ability_id)
        if ability is None:
            return None
        return compute_charge_state(
            ability.id,
            self.usage_history(ability.id),
            target_time,
            cooldown_for_level(ability, self.level),
            charges_for_level(ability, self.level),
        )

    def instances_state(
        self,
        ability_id: str,
        target_time: float,
        caster_job_id: str | None = None,
    ) -> InstancesState | None:
        ability = self.catalogue.get(ability_id)
        if ability is None or not ability.is_role_shared:
            return None
        return compute_instances_state(
            ability,
            self.usage_history(ability.id),
            target_time,
            cooldown_for_level(ability, self.level),
            self.selected_jobs,
            caster_job_id=caster_job_id,
        )

    def stack_state(self, target_time: float) -> StackState | None:
        """Stack counter at ``target_time``, or None when no ability uses stacks."""
        if self._stacks is None:
            return None
        cached = self._stack_cache.get(target_time)
        if cached is not None:
            return cached
        return self._stack_cache.put(
            target_time,
            self._stacks.state_at(target_time, self.events, self.assignments),
        )

    def simulate_stack_consumption(
        self, ability_id: str, target_time: float, event_id: str = "simulated",
    ) -> StackState | None:
        """Stack counter at ``target_time`` after one extra use of ``ability_id``.

        None when ``ability_id`` does not consume stacks.
        """
        state = self.stack_state(target_time)
        if state is None or ability_id not in self._stacks.consumer_ids:
            return None
        return self._stacks.simulate_consumption(state, ability_id, target_time, event_id)

    def stack_provider_selected(self) -> bool:
        jobs = self.catalogue.stack_provider_jobs()
        return any(job in self.selected_jobs for job in jobs)

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def check_availability(
        self,
        ability_id: str,
        target_time: float,
        event_id: str | None = None,
        *,
        tank_position: str | None = None,
        caster_job_id: str | None = None,
        exclude_current_assignment: bool = False,
    ) -> AvailabilityResult:
        key = AvailabilityKey(
            ability_id, target_time, caster_job_id, event_id,
            tank_position, exclude_current_assignment,
        )
        cached = self._availability_cache.get(key)
        if cached is not None:
            return cached
        result = self._compute_availability(
            ability_id, target_time, event_id,
            tank_position=tank_position,
            caster_job_id=caster_job_id,
            exclude_current_assignment=exclude_current_assignment,
        )
        return self._availability_cache.put(key, result)

    def _compute_availability(
        self,
        ability_id: str,
        target_time: float,
        event_id: str | None,
        *,
        tank_position: str | None,
        caster_job_id: str | None,
        exclude_current_assignment: bool,
    ) -> AvailabilityResult:
        ability = self.catalogue.get(ability_id)
        if ability is None:
            return AvailabilityResult(
                ability_id=ability_id, is_available=False, reason=ABILITY_NOT_FOUND,
            )

        stacks: StackState | None = None
        if ability.consumes_stack_resource:
            stacks = self.stack_state(target_time)
            gate = self._stack_gate(ability, stacks)
            if gate is not None:
                return gate

        total_charges = charges_for_level(ability, self.level)
        total_instances = (
            len(selected_providers(ability, self.selected_jobs))
            if ability.is_role_shared else 1
        )
        base = AvailabilityResult(
            ability_id=ability.id,
            total_charges=total_charges,
            total_instances=total_instances,
            is_role_shared=ability.is_role_shared,
            shared_cooldown_group=ability.shared_cooldown_group,
        )

        if event_id is not None and not exclude_current_assignment:
            existing = rules.find_existing_assignment(
                self.usage_history(ability.id), event_id, ability, tank_position,
            )
            event = self.events_by_id.get(event_id)
            if existing is not None and not rules.allows_repeat_on_tank_buster(
                ability, event, total_charges, total_instances,
            ):
                return replace(
                    base,
                    is_available=False,
                    reason=ALREADY_ASSIGNED,
                    last_used_time=existing.time,
                    last_used_event_id=existing.event_id,
                    last_used_event_name=existing.event_name,
                )

        if ability.requires_active_window_of is not None:
            if not self._window_active(ability, target_time):
                return replace(base, is_available=False, reason=REQUIRES_ACTIVE_WINDOW)

        if ability.is_role_shared:
            result = self._check_role_shared(ability, base, target_time, caster_job_id)
        elif total_charges > 1:
            result = self._check_charges(ability, base, target_time)
        else:
            result = self._check_single(ability, base, target_time)

        if stacks is not None:
            result = replace(
                result,
                available_stacks=stacks.available_stacks,
                total_stacks=stacks.capacity,
            )
        return result

    def _stack_gate(
        self, ability: AbilityDefinition, stacks: StackState | None,
    ) -> AvailabilityResult | None:
        blocked = {
            "ability_id": ability.id,
            "is_available": False,
            "available_charges": 0,
            "available_instances": 0,
            "shared_cooldown_group": ability.shared_cooldown_group,
        }
        if not self.stack_provider_selected():
            return AvailabilityResult(reason=JOB_NOT_SELECTED, **blocked)
        if stacks is not None and not stacks.has_stacks_available:
            return AvailabilityResult(
                reason=NO_STACK_RESOURCE,
                next_available_time=stacks.next_auto_refill_at,
                available_stacks=stacks.available_stacks,
                total_stacks=stacks.capacity,
                **blocked,
            )
        return None

    def _window_active(self, ability: AbilityDefinition, target_time: float) -> bool:
        requirement = ability.requires_active_window_of
        window_ability = self.catalogue.get(requirement.ability_id)
        if window_ability is None:
            logger.warning(
                "%s requires a window of unknown ability %s",
                ability.id, requirement.ability_id,
            )
            return False
        duration = requirement.duration
        if duration is None:
            duration = duration_for_level(window_ability, self.level)
        covering = rules.find_covering_window(
            self.usage_history(window_ability.id), target_time, duration,
        )
        return covering is not None

    def _check_role_shared(
        self,
        ability: AbilityDefinition,
        base: AvailabilityResult,
        target_time: float,
        caster_job_id: str | None,
    ) -> AvailabilityResult:
        state = self.instances_state(ability.id, target_time, caster_job_id)
        available = state.has_instances_available
        used = [ln for ln in state.lanes if ln.last_used_time is not None]
        last = max(used, key=lambda ln: ln.last_used_time) if used else None
        return replace(
            base,
            is_available=available,
            reason=None if available else NO_INSTANCES,
            available_charges=1 if available else 0,
            total_charges=1,
            available_instances=state.available_instances,
            total_instances=state.total_instances,
            next_available_time=state.next_instance_available_at,
            last_used_time=last.last_used_time if last else None,
            last_used_event_id=last.last_used_event_id if last else None,
        )

    def _check_charges(
        self, ability: AbilityDefinition, base: AvailabilityResult, target_time: float,
    ) -> AvailabilityResult:
        state = self.charge_state(ability.id, target_time)
        available = state.has_charges_available
        last = state.recent_usages[-1] if state.recent_usages else None
        return replace(
            base,
            is_available=available,
            reason=None if available else NO_CHARGES,
            available_charges=state.available_charges,
            total_charges=state.total_charges,
            total_instances=1,
            next_available_time=state.next_charge_available_at,
            last_used_time=state.last_used_time,
            last_used_event_id=last.event_id if last else None,
            last_used_event_name=last.event_name if last else None,
        )

    def _check_single(
        self, ability: AbilityDefinition, base: AvailabilityResult, target_time: float,
    ) -> AvailabilityResult:
        group = ability.shared_cooldown_group
        if group:
            members = self.catalogue.group_members(group)
            cooldown = rules.shared_group_cooldown(members, self.level)
            history = sorted(
                (u for m in members for u in self.usage_history(m.id)),
                key=lambda u: u.time,
            )
            blocked_reason = SHARED_COOLDOWN
        else:
            cooldown = cooldown_for_level(ability, self.level)
            history = self.usage_history(ability.id)
            blocked_reason = ON_COOLDOWN

        relevant = usages_until(history, target_time)
        if not relevant:
            return replace(base, total_charges=1, total_instances=1)

        last = relevant[-1]
        on_cooldown = not rules.is_off_cooldown(last.time, cooldown, target_time)
        return replace(
            base,
            is_available=not on_cooldown,
            reason=blocked_reason if on_cooldown else None,
            available_charges=0 if on_cooldown else 1,
            total_charges=1,
            total_instances=1,
            next_available_time=last.time + cooldown if on_cooldown else None,
            last_used_time=last.time,
            last_used_event_id=last.event_id,
            last_used_event_name=last.event_name,
        )

    def check_multiple(
        self,
        ability_ids: Iterable[str],
        target_time: float,
        event_id: str | None = None,
        **options: Any,
    ) -> dict[str, AvailabilityResult]:
        return {
            ability_id: self.check_availability(ability_id, target_time, event_id, **options)
            for ability_id in ability_ids
        }

    def list_available_at(
        self,
        target_time: float,
        event_id: str | None = None,
        **options: Any,
    ) -> list[tuple[AbilityDefinition, AvailabilityResult]]:
        """Abilities that could be assigned at ``target_time``, in catalogue order.

        Abilities nobody in the roster can cast, or above the encounter level,
        are left out. An empty roster disables the job filter.
        """
        available = []
        for ability in self.catalogue:
            if self.level is not None and ability.level_requirement > self.level:
                continue
            if (
                self.selected_jobs
                and ability.eligible_jobs
                and not selected_providers(ability, self.selected_jobs)
            ):
                continue
            result = self.check_availability(ability.id, target_time, event_id, **options)
            if result.can_assign():
                available.append((ability, result))
        return available

    # ------------------------------------------------------------------
    # What-if
    # ------------------------------------------------------------------

    def simulate_usage(
        self,
        ability_id: str,
        time: float,
        event_id: str,
        tank_position: str | None = None,
        caster_job_id: str | None = None,
    ) -> AvailabilityResult:
        """Availability of ``ability_id`` right after a hypothetical use at ``time``.

        Runs on a forked manager; this manager's snapshot and caches are not
        touched. An unknown ``event_id`` gets a synthetic event at ``time``.
        """
        events = list(self.events)
        if event_id not in self.events_by_id:
            events.append(Event(id=event_id, time=max(0.0, time), name="Simulated"))
        else:
            # Effective time of the simulated use is ``time``, not the event time.
            event_time = self.events_by_id[event_id].time
            if event_time != time:
                event_id = f"{event_id}__simulated"
                events.append(Event(id=event_id, time=max(0.0, time), name="Simulated"))

        overlay: AssignmentMap = {k: list(v) for k, v in self.assignments.items()}
        overlay.setdefault(event_id, []).append(Assignment(
            ability_id=ability_id,
            tank_position=tank_position or "none",
            caster_job_id=caster_job_id,
        ))
        forked = self.fork(events=events, assignments=overlay)
        return forked.check_availability(
            ability_id, time,
            caster_job_id=caster_job_id,
            exclude_current_assignment=True,
        )

    def cooldown_timeline(
        self,
        ability_id: str,
        start: float = 0,
        end: float = 600,
        step: float = 1,
    ) -> list[dict[str, Any]]:
        """Sample availability of ``ability_id`` every ``step`` seconds in [start, end]."""
        if step <= 0:
            raise ValueError("Timeline step must be > 0")
        if ability_id not in self.catalogue:
            return []
        timeline = []
        # Tolerance keeps ``end`` when float steps land just short of it
        count = int(math.floor((end - start) / step + 1e-9))
        for i in range(count + 1):
            time = start + i * step
            result = self.check_availability(ability_id, time)
            timeline.append({
                "time": time,
                "is_available": result.is_available,
                "available_charges": result.available_charges,
                "available_instances": result.available_instances,
                "reason": result.reason,
            })
        return timeline
