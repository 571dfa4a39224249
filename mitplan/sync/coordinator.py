"""Optimistic add/remove of assignments against a shared store.

An add is validated twice: once before the write, against the last known
snapshot overlaid with the other in-flight markers, and once after, against
what the store actually holds with the new entry taken out. The second check
catches a collaborator who claimed the same resource in between; the write is
then reverted.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from mitplan.cooldown.catalogue import duration_for_level
from mitplan.cooldown.manager import CooldownManager
from mitplan.cooldown.models import (
    ABILITY_NOT_FOUND,
    AbilityDefinition,
    Assignment,
    AssignmentMap,
    AvailabilityResult,
)
from mitplan.cooldown.rules import is_tank_position_specific
from mitplan.sync.pending import PendingAssignments
from mitplan.sync.store import (
    AssignmentStore,
    AssignmentStoreError,
    EventUpdate,
    copy_assignment_map,
)

logger = logging.getLogger(__name__)

EVENT_NOT_FOUND = "event_not_found"
STORE_ERROR = "store_error"


@dataclass(frozen=True)
class AddResult:
    success: bool
    reason: str | None = None
    assignment: Assignment | None = None
    availability: AvailabilityResult | None = None
    replaced: Assignment | None = None


def clamp_precast(ability: AbilityDefinition, precast: float, level: int | None) -> float:
    return max(0.0, min(precast, duration_for_level(ability, level)))


def validate_caster(ability: AbilityDefinition, caster_job_id: str | None) -> str | None:
    """Caster job if it can cast ``ability``; the only eligible job otherwise."""
    if caster_job_id and caster_job_id in ability.eligible_jobs:
        return caster_job_id
    if len(ability.eligible_jobs) == 1:
        return ability.eligible_jobs[0]
    return None


def _without(entries: list[Assignment], target: Assignment) -> list[Assignment]:
    """``entries`` minus the first entry equal to ``target``."""
    remaining = list(entries)
    for i, entry in enumerate(remaining):
        if entry == target:
            del remaining[i]
            break
    return remaining


class OptimisticAssignmentCoordinator:
    def __init__(
        self,
        manager: CooldownManager,
        store: AssignmentStore,
        *,
        editor_id: str = "local",
        pending_timeout: float = 5.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.manager = manager
        self.store = store
        self.editor_id = editor_id
        self.pending = PendingAssignments(timeout=pending_timeout)
        self._clock = clock

    def effective_assignments(self) -> AssignmentMap:
        """Store snapshot with every in-flight marker overlaid."""
        return self.pending.overlay(self.store.snapshot())

    def pending_assignments(self) -> list[tuple[str, Assignment]]:
        return [(m.event_id, m.assignment) for m in self.pending.active()]

    async def add_mitigation(
        self,
        event_id: str,
        ability_id: str,
        *,
        tank_position: str | None = None,
        caster_job_id: str | None = None,
        precast_seconds: float = 0.0,
    ) -> AddResult:
        ability = self.manager.catalogue.get(ability_id)
        if ability is None:
            logger.warning("Cannot add unknown ability %s", ability_id)
            return AddResult(success=False, reason=ABILITY_NOT_FOUND)
        event = self.manager.events_by_id.get(event_id)
        if event is None:
            logger.warning("Cannot add %s to unknown event %s", ability_id, event_id)
            return AddResult(success=False, reason=EVENT_NOT_FOUND)

        level = self.manager.level
        base = self.store.snapshot()

        # A tank-specific single-target use supersedes an untargeted one.
        replaced = None
        if is_tank_position_specific(ability, tank_position):
            replaced = next(
                (
                    a for a in base.get(event_id, [])
                    if a.ability_id == ability_id
                    and a.tank_position in ("none", "shared")
                ),
                None,
            )
            if replaced is not None:
                base[event_id] = _without(base[event_id], replaced)
                logger.info(
                    "Replacing untargeted %s on %s with a %s assignment",
                    ability_id, event_id, tank_position,
                )

        precast = clamp_precast(ability, precast_seconds, level)
        use_time = max(0.0, event.time - precast)
        caster = validate_caster(ability, caster_job_id)

        pre = self.manager.fork(assignments=self.pending.overlay(base)).check_availability(
            ability_id, use_time, event_id,
            tank_position=tank_position, caster_job_id=caster,
        )
        if not pre.can_assign():
            logger.info(
                "Rejected %s on %s before write: %s", ability_id, event_id, pre.reason,
            )
            return AddResult(success=False, reason=pre.reason, availability=pre)

        assignment = Assignment(
            ability_id=ability_id,
            tank_position=tank_position or "none",
            caster_job_id=caster,
            precast_seconds=precast,
            instance_id=f"{ability_id}_{caster}" if ability.is_role_shared and caster else None,
            charge_index=pre.total_charges - pre.available_charges
            if pre.total_charges > 1 else 0,
            assigned_at=self._clock(),
            assigned_by=self.editor_id,
        )
        marker = self.pending.add(event_id, assignment)

        def _add(entries: list[Assignment]) -> list[Assignment]:
            if replaced is not None:
                entries = _without(entries, replaced)
            return entries + [assignment]

        try:
            accepted = await self.store.mutate(
                event_id,
                _add,
                origin=self.editor_id,
                metadata={"operation": "add", "ability_id": ability_id},
            )
        except AssignmentStoreError:
            logger.exception("Store write failed adding %s to %s", ability_id, event_id)
            self.pending.remove(marker.id)
            return AddResult(success=False, reason=STORE_ERROR, availability=pre)
        if not accepted:
            self.pending.remove(marker.id)
            return AddResult(success=False, reason=STORE_ERROR, availability=pre)

        after = self.store.snapshot()
        others = copy_assignment_map(after)
        others[event_id] = _without(others.get(event_id, []), assignment)
        post = self.manager.fork(
            assignments=self.pending.overlay(others, exclude=marker.id),
        ).check_availability(
            ability_id, use_time, event_id,
            tank_position=tank_position, caster_job_id=caster,
        )
        if not post.can_assign():
            logger.warning(
                "Concurrent conflict adding %s to %s (%s), reverting",
                ability_id, event_id, post.reason,
            )

            def _undo(entries: list[Assignment]) -> list[Assignment]:
                entries = _without(entries, assignment)
                if replaced is not None:
                    entries.append(replaced)
                return entries

            await self._revert(event_id, ability_id, _undo)
            self.pending.remove(marker.id)
            self.manager.update(assignments=self.store.snapshot())
            return AddResult(success=False, reason=post.reason, availability=post)

        self.pending.remove(marker.id)
        self.manager.update(assignments=after)
        logger.info(
            "Added %s to %s (caster=%s, precast=%.1f)",
            ability_id, event_id, caster, precast,
        )
        return AddResult(
            success=True, assignment=assignment, availability=post, replaced=replaced,
        )

    async def _revert(self, event_id: str, ability_id: str, update: EventUpdate) -> None:
        try:
            await self.store.mutate(
                event_id,
                update,
                origin=self.editor_id,
                metadata={"operation": "revert", "ability_id": ability_id},
            )
        except AssignmentStoreError:
            logger.exception("Failed to revert %s on %s", ability_id, event_id)

    async def _write(
        self, event_id: str, ability_id: str, operation: str, update: EventUpdate,
    ) -> bool:
        try:
            accepted = await self.store.mutate(
                event_id,
                update,
                origin=self.editor_id,
                metadata={"operation": operation, "ability_id": ability_id},
            )
        except AssignmentStoreError:
            logger.exception("Store write failed (%s %s on %s)", operation, ability_id, event_id)
            return False
        if accepted:
            self.manager.update(assignments=self.store.snapshot())
        return accepted

    async def remove_mitigation(
        self, event_id: str, ability_id: str, tank_position: str | None = None,
    ) -> bool:
        """Drop every matching assignment; ``tank_position`` narrows the match."""

        def _matches(entry: Assignment) -> bool:
            return entry.ability_id == ability_id and (
                tank_position is None or entry.tank_position == tank_position
            )

        if not any(_matches(a) for a in self.store.snapshot().get(event_id, [])):
            return False
        return await self._write(
            event_id, ability_id, "remove",
            lambda entries: [a for a in entries if not _matches(a)],
        )

    async def update_precast(
        self,
        event_id: str,
        ability_id: str,
        precast_seconds: float,
        tank_position: str | None = None,
    ) -> bool:
        ability = self.manager.catalogue.get(ability_id)
        if ability is None:
            return False
        # Reuse the model's coercion for non-numeric or negative input.
        raw = Assignment(ability_id=ability_id, precast_seconds=precast_seconds).precast_seconds
        precast = clamp_precast(ability, raw, self.manager.level)

        def _matches(entry: Assignment) -> bool:
            return entry.ability_id == ability_id and (
                tank_position is None or entry.tank_position == tank_position
            )

        if not any(_matches(a) for a in self.store.snapshot().get(event_id, [])):
            return False
        return await self._write(
            event_id, ability_id, "precast",
            lambda entries: [
                a.model_copy(update={"precast_seconds": precast}) if _matches(a) else a
                for a in entries
            ],
        )
