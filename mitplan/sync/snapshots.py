"""Inbound snapshot reconciliation with conflict strategies."""

import logging
import time
from collections import Counter
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from mitplan.config import CONFLICT_STRATEGIES
from mitplan.cooldown.manager import CooldownManager
from mitplan.cooldown.models import Assignment, AssignmentMap, Event, parse_assignment_map

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanSnapshot:
    """A full plan state as published by one editor.

    ``events``, ``selected_jobs`` and ``level`` are optional; None leaves the
    receiver's value unchanged.
    """

    timestamp: float
    assignments: Mapping[str, Any] = field(default_factory=dict)
    events: tuple[Event, ...] | None = None
    selected_jobs: Any = None
    level: int | None = None
    origin: str | None = None

    def is_newer_than(self, other: "PlanSnapshot | float | None") -> bool:
        if other is None:
            return True
        other_ts = other.timestamp if isinstance(other, PlanSnapshot) else other
        return self.timestamp > other_ts


SnapshotListener = Callable[[PlanSnapshot], None]


def _membership(assignments: AssignmentMap) -> dict[str, Counter]:
    return {
        event_id: Counter(a.ability_id for a in entries)
        for event_id, entries in assignments.items()
        if entries
    }


def _stamp(assignment: Assignment) -> float:
    return assignment.assigned_at if assignment.assigned_at is not None else float("-inf")


def merge_assignment_maps(local: AssignmentMap, incoming: AssignmentMap) -> AssignmentMap:
    """Union per event; on the same (ability, tank position) the later ``assigned_at`` wins."""
    merged: AssignmentMap = {}
    for event_id in list(local) + [e for e in incoming if e not in local]:
        slots: dict[tuple[str, str], Assignment] = {}
        for entry in local.get(event_id, []) + incoming.get(event_id, []):
            key = (entry.ability_id, entry.tank_position)
            existing = slots.get(key)
            if existing is None or _stamp(entry) > _stamp(existing):
                slots[key] = entry
        merged[event_id] = list(slots.values())
    return merged


class SnapshotReconciler:
    def __init__(
        self,
        manager: CooldownManager,
        *,
        editor_id: str = "local",
        strategy: str = "latest_wins",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if strategy not in CONFLICT_STRATEGIES:
            raise ValueError(f"Unknown conflict strategy: {strategy}")
        self.manager = manager
        self.editor_id = editor_id
        self.strategy = strategy
        self._clock = clock
        self._listeners: list[SnapshotListener] = []
        self.last_timestamp: float | None = None
        self.applied = 0
        self.discarded = 0
        self.conflicts = 0

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unregisters it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def has_conflict(self, snapshot: PlanSnapshot, incoming: AssignmentMap) -> bool:
        if self.last_timestamp is None:
            return False
        if snapshot.timestamp < self.last_timestamp:
            return True
        return _membership(incoming) != _membership(self.manager.assignments)

    def apply(
        self,
        snapshot: PlanSnapshot,
        *,
        strategy: str | None = None,
        force: bool = False,
    ) -> bool:
        """Apply an inbound snapshot; returns whether local state changed.

        Snapshots published by this editor are echoes of local writes and are
        dropped unless ``force`` is set.
        """
        if snapshot.origin == self.editor_id and not force:
            self.discarded += 1
            logger.debug("Discarding own snapshot at %s", snapshot.timestamp)
            return False

        strategy = strategy or self.strategy
        if strategy not in CONFLICT_STRATEGIES:
            raise ValueError(f"Unknown conflict strategy: {strategy}")

        incoming = parse_assignment_map(snapshot.assignments)
        resolved = incoming
        if not force and self.has_conflict(snapshot, incoming):
            self.conflicts += 1
            local_ts = self.last_timestamp
            if strategy == "latest_wins":
                if snapshot.timestamp < local_ts:
                    logger.info(
                        "Keeping local state: snapshot from %s at %s is older than %s",
                        snapshot.origin, snapshot.timestamp, local_ts,
                    )
                    return False
            elif strategy == "oldest_wins":
                if snapshot.timestamp >= local_ts:
                    logger.info(
                        "Keeping local state: snapshot from %s at %s is not older than %s",
                        snapshot.origin, snapshot.timestamp, local_ts,
                    )
                    return False
            else:
                resolved = merge_assignment_maps(self.manager.assignments, incoming)
            logger.info(
                "Resolved conflict with %s from %s using %s",
                snapshot.origin, snapshot.timestamp, strategy,
            )

        updates: dict[str, Any] = {"assignments": resolved}
        if snapshot.events is not None:
            updates["events"] = snapshot.events
        if snapshot.selected_jobs is not None:
            updates["selected_jobs"] = snapshot.selected_jobs
        if snapshot.level is not None:
            updates["level"] = snapshot.level
        self.manager.update(**updates)

        if self.last_timestamp is None or snapshot.timestamp > self.last_timestamp:
            self.last_timestamp = snapshot.timestamp
        self.applied += 1
        self._notify(PlanSnapshot(
            timestamp=snapshot.timestamp,
            assignments=resolved,
            events=snapshot.events,
            selected_jobs=snapshot.selected_jobs,
            level=snapshot.level,
            origin=snapshot.origin,
        ))
        return True

    def _notify(self, snapshot: PlanSnapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Snapshot listener %r failed", listener)

    def create_outgoing_snapshot(self) -> PlanSnapshot:
        """Snapshot of local state stamped now, for publishing to collaborators."""
        timestamp = self._clock()
        self.last_timestamp = timestamp
        return PlanSnapshot(
            timestamp=timestamp,
            assignments={k: list(v) for k, v in self.manager.assignments.items()},
            events=self.manager.events,
            selected_jobs=self.manager.selected_jobs,
            level=self.manager.level,
            origin=self.editor_id,
        )

    def sync_status(self) -> dict[str, Any]:
        return {
            "editor_id": self.editor_id,
            "strategy": self.strategy,
            "last_timestamp": self.last_timestamp,
            "applied": self.applied,
            "discarded": self.discarded,
            "conflicts": self.conflicts,
            "listeners": len(self._listeners),
        }
