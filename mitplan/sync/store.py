"""Assignment store interface and the in-memory implementation."""

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from mitplan.cooldown.models import Assignment, AssignmentMap, parse_assignment_map

logger = logging.getLogger(__name__)

# Maps one event's current entries to its new entries.
EventUpdate = Callable[[list[Assignment]], list[Assignment]]


class AssignmentStoreError(Exception):
    """Transport-level failure while reading or writing assignments."""


class AssignmentStore(Protocol):
    def snapshot(self) -> AssignmentMap: ...

    async def mutate(
        self,
        event_id: str,
        update: EventUpdate,
        *,
        origin: str,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """Apply ``update`` to the entries stored under ``event_id`` atomically.

        ``update`` receives what the store holds at write time, so writes to
        other events, or landing between a caller's read and its write, are kept.
        """
        ...


def copy_assignment_map(assignments: AssignmentMap) -> AssignmentMap:
    return {event_id: list(entries) for event_id, entries in assignments.items()}


class InMemoryAssignmentStore:
    """Process-local store; writes are serialized by an asyncio lock."""

    def __init__(
        self,
        assignments: Mapping[str, Any] | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._assignments = parse_assignment_map(assignments)
        self._lock = asyncio.Lock()
        self._clock = clock
        self.last_origin: str | None = None
        self.last_modified: float | None = None
        self.revision = 0

    def snapshot(self) -> AssignmentMap:
        return copy_assignment_map(self._assignments)

    def replace(self, assignments: Mapping[str, Any], *, origin: str) -> None:
        """Overwrite without locking; used when applying inbound snapshots."""
        self._assignments = parse_assignment_map(assignments)
        self._touch(origin)

    async def mutate(
        self,
        event_id: str,
        update: EventUpdate,
        *,
        origin: str,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        async with self._lock:
            current = list(self._assignments.get(event_id, []))
            self._assignments[event_id] = list(update(current))
            self._touch(origin)
        logger.debug(
            "Store revision %d written by %s (%s on %s)",
            self.revision, origin, (metadata or {}).get("operation", "mutate"), event_id,
        )
        return True

    def _touch(self, origin: str) -> None:
        self.revision += 1
        self.last_origin = origin
        self.last_modified = self._clock()
