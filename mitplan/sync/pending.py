"""Short-lived markers for optimistic, not yet confirmed assignments."""

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from mitplan.cooldown.models import Assignment, AssignmentMap

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingAssignment:
    id: str
    event_id: str
    assignment: Assignment
    created_at: float

    @property
    def ability_id(self) -> str:
        return self.assignment.ability_id


class PendingAssignments:
    """Pending markers that expire ``timeout`` seconds after creation."""

    def __init__(
        self,
        timeout: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if timeout <= 0:
            raise ValueError("Pending timeout must be > 0")
        self.timeout = timeout
        self._clock = clock
        self._markers: dict[str, PendingAssignment] = {}

    def add(self, event_id: str, assignment: Assignment) -> PendingAssignment:
        marker = PendingAssignment(
            id=uuid.uuid4().hex,
            event_id=event_id,
            assignment=assignment,
            created_at=self._clock(),
        )
        self._markers[marker.id] = marker
        return marker

    def remove(self, marker_id: str) -> bool:
        return self._markers.pop(marker_id, None) is not None

    def active(self) -> list[PendingAssignment]:
        """Unexpired markers, oldest first; expired ones are dropped."""
        now = self._clock()
        expired = [
            marker_id for marker_id, m in self._markers.items()
            if now - m.created_at >= self.timeout
        ]
        for marker_id in expired:
            marker = self._markers.pop(marker_id)
            logger.info(
                "Pending %s on event %s expired after %.1fs",
                marker.ability_id, marker.event_id, self.timeout,
            )
        return sorted(self._markers.values(), key=lambda m: m.created_at)

    def overlay(
        self, assignments: AssignmentMap, *, exclude: str | None = None,
    ) -> AssignmentMap:
        """``assignments`` plus every active marker except ``exclude``."""
        merged = {event_id: list(entries) for event_id, entries in assignments.items()}
        for marker in self.active():
            if marker.id == exclude:
                continue
            merged.setdefault(marker.event_id, []).append(marker.assignment)
        return merged

    def __len__(self) -> int:
        return len(self.active())
