"""One planning context: catalogue, manager, store, coordinator and reconciler."""

import logging
import uuid
from collections.abc import Iterable, Mapping
from typing import Any

from mitplan.config import Settings, get_settings
from mitplan.cooldown.catalogue import AbilityCatalogue, load_catalogue
from mitplan.cooldown.manager import CooldownManager
from mitplan.cooldown.models import Event
from mitplan.sync.coordinator import OptimisticAssignmentCoordinator
from mitplan.sync.snapshots import PlanSnapshot, SnapshotReconciler
from mitplan.sync.store import InMemoryAssignmentStore

logger = logging.getLogger(__name__)


class PlanningSession:
    def __init__(
        self,
        catalogue: AbilityCatalogue,
        *,
        plan_id: str | None = None,
        events: Iterable[Event] = (),
        assignments: Mapping[str, Any] | None = None,
        selected_jobs: Any = None,
        level: int | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.plan_id = plan_id or uuid.uuid4().hex
        self.catalogue = catalogue
        self.store = InMemoryAssignmentStore(assignments)
        self.manager = CooldownManager(
            catalogue,
            events=events,
            assignments=self.store.snapshot(),
            selected_jobs=selected_jobs,
            level=level,
            stack_capacity=settings.engine.stack_capacity,
            stack_refill_interval=settings.engine.stack_refill_interval,
        )
        collab = settings.collaboration
        self.coordinator = OptimisticAssignmentCoordinator(
            self.manager,
            self.store,
            editor_id=collab.editor_id,
            pending_timeout=collab.pending_timeout_seconds,
        )
        self.reconciler = SnapshotReconciler(
            self.manager,
            editor_id=collab.editor_id,
            strategy=collab.conflict_strategy,
        )
        self.reconciler.add_listener(self._store_snapshot)

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, **kwargs: Any,
    ) -> "PlanningSession":
        settings = settings or get_settings()
        if kwargs.get("level", None) is None:
            kwargs["level"] = settings.engine.default_level
        return cls(load_catalogue(settings.catalogue.path), settings=settings, **kwargs)

    def _store_snapshot(self, snapshot: PlanSnapshot) -> None:
        self.store.replace(snapshot.assignments, origin=snapshot.origin or "remote")

    def apply_snapshot(self, snapshot: PlanSnapshot, **kwargs: Any) -> bool:
        return self.reconciler.apply(snapshot, **kwargs)

    def summary(self) -> dict[str, Any]:
        return {
            "plan_id": self.plan_id,
            "event_count": len(self.manager.events),
            "assignment_count": sum(len(v) for v in self.manager.assignments.values()),
            "selected_jobs": sorted(self.manager.selected_jobs),
            "level": self.manager.level,
            "pending": len(self.coordinator.pending),
            "sync": self.reconciler.sync_status(),
        }


class SessionRegistry:
    """In-process plan id -> session map."""

    def __init__(self) -> None:
        self._sessions: dict[str, PlanningSession] = {}

    def add(self, session: PlanningSession) -> PlanningSession:
        self._sessions[session.plan_id] = session
        logger.info("Opened planning session %s", session.plan_id)
        return session

    def get(self, plan_id: str) -> PlanningSession | None:
        return self._sessions.get(plan_id)

    def remove(self, plan_id: str) -> bool:
        return self._sessions.pop(plan_id, None) is not None

    def __len__(self) -> int:
        return len(self._sessions)
