"""Shared stack resource: depleted by consumer abilities, refilled by time or provider."""

import logging
from collections.abc import Collection, Iterable
from dataclasses import dataclass, replace

from mitplan.cooldown.models import AssignmentMap, Event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefillRecord:
    time: float
    event_id: str | None
    manual: bool


@dataclass(frozen=True)
class StackConsumption:
    time: float
    event_id: str
    ability_id: str


@dataclass(frozen=True)
class StackState:
    capacity: int
    available_stacks: int
    last_refill_time: float
    next_auto_refill_at: float | None
    refills: tuple[RefillRecord, ...] = ()
    consumptions: tuple[StackConsumption, ...] = ()

    @property
    def has_stacks_available(self) -> bool:
        return self.available_stacks > 0

    @property
    def last_consumed_time(self) -> float | None:
        return self.consumptions[-1].time if self.consumptions else None

    def time_until_refill(self, now: float) -> float:
        if self.next_auto_refill_at is None:
            return 0.0
        return max(0.0, self.next_auto_refill_at - now)


class StackResourceTracker:
    """Forward-simulates the stack counter over the encounter timeline.

    Refills reset the elapsed-time clock and may happen several times before
    the target time, so the counter is replayed event by event. At an instant
    where a refill and a consumption coincide the refill applies first.
    """

    def __init__(
        self,
        capacity: int,
        refill_interval: float,
        provider_ids: Collection[str],
        consumer_ids: Collection[str],
    ) -> None:
        if capacity < 1:
            raise ValueError("Stack capacity must be >= 1")
        if refill_interval <= 0:
            raise ValueError("Stack refill interval must be > 0")
        self.capacity = capacity
        self.refill_interval = refill_interval
        self.provider_ids = frozenset(provider_ids)
        self.consumer_ids = frozenset(consumer_ids)

    def state_at(
        self,
        target_time: float,
        events: Iterable[Event],
        assignments: AssignmentMap,
    ) -> StackState:
        counter = self.capacity
        last_refill = 0.0
        refills: list[RefillRecord] = []
        consumptions: list[StackConsumption] = []

        timeline = sorted((e for e in events if e.time <= target_time), key=lambda e: e.time)
        for event in timeline:
            entries = assignments.get(event.id, [])
            elapsed = event.time - last_refill
            has_provider = any(a.ability_id in self.provider_ids for a in entries)

            if has_provider and elapsed >= self.refill_interval:
                counter = self.capacity
                last_refill = event.time
                refills.append(RefillRecord(event.time, event.id, manual=True))
            elif elapsed >= self.refill_interval and counter < self.capacity:
                counter = self.capacity
                last_refill = event.time
                refills.append(RefillRecord(event.time, event.id, manual=False))

            for assignment in entries:
                if assignment.ability_id not in self.consumer_ids:
                    continue
                if counter > 0:
                    counter -= 1
                    consumptions.append(
                        StackConsumption(event.time, event.id, assignment.ability_id)
                    )
                else:
                    logger.debug(
                        "%s on event %s consumed a stack while the counter was empty",
                        assignment.ability_id, event.id,
                    )

        if target_time - last_refill >= self.refill_interval and counter < self.capacity:
            refill_at = last_refill + self.refill_interval
            if refill_at <= target_time:
                counter = self.capacity
                last_refill = refill_at
                refills.append(RefillRecord(refill_at, None, manual=False))

        next_refill = last_refill + self.refill_interval
        return StackState(
            capacity=self.capacity,
            available_stacks=counter,
            last_refill_time=last_refill,
            next_auto_refill_at=next_refill if next_refill > target_time else None,
            refills=tuple(refills),
            consumptions=tuple(consumptions),
        )

    def simulate_consumption(
        self, state: StackState, ability_id: str, time: float, event_id: str,
    ) -> StackState:
        """State after one more consumer use at ``time``; unchanged if empty."""
        if not state.has_stacks_available:
            return state
        return replace(
            state,
            available_stacks=state.available_stacks - 1,
            consumptions=state.consumptions + (StackConsumption(time, event_id, ability_id),),
        )
