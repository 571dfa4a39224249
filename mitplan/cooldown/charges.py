"""Availability of abilities with several identically-timed charges."""

from dataclasses import dataclass

from mitplan.cooldown.models import UsageRecord


@dataclass(frozen=True)
class ChargeState:
    ability_id: str
    total_charges: int
    available_charges: int
    charges_on_cooldown: int = 0
    next_charge_available_at: float | None = None
    last_used_time: float | None = None
    recent_usages: tuple[UsageRecord, ...] = ()  # chronological

    @property
    def has_charges_available(self) -> bool:
        return self.available_charges > 0


def compute_charge_state(
    ability_id: str,
    usages: list[UsageRecord],
    target_time: float,
    cooldown: float,
    total_charges: int,
) -> ChargeState:
    """Count charges still recovering at ``target_time``.

    Only the ``total_charges`` most recent usages can hold a charge, so older
    usages are never inspected.
    """
    relevant = [u for u in usages if u.time <= target_time]
    recent = sorted(relevant, key=lambda u: u.time, reverse=True)[:total_charges]

    on_cooldown = 0
    next_available: float | None = None
    for usage in recent:
        if target_time - usage.time < cooldown:
            on_cooldown += 1
            ready_at = usage.time + cooldown
            if next_available is None or ready_at < next_available:
                next_available = ready_at

    return ChargeState(
        ability_id=ability_id,
        total_charges=total_charges,
        available_charges=max(0, total_charges - on_cooldown),
        charges_on_cooldown=on_cooldown,
        next_charge_available_at=next_available,
        last_used_time=recent[0].time if recent else None,
        recent_usages=tuple(reversed(recent)),
    )
