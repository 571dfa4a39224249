"""Timeline, ability and assignment records plus derived availability results."""

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

# Availability reasons (closed set)
ABILITY_NOT_FOUND = "ability_not_found"
ON_COOLDOWN = "on_cooldown"
SHARED_COOLDOWN = "shared_cooldown"
NO_CHARGES = "no_charges"
NO_INSTANCES = "no_instances"
ALREADY_ASSIGNED = "already_assigned"
REQUIRES_ACTIVE_WINDOW = "requires_active_window"
JOB_NOT_SELECTED = "job_not_selected"
NO_STACK_RESOURCE = "no_stack_resource"

AVAILABILITY_REASONS: frozenset[str] = frozenset({
    ABILITY_NOT_FOUND,
    ON_COOLDOWN,
    SHARED_COOLDOWN,
    NO_CHARGES,
    NO_INSTANCES,
    ALREADY_ASSIGNED,
    REQUIRES_ACTIVE_WINDOW,
    JOB_NOT_SELECTED,
    NO_STACK_RESOURCE,
})

TankPosition = Literal["none", "shared", "mainTank", "offTank"]
SPECIFIC_TANK_POSITIONS: frozenset[str] = frozenset({"mainTank", "offTank"})


class PlanBaseModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Event(PlanBaseModel):
    id: str
    time: float = Field(ge=0)
    name: str = ""
    is_tank_buster: bool = False


class ActiveWindowRequirement(PlanBaseModel):
    ability_id: str
    duration: float | None = None  # None = referenced ability's duration


class AbilityDefinition(PlanBaseModel):
    id: str
    name: str = ""
    base_cooldown: float = Field(ge=0)
    level_cooldown_overrides: dict[int, float] = {}
    duration: float = 0
    level_duration_overrides: dict[int, float] = {}
    charge_count: int = Field(1, ge=1)
    level_charge_overrides: dict[int, int] = {}
    level_requirement: int = 0
    is_role_shared: bool = False
    eligible_jobs: tuple[str, ...] = ()
    target: Literal["single", "self", "area", "party"] = "area"
    for_tank_busters: bool = False
    for_raid_wide: bool = False
    consumes_stack_resource: bool = False
    provides_stack_resource: bool = False
    shared_cooldown_group: str | None = None
    requires_active_window_of: ActiveWindowRequirement | None = None

    @field_validator("eligible_jobs", mode="before")
    @classmethod
    def _dedupe_jobs(cls, value: Any) -> Any:
        if isinstance(value, str):
            return (value,)
        if isinstance(value, (list, tuple, set, frozenset)):
            # keep catalogue order, drop repeats
            return tuple(dict.fromkeys(value))
        return value


class Assignment(PlanBaseModel):
    ability_id: str
    tank_position: TankPosition = "none"
    caster_job_id: str | None = None
    precast_seconds: float = 0.0
    instance_id: str | None = None
    charge_index: int | None = None
    assigned_at: float | None = None
    assigned_by: str | None = None

    @field_validator("tank_position", mode="before")
    @classmethod
    def _null_position(cls, value: Any) -> Any:
        return "none" if value is None else value

    @field_validator("precast_seconds", mode="before")
    @classmethod
    def _clamp_precast(cls, value: Any) -> float:
        try:
            precast = float(value)
        except (TypeError, ValueError):
            return 0.0
        if not math.isfinite(precast) or precast < 0:
            return 0.0
        return precast

    @field_validator("instance_id", mode="before")
    @classmethod
    def _stringify_instance(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value


AssignmentMap = dict[str, list[Assignment]]


def parse_assignment_map(raw: Mapping[str, Any] | None) -> AssignmentMap:
    """Build an assignment map from raw store data, skipping malformed entries.

    Entries may already be ``Assignment`` instances. Anything that fails
    validation is logged and dropped so one corrupt record cannot break the
    rest of the plan.
    """
    result: AssignmentMap = {}
    if not raw:
        return result

    for event_id, entries in raw.items():
        if not isinstance(entries, (list, tuple)):
            logger.warning(
                "Skipping assignments for event %s: expected a list, got %s",
                event_id, type(entries).__name__,
            )
            continue
        parsed: list[Assignment] = []
        for entry in entries:
            if isinstance(entry, Assignment):
                parsed.append(entry)
                continue
            try:
                parsed.append(Assignment.model_validate(entry))
            except ValidationError as exc:
                logger.warning(
                    "Skipping malformed assignment on event %s: %s",
                    event_id, exc.errors()[0].get("msg", exc),
                )
        result[str(event_id)] = parsed
    return result


@dataclass(frozen=True)
class UsageRecord:
    ability_id: str
    event_id: str
    event_name: str
    time: float  # effective time: event.time - precast, floored at 0
    tank_position: str = "none"
    caster_job_id: str | None = None
    instance_id: str | None = None


@dataclass(frozen=True)
class AvailabilityResult:
    ability_id: str
    is_available: bool = True
    reason: str | None = None
    available_charges: int = 1
    total_charges: int = 1
    available_instances: int = 1
    total_instances: int = 1
    next_available_time: float | None = None
    last_used_time: float | None = None
    last_used_event_id: str | None = None
    last_used_event_name: str | None = None
    is_role_shared: bool = False
    shared_cooldown_group: str | None = None
    available_stacks: int | None = None
    total_stacks: int | None = None

    def can_assign(self) -> bool:
        return self.is_available and (
            self.available_charges > 0 or self.available_instances > 0
        )

    def describe(self) -> str | None:
        """Human-readable unavailability reason, or None when available."""
        if self.is_available:
            return None
        if self.reason == ON_COOLDOWN:
            return f"On cooldown until {self.next_available_time}s"
        if self.reason == SHARED_COOLDOWN:
            return f"Shared cooldown until {self.next_available_time}s"
        if self.reason == NO_CHARGES:
            return "No charges available"
        if self.reason == NO_INSTANCES:
            return "No instances available"
        if self.reason == ALREADY_ASSIGNED:
            return f"Already assigned to {self.last_used_event_name}"
        if self.reason == REQUIRES_ACTIVE_WINDOW:
            return "Requires an active window"
        if self.reason == JOB_NOT_SELECTED:
            return "Provider job not selected"
        if self.reason == NO_STACK_RESOURCE:
            return "No stacks available"
        if self.reason == ABILITY_NOT_FOUND:
            return "Unknown ability"
        return "Unavailable"
