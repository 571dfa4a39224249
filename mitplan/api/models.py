"""Pydantic request and response models for the plan API."""

from dataclasses import asdict
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from mitplan.cooldown.models import Assignment, AvailabilityResult, Event, TankPosition
from mitplan.cooldown.stacks import StackState


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreatePlanRequest(ApiModel):
    plan_id: str | None = None
    events: list[Event] = []
    assignments: dict[str, list[dict[str, Any]]] = {}
    selected_jobs: Any = None
    level: int | None = None


class SyncStatus(ApiModel):
    editor_id: str
    strategy: str
    last_timestamp: float | None
    applied: int
    discarded: int
    conflicts: int
    listeners: int


class PlanSummary(ApiModel):
    plan_id: str
    event_count: int
    assignment_count: int
    selected_jobs: list[str]
    level: int | None
    pending: int
    sync: SyncStatus


class SnapshotRequest(ApiModel):
    timestamp: float
    assignments: dict[str, list[dict[str, Any]]] = {}
    events: list[Event] | None = None
    selected_jobs: Any = None
    level: int | None = None
    origin: str | None = None
    strategy: Literal["latest_wins", "oldest_wins", "merge"] | None = None
    force: bool = False


class SnapshotResponse(ApiModel):
    applied: bool
    plan: PlanSummary


class AvailabilityResponse(ApiModel):
    ability_id: str
    is_available: bool
    can_assign: bool
    reason: str | None
    description: str | None
    available_charges: int
    total_charges: int
    available_instances: int
    total_instances: int
    next_available_time: float | None
    last_used_time: float | None
    last_used_event_id: str | None
    last_used_event_name: str | None
    is_role_shared: bool
    shared_cooldown_group: str | None
    available_stacks: int | None
    total_stacks: int | None

    @classmethod
    def from_result(cls, result: AvailabilityResult) -> "AvailabilityResponse":
        return cls(
            **asdict(result),
            can_assign=result.can_assign(),
            description=result.describe(),
        )


class AvailabilityQuery(ApiModel):
    ability_ids: list[str] = Field(min_length=1)
    time: float = Field(ge=0)
    event_id: str | None = None
    tank_position: TankPosition | None = None
    caster_job_id: str | None = None


class AvailableAbility(ApiModel):
    id: str
    name: str
    availability: AvailabilityResponse


class SimulateRequest(ApiModel):
    ability_id: str
    time: float = Field(ge=0)
    event_id: str
    tank_position: TankPosition | None = None
    caster_job_id: str | None = None


class StackGauge(ApiModel):
    time: float
    capacity: int
    available_stacks: int
    last_refill_time: float
    next_auto_refill_at: float | None
    seconds_until_refill: float
    last_consumed_time: float | None
    provider_selected: bool
    refill_times: list[float]
    consumed_by: list[str]

    @classmethod
    def from_state(
        cls, time: float, state: StackState, provider_selected: bool,
    ) -> "StackGauge":
        return cls(
            time=time,
            capacity=state.capacity,
            available_stacks=state.available_stacks,
            last_refill_time=state.last_refill_time,
            next_auto_refill_at=state.next_auto_refill_at,
            seconds_until_refill=state.time_until_refill(time),
            last_consumed_time=state.last_consumed_time,
            provider_selected=provider_selected,
            refill_times=[r.time for r in state.refills],
            consumed_by=[c.ability_id for c in state.consumptions],
        )


class AddAssignmentRequest(ApiModel):
    event_id: str
    ability_id: str
    tank_position: TankPosition | None = None
    caster_job_id: str | None = None
    precast_seconds: float = 0.0


class AddAssignmentResponse(ApiModel):
    success: bool
    reason: str | None = None
    assignment: Assignment | None = None
    replaced: Assignment | None = None
    availability: AvailabilityResponse | None = None
