"""Plan lifecycle, inbound snapshots and assignment edits."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from mitplan.api.deps import get_catalogue, get_plan, get_registry
from mitplan.api.models import (
    AddAssignmentRequest,
    AddAssignmentResponse,
    AvailabilityResponse,
    CreatePlanRequest,
    PlanSummary,
    SnapshotRequest,
    SnapshotResponse,
)
from mitplan.config import get_settings
from mitplan.cooldown.catalogue import AbilityCatalogue
from mitplan.cooldown.models import ABILITY_NOT_FOUND, TankPosition
from mitplan.session import PlanningSession, SessionRegistry
from mitplan.sync.coordinator import EVENT_NOT_FOUND, STORE_ERROR
from mitplan.sync.snapshots import PlanSnapshot

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=PlanSummary, status_code=201)
async def create_plan(
    body: CreatePlanRequest,
    registry: SessionRegistry = Depends(get_registry),
    catalogue: AbilityCatalogue = Depends(get_catalogue),
):
    if body.plan_id and registry.get(body.plan_id) is not None:
        raise HTTPException(status_code=409, detail=f"Plan {body.plan_id} already exists")
    settings = get_settings()
    session = PlanningSession(
        catalogue,
        plan_id=body.plan_id,
        events=body.events,
        assignments=body.assignments,
        selected_jobs=body.selected_jobs,
        level=body.level if body.level is not None else settings.engine.default_level,
        settings=settings,
    )
    registry.add(session)
    return PlanSummary.model_validate(session.summary())


@router.get("/{plan_id}", response_model=PlanSummary)
async def get_plan_summary(session: PlanningSession = Depends(get_plan)):
    return PlanSummary.model_validate(session.summary())


@router.delete("/{plan_id}", status_code=204)
async def close_plan(plan_id: str, registry: SessionRegistry = Depends(get_registry)):
    if not registry.remove(plan_id):
        raise HTTPException(status_code=404, detail=f"Plan {plan_id} not found")


@router.put("/{plan_id}/snapshot", response_model=SnapshotResponse)
async def apply_snapshot(
    body: SnapshotRequest, session: PlanningSession = Depends(get_plan),
):
    snapshot = PlanSnapshot(
        timestamp=body.timestamp,
        assignments=body.assignments,
        events=tuple(body.events) if body.events is not None else None,
        selected_jobs=body.selected_jobs,
        level=body.level,
        origin=body.origin,
    )
    applied = session.apply_snapshot(snapshot, strategy=body.strategy, force=body.force)
    return SnapshotResponse(applied=applied, plan=PlanSummary.model_validate(session.summary()))


@router.post("/{plan_id}/assignments", response_model=AddAssignmentResponse, status_code=201)
async def add_assignment(
    body: AddAssignmentRequest, session: PlanningSession = Depends(get_plan),
):
    result = await session.coordinator.add_mitigation(
        body.event_id,
        body.ability_id,
        tank_position=body.tank_position,
        caster_job_id=body.caster_job_id,
        precast_seconds=body.precast_seconds,
    )
    if result.success:
        return AddAssignmentResponse(
            success=True,
            assignment=result.assignment,
            replaced=result.replaced,
            availability=AvailabilityResponse.from_result(result.availability),
        )

    if result.reason in (ABILITY_NOT_FOUND, EVENT_NOT_FOUND):
        raise HTTPException(status_code=404, detail=result.reason)
    if result.reason == STORE_ERROR:
        raise HTTPException(status_code=503, detail="Assignment store unavailable")
    detail = {"reason": result.reason}
    if result.availability is not None:
        detail["description"] = result.availability.describe()
        detail["nextAvailableTime"] = result.availability.next_available_time
    raise HTTPException(status_code=409, detail=detail)


@router.delete("/{plan_id}/assignments/{event_id}/{ability_id}", status_code=204)
async def remove_assignment(
    event_id: str,
    ability_id: str,
    tank_position: TankPosition | None = None,
    session: PlanningSession = Depends(get_plan),
):
    removed = await session.coordinator.remove_mitigation(event_id, ability_id, tank_position)
    if not removed:
        raise HTTPException(
            status_code=404, detail=f"No {ability_id} assignment on event {event_id}",
        )
