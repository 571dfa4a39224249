"""Availability queries against one plan."""

from fastapi import APIRouter, Depends, HTTPException, Query

from mitplan.api.deps import get_plan
from mitplan.api.models import (
    AvailabilityQuery,
    AvailabilityResponse,
    AvailableAbility,
    SimulateRequest,
    StackGauge,
)
from mitplan.cooldown.models import TankPosition
from mitplan.session import PlanningSession

router = APIRouter()


@router.get(
    "/{plan_id}/abilities/{ability_id}/availability",
    response_model=AvailabilityResponse,
)
async def ability_availability(
    ability_id: str,
    time: float = Query(ge=0),
    event_id: str | None = Query(None, alias="eventId"),
    tank_position: TankPosition | None = Query(None, alias="tankPosition"),
    caster_job_id: str | None = Query(None, alias="casterJobId"),
    session: PlanningSession = Depends(get_plan),
):
    result = session.manager.check_availability(
        ability_id, time, event_id,
        tank_position=tank_position, caster_job_id=caster_job_id,
    )
    return AvailabilityResponse.from_result(result)


@router.post("/{plan_id}/availability", response_model=dict[str, AvailabilityResponse])
async def multiple_availability(
    body: AvailabilityQuery, session: PlanningSession = Depends(get_plan),
):
    results = session.manager.check_multiple(
        body.ability_ids, body.time, body.event_id,
        tank_position=body.tank_position, caster_job_id=body.caster_job_id,
    )
    return {
        ability_id: AvailabilityResponse.from_result(result)
        for ability_id, result in results.items()
    }


@router.get("/{plan_id}/available", response_model=list[AvailableAbility])
async def available_abilities(
    time: float = Query(ge=0),
    event_id: str | None = Query(None, alias="eventId"),
    tank_position: TankPosition | None = Query(None, alias="tankPosition"),
    session: PlanningSession = Depends(get_plan),
):
    return [
        AvailableAbility(
            id=ability.id,
            name=ability.name,
            availability=AvailabilityResponse.from_result(result),
        )
        for ability, result in session.manager.list_available_at(
            time, event_id, tank_position=tank_position,
        )
    ]


@router.post("/{plan_id}/simulate", response_model=AvailabilityResponse)
async def simulate_usage(
    body: SimulateRequest, session: PlanningSession = Depends(get_plan),
):
    result = session.manager.simulate_usage(
        body.ability_id, body.time, body.event_id,
        tank_position=body.tank_position, caster_job_id=body.caster_job_id,
    )
    return AvailabilityResponse.from_result(result)


@router.get("/{plan_id}/stacks", response_model=StackGauge)
async def stack_gauge(
    time: float = Query(ge=0),
    consume: str | None = Query(None),
    session: PlanningSession = Depends(get_plan),
):
    state = session.manager.stack_state(time)
    if state is None:
        raise HTTPException(status_code=404, detail="No stack resource in catalogue")
    if consume is not None:
        state = session.manager.simulate_stack_consumption(consume, time)
        if state is None:
            raise HTTPException(status_code=404, detail=f"{consume} does not consume stacks")
    return StackGauge.from_state(time, state, session.manager.stack_provider_selected())


@router.get("/{plan_id}/abilities/{ability_id}/timeline")
async def cooldown_timeline(
    ability_id: str,
    start: float = Query(0, ge=0),
    end: float = Query(600, ge=0),
    step: float = Query(1, gt=0),
    session: PlanningSession = Depends(get_plan),
):
    if ability_id not in session.catalogue:
        raise HTTPException(status_code=404, detail=f"Unknown ability {ability_id}")
    if end < start:
        raise HTTPException(status_code=422, detail="end must be >= start")
    return session.manager.cooldown_timeline(ability_id, start, end, step)
