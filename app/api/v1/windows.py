from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response

from app.api.v1.identity import ID_PATTERN, get_actor
from app.api.v1.schemas import DayScheduleSchema, WindowCreateSchema, WindowSchema, WindowUpdateSchema
from app.application.use_cases.schedule_gateway import ScheduleGateway
from app.application.use_cases.slot_store import WindowPatch
from app.domain.entities.actor import Actor
from app.wiring.dependencies import get_schedule_gateway

router = APIRouter()


@router.post("/providers/me/windows", response_model=WindowSchema, status_code=201)
def declare_window(
    req: WindowCreateSchema,
    actor: Actor = Depends(get_actor),
    gateway: ScheduleGateway = Depends(get_schedule_gateway),
):
    window = gateway.declare_window(
        actor,
        work_date=req.work_date,
        start=req.start,
        end=req.end,
        status=req.status,
        note=req.note,
    )
    return WindowSchema.from_entity(window)


@router.patch("/providers/me/windows/{window_id}", response_model=WindowSchema)
def update_window(
    req: WindowUpdateSchema,
    window_id: str = Path(..., pattern=ID_PATTERN),
    actor: Actor = Depends(get_actor),
    gateway: ScheduleGateway = Depends(get_schedule_gateway),
):
    changes = req.model_dump(exclude_unset=True)
    window = gateway.update_window(actor, window_id, WindowPatch(**changes))
    return WindowSchema.from_entity(window)


@router.delete("/providers/me/windows/{window_id}", status_code=204)
def remove_window(
    window_id: str = Path(..., pattern=ID_PATTERN),
    actor: Actor = Depends(get_actor),
    gateway: ScheduleGateway = Depends(get_schedule_gateway),
) -> Response:
    gateway.remove_window(actor, window_id)
    return Response(status_code=204)


@router.get("/providers/{provider_id}/schedule", response_model=list[DayScheduleSchema])
def get_schedule(
    provider_id: str = Path(..., pattern=ID_PATTERN),
    date_from: date = Query(...),
    date_to: date | None = Query(None),
    gateway: ScheduleGateway = Depends(get_schedule_gateway),
):
    date_to = date_to or date_from
    if date_to < date_from:
        raise HTTPException(status_code=400, detail="date_to must not be before date_from")
    return [DayScheduleSchema.from_entity(day) for day in gateway.get_schedule(provider_id, date_from, date_to)]


@router.get("/providers/{provider_id}/availability", response_model=list[DayScheduleSchema])
def get_availability(
    provider_id: str = Path(..., pattern=ID_PATTERN),
    date_from: date = Query(...),
    date_to: date | None = Query(None),
    gateway: ScheduleGateway = Depends(get_schedule_gateway),
):
    if date_to is not None and date_to < date_from:
        raise HTTPException(status_code=400, detail="date_to must not be before date_from")
    return [DayScheduleSchema.from_entity(day) for day in gateway.get_availability(provider_id, date_from, date_to)]
