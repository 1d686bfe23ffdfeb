from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Path, Query

from app.api.v1.identity import ID_PATTERN, get_actor
from app.api.v1.schemas import (
    BookingCreateSchema,
    BookingSchema,
    CompleteSchema,
    ConfirmSchema,
    ExpiredBookingsSchema,
    NotesSchema,
    ProposeSchema,
)
from app.application.use_cases.schedule_gateway import (
    BookingResolution,
    ProviderAction,
    ProviderResponse,
    ResolutionAction,
    ScheduleGateway,
)
from app.domain.entities.actor import Actor
from app.domain.entities.booking import BookingStatus
from app.wiring.dependencies import get_schedule_gateway

router = APIRouter()


@router.post("/bookings", response_model=BookingSchema, status_code=201)
def request_booking(
    req: BookingCreateSchema,
    actor: Actor = Depends(get_actor),
    gateway: ScheduleGateway = Depends(get_schedule_gateway),
):
    booking = gateway.request_booking(
        actor,
        provider_id=req.provider_id,
        offering_id=req.offering_id,
        requested_at=req.requested_at,
        design_ref=req.design_ref,
        description=req.description,
        client_notes=req.client_notes,
    )
    return BookingSchema.from_entity(booking)


@router.get("/bookings", response_model=list[BookingSchema])
def list_bookings(
    status: list[BookingStatus] | None = Query(None),
    actor: Actor = Depends(get_actor),
    gateway: ScheduleGateway = Depends(get_schedule_gateway),
):
    statuses = frozenset(status) if status else None
    return [BookingSchema.from_entity(b) for b in gateway.list_bookings(actor, statuses)]


@router.get("/bookings/{booking_id}", response_model=BookingSchema)
def get_booking(
    booking_id: str = Path(..., pattern=ID_PATTERN),
    actor: Actor = Depends(get_actor),
    gateway: ScheduleGateway = Depends(get_schedule_gateway),
):
    return BookingSchema.from_entity(gateway.get_booking(actor, booking_id))


@router.post("/bookings/{booking_id}/confirm", response_model=BookingSchema)
def confirm_booking(
    booking_id: str = Path(..., pattern=ID_PATTERN),
    req: ConfirmSchema | None = None,
    actor: Actor = Depends(get_actor),
    gateway: ScheduleGateway = Depends(get_schedule_gateway),
):
    req = req or ConfirmSchema()
    response = ProviderResponse(action=ProviderAction.confirm, price=req.price, notes=req.notes)
    return BookingSchema.from_entity(gateway.respond_to_booking(actor, booking_id, response))


@router.post("/bookings/{booking_id}/propose", response_model=BookingSchema)
def propose_alternative(
    req: ProposeSchema,
    booking_id: str = Path(..., pattern=ID_PATTERN),
    actor: Actor = Depends(get_actor),
    gateway: ScheduleGateway = Depends(get_schedule_gateway),
):
    response = ProviderResponse(action=ProviderAction.propose, proposed_at=req.proposed_at, notes=req.notes)
    try:
        booking = gateway.respond_to_booking(actor, booking_id, response)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return BookingSchema.from_entity(booking)


@router.post("/bookings/{booking_id}/decline", response_model=BookingSchema)
def decline_booking(
    booking_id: str = Path(..., pattern=ID_PATTERN),
    req: NotesSchema | None = None,
    actor: Actor = Depends(get_actor),
    gateway: ScheduleGateway = Depends(get_schedule_gateway),
):
    response = ProviderResponse(action=ProviderAction.decline, notes=req.notes if req else None)
    return BookingSchema.from_entity(gateway.respond_to_booking(actor, booking_id, response))


@router.post("/bookings/{booking_id}/accept", response_model=BookingSchema)
def accept_alternative(
    booking_id: str = Path(..., pattern=ID_PATTERN),
    actor: Actor = Depends(get_actor),
    gateway: ScheduleGateway = Depends(get_schedule_gateway),
):
    resolution = BookingResolution(action=ResolutionAction.accept)
    return BookingSchema.from_entity(gateway.resolve_booking(actor, booking_id, resolution))


@router.post("/bookings/{booking_id}/cancel", response_model=BookingSchema)
def cancel_booking(
    booking_id: str = Path(..., pattern=ID_PATTERN),
    actor: Actor = Depends(get_actor),
    gateway: ScheduleGateway = Depends(get_schedule_gateway),
):
    resolution = BookingResolution(action=ResolutionAction.cancel)
    return BookingSchema.from_entity(gateway.resolve_booking(actor, booking_id, resolution))


@router.post("/bookings/{booking_id}/complete", response_model=BookingSchema)
def complete_booking(
    booking_id: str = Path(..., pattern=ID_PATTERN),
    req: CompleteSchema | None = None,
    actor: Actor = Depends(get_actor),
    gateway: ScheduleGateway = Depends(get_schedule_gateway),
):
    req = req or CompleteSchema()
    resolution = BookingResolution(action=ResolutionAction.complete, notes=req.notes, rating=req.rating)
    return BookingSchema.from_entity(gateway.resolve_booking(actor, booking_id, resolution))


@router.post("/system/bookings/expire", response_model=ExpiredBookingsSchema)
def expire_stale_bookings(
    actor: Actor = Depends(get_actor),
    gateway: ScheduleGateway = Depends(get_schedule_gateway),
):
    if not actor.is_system:
        raise HTTPException(status_code=403, detail="System actor required")
    return ExpiredBookingsSchema(expired=[b.id for b in gateway.expire_stale_bookings()])
