# slotbook/routers/appointments_routes.py

from datetime import date
from typing import Optional, List

from fastapi import APIRouter, Depends
from sqlmodel import Session

from slotbook import booking
from slotbook.auth import get_current_user
from slotbook.db import get_session
from slotbook.deps import get_actor, require_role
from slotbook.errors import NotFoundError
from slotbook.schemas import Actor, AppointmentCreate, AppointmentPublic

router = APIRouter(
    tags=["appointments"],
)


@router.post("/businesses/{business_id}/appointments", response_model=AppointmentPublic, status_code=201)
def client_create_appointment(
    business_id: int,
    appt: AppointmentCreate,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    return booking.create_appointment(session, actor, business_id, appt)


@router.get("/appointments/{appt_id}", response_model=AppointmentPublic)
def get_appointment(
    appt_id: int,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    appointment = booking.get_appointment(session, appt_id)
    booking.party_role(session, appointment, actor)
    return appointment


@router.patch("/appointments/{appt_id}/confirm", response_model=AppointmentPublic)
def confirm_appointment(
    appt_id: int,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    return booking.confirm_appointment(session, actor, appt_id)


@router.patch("/appointments/{appt_id}/cancel", response_model=AppointmentPublic)
def cancel_appointment(
    appt_id: int,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    return booking.cancel_appointment(session, actor, appt_id)


@router.patch("/appointments/{appt_id}/complete", response_model=AppointmentPublic)
def complete_appointment(
    appt_id: int,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    return booking.complete_appointment(session, actor, appt_id)


@router.get("/businesses/me/appointments", response_model=List[AppointmentPublic])
def list_business_appointments(
    status: Optional[str] = "all",
    on_date: Optional[date] = None,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "merchant")
    business = booking.get_business_for_owner(session, current_user["id"])
    if business is None:
        raise NotFoundError("Business profile not found")

    return booking.list_business_appointments(session, business.id, status, on_date)


@router.get("/clients/me/appointments", response_model=List[AppointmentPublic])
def list_my_appointments(
    status: Optional[str] = "all",
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "client")
    return booking.list_client_appointments(session, current_user["id"], status)
