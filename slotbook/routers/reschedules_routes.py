# slotbook/routers/reschedules_routes.py

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from slotbook import reschedule
from slotbook.db import get_session
from slotbook.deps import get_actor
from slotbook.schemas import (
    Actor,
    AppointmentPublic,
    RescheduleCreate,
    ReschedulePublic,
    RescheduleReject,
)

router = APIRouter(
    tags=["reschedules"],
)


@router.post("/appointments/{appt_id}/reschedules", response_model=ReschedulePublic, status_code=201)
def propose_reschedule(
    appt_id: int,
    body: RescheduleCreate,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    return reschedule.propose(session, actor, appt_id, body.starts_at, body.justification)


@router.get("/appointments/{appt_id}/reschedules", response_model=List[ReschedulePublic])
def reschedule_history(
    appt_id: int,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    return reschedule.history(session, actor, appt_id)


@router.post("/reschedules/{request_id}/accept", response_model=AppointmentPublic)
def accept_reschedule(
    request_id: int,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    return reschedule.accept(session, actor, request_id)


@router.post("/reschedules/{request_id}/reject", response_model=AppointmentPublic)
def reject_reschedule(
    request_id: int,
    body: Optional[RescheduleReject] = None,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    return reschedule.reject(session, actor, request_id, body.reason if body else None)
