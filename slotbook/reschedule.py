# slotbook/reschedule.py
"""
Reschedule negotiation between the client and the merchant.

``propose`` records the new time without touching the booked one, so the
original slot stays held while the counterparty decides. Only ``accept``
moves the appointment; ``reject`` puts its status back as it was. A request
is resolved once; the next proposal is a new row.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from slotbook import notifications
from slotbook.booking import (
    claim_hours,
    ensure_bookable,
    ensure_hours_free,
    get_appointment,
    get_business,
    party_role,
    pending_reschedule,
    release_hours,
    set_status,
)
from slotbook.errors import AlreadyResolvedError, ConflictError, InvalidSlotError, NotFoundError, PermissionDeniedError
from slotbook.core import local_naive
from slotbook.models import Appointment, RescheduleRequest
from slotbook.schemas import Actor
from slotbook.state_machine import AppointmentEvent, next_status

logger = logging.getLogger(__name__)


def get_request(session: Session, request_id: int) -> RescheduleRequest:
    request = session.get(RescheduleRequest, request_id)
    if request is None:
        raise NotFoundError("Reschedule request not found")
    return request


def history(session: Session, actor: Actor, appointment_id: int) -> List[RescheduleRequest]:
    appointment = get_appointment(session, appointment_id)
    party_role(session, appointment, actor)
    return session.exec(
        select(RescheduleRequest)
        .where(RescheduleRequest.appointment_id == appointment_id)
        .order_by(RescheduleRequest.created_at, RescheduleRequest.id)
    ).all()


def propose(
    session: Session,
    actor: Actor,
    appointment_id: int,
    starts_at: datetime,
    justification: Optional[str] = None,
    now: Optional[datetime] = None,
) -> RescheduleRequest:
    appointment = get_appointment(session, appointment_id)
    role = party_role(session, appointment, actor)

    # 1) One open negotiation per appointment
    if pending_reschedule(session, appointment.id) is not None:
        logger.warning("Appointment %s already has a pending reschedule", appointment.id)
        raise ConflictError()

    starts_at = local_naive(starts_at)

    # 2) Terminal appointments cannot be moved
    prior = appointment.status
    target = next_status(prior, AppointmentEvent.request_reschedule)

    # 3) Recompute availability now; the appointment does not block itself
    business = get_business(session, appointment.business_id)
    ensure_bookable(
        session, business, appointment.duration_minutes, starts_at,
        exclude_appointment_id=appointment.id, now=now,
    )
    # every hour of a long service must be free, not only the first
    ends_at = starts_at + timedelta(minutes=appointment.duration_minutes)
    ensure_hours_free(session, business.id, starts_at, ends_at, exclude_appointment_id=appointment.id)

    request = RescheduleRequest(
        appointment_id=appointment.id,
        requested_by=actor.user_id,
        requested_by_role=role.value,
        original_start_time=appointment.start_time,
        original_end_time=appointment.end_time,
        proposed_start_time=starts_at,
        proposed_end_time=ends_at,
        justification=justification,
        status="pending",
        prior_appointment_status=prior,
    )
    session.add(request)
    try:
        session.flush()
    except IntegrityError:
        # another session inserted its pending request first
        session.rollback()
        logger.warning("Concurrent reschedule proposal lost for appointment %s", appointment_id)
        raise ConflictError()

    # times stay as booked until the counterparty accepts
    set_status(session, appointment, prior, target.value, reschedule_justification=justification)
    session.commit()
    session.refresh(request)

    logger.info(
        "Reschedule %s proposed by %s %s for appointment %s: %s -> %s",
        request.id, role.value, actor.user_id, appointment_id,
        request.original_start_time, request.proposed_start_time,
    )
    notifications.notify(
        notifications.RESCHEDULE_PROPOSED,
        request_id=request.id,
        appointment_id=appointment_id,
        requested_by_role=role.value,
    )
    return request


def _load_for_resolution(session: Session, actor: Actor, request_id: int):
    request = get_request(session, request_id)
    appointment = get_appointment(session, request.appointment_id)

    # only the other side answers a proposal
    role = party_role(session, appointment, actor)
    if role.value == request.requested_by_role:
        raise PermissionDeniedError("A reschedule is answered by the other party")

    if request.status != "pending":
        raise AlreadyResolvedError()
    return request, appointment


def _close_request(session: Session, request: RescheduleRequest, status: str, actor: Actor, **values):
    """Conditional write: pending -> ``status``; fails if someone got there first."""
    result = session.execute(
        update(RescheduleRequest)
        .where(RescheduleRequest.id == request.id)
        .where(RescheduleRequest.status == "pending")
        .values(status=status, resolved_at=datetime.now(), resolved_by=actor.user_id, **values)
    )
    if result.rowcount != 1:
        session.rollback()
        raise AlreadyResolvedError()


def accept(session: Session, actor: Actor, request_id: int) -> Appointment:
    request, appointment = _load_for_resolution(session, actor, request_id)
    target = next_status(appointment.status, AppointmentEvent.accept_reschedule, awaiting_reschedule=True)

    _close_request(session, request, "accepted", actor)
    set_status(
        session, appointment, appointment.status, target.value,
        start_time=request.proposed_start_time,
        end_time=request.proposed_end_time,
    )

    # move the held hours to the new time in the same transaction
    release_hours(session, appointment.id)
    session.refresh(appointment)
    claim_hours(session, appointment)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        logger.warning(
            "Reschedule %s could not be accepted: %s is taken", request_id, request.proposed_start_time,
        )
        raise InvalidSlotError()

    session.refresh(appointment)
    logger.info(
        "Reschedule %s accepted by user %s; appointment %s now %s-%s",
        request_id, actor.user_id, appointment.id, appointment.start_time, appointment.end_time,
    )
    notifications.notify(
        notifications.RESCHEDULE_ACCEPTED,
        request_id=request_id,
        appointment_id=appointment.id,
    )
    return appointment


def reject(session: Session, actor: Actor, request_id: int, reason: Optional[str] = None) -> Appointment:
    request, appointment = _load_for_resolution(session, actor, request_id)
    target = next_status(
        appointment.status,
        AppointmentEvent.reject_reschedule,
        awaiting_reschedule=True,
        prior=request.prior_appointment_status,
    )

    _close_request(session, request, "rejected", actor, rejection_reason=reason)
    # original start/end were never touched; only the status goes back
    set_status(session, appointment, appointment.status, target.value)
    session.commit()

    session.refresh(appointment)
    logger.info(
        "Reschedule %s rejected by user %s; appointment %s back to %s",
        request_id, actor.user_id, appointment.id, appointment.status,
    )
    notifications.notify(
        notifications.RESCHEDULE_REJECTED,
        request_id=request_id,
        appointment_id=appointment.id,
    )
    return appointment
