# slotbook/booking.py
"""
Store-bound booking operations: availability lookups against persisted
appointments, fresh bookings and the appointment status transitions.

Every write goes through one commit. The no-double-booking rule is enforced
by the ``slot_claims`` unique constraint, so two sessions racing for the same
hour cannot both succeed even if both passed the availability check.
"""

import logging
from datetime import date as Date, datetime, timedelta
from typing import List, Optional

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from slotbook import notifications
from slotbook.availability import TimeSlot, booked_intervals, compute_slots, find_slot
from slotbook.calendar import WorkingHoursCalendar
from slotbook.config import get_settings
from slotbook.core import hours_touched, local_naive
from slotbook.errors import (
    InvalidSlotError,
    InvalidTransition,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from slotbook.models import Appointment, BusinessProfile, RescheduleRequest, Service, SlotClaim
from slotbook.schemas import Actor, AppointmentCreate, UserRole
from slotbook.state_machine import ACTIVE, AppointmentEvent, AppointmentStatus, next_status

logger = logging.getLogger(__name__)

ACTIVE_VALUES = [s.value for s in ACTIVE]


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def get_business(session: Session, business_id: int) -> BusinessProfile:
    business = session.get(BusinessProfile, business_id)
    if business is None:
        raise NotFoundError("Business not found")
    return business


def get_business_for_owner(session: Session, owner_id: int) -> Optional[BusinessProfile]:
    return session.exec(
        select(BusinessProfile).where(BusinessProfile.owner_id == owner_id)
    ).first()


def get_service(session: Session, business_id: int, service_id: int) -> Service:
    service = session.get(Service, service_id)
    if service is None or service.business_id != business_id:
        raise NotFoundError("Service not found")
    return service


def get_appointment(session: Session, appointment_id: int) -> Appointment:
    appointment = session.get(Appointment, appointment_id)
    if appointment is None:
        raise NotFoundError("Appointment not found")
    return appointment


def calendar_for(business: BusinessProfile) -> WorkingHoursCalendar:
    return WorkingHoursCalendar.from_dict(business.work_days)


def service_duration(service: Service) -> int:
    return service.duration_minutes or get_settings().default_service_minutes


def pending_reschedule(session: Session, appointment_id: int) -> Optional[RescheduleRequest]:
    return session.exec(
        select(RescheduleRequest)
        .where(RescheduleRequest.appointment_id == appointment_id)
        .where(RescheduleRequest.status == "pending")
    ).first()


def party_role(session: Session, appointment: Appointment, actor: Actor) -> UserRole:
    """Which side of the appointment ``actor`` is on, or PermissionDeniedError."""
    if actor.role == UserRole.client and appointment.client_id == actor.user_id:
        return UserRole.client
    if actor.role == UserRole.merchant:
        business = session.get(BusinessProfile, appointment.business_id)
        if business is not None and business.owner_id == actor.user_id:
            return UserRole.merchant
    raise PermissionDeniedError()


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------

def active_appointments_on(session: Session, business_id: int, on_date: Date) -> List[Appointment]:
    day_start_dt = datetime.combine(on_date, datetime.min.time())
    day_end_dt = day_start_dt + timedelta(days=1)

    return session.exec(
        select(Appointment)
        .where(Appointment.business_id == business_id)
        .where(Appointment.start_time >= day_start_dt)
        .where(Appointment.start_time < day_end_dt)
        .where(Appointment.status.in_(ACTIVE_VALUES))
        .order_by(Appointment.start_time)
    ).all()


def slots_for(
    session: Session,
    business: BusinessProfile,
    duration_minutes: int,
    on_date: Date,
    exclude_appointment_id: Optional[int] = None,
) -> List[TimeSlot]:
    booked = booked_intervals(
        active_appointments_on(session, business.id, on_date),
        exclude_id=exclude_appointment_id,
    )
    return compute_slots(calendar_for(business), duration_minutes, on_date, booked)


def ensure_bookable(
    session: Session,
    business: BusinessProfile,
    duration_minutes: int,
    starts_at: datetime,
    exclude_appointment_id: Optional[int] = None,
    now: Optional[datetime] = None,
):
    now = now or datetime.now()
    if starts_at < now:
        raise ValidationError("Cannot book an appointment in the past")

    # slots only ever start on the hour
    if starts_at.minute or starts_at.second or starts_at.microsecond:
        raise InvalidSlotError("Appointments start on the hour")

    slots = slots_for(session, business, duration_minutes, starts_at.date(), exclude_appointment_id)
    slot = find_slot(slots, starts_at.time())
    if slot is None or not slot.is_available:
        logger.warning(
            "Slot %s for business %s is not available (duration %s)",
            starts_at, business.id, duration_minutes,
        )
        raise InvalidSlotError()


def claim_hours(session: Session, appointment: Appointment):
    for hour in hours_touched(appointment.start_time, appointment.end_time):
        session.add(SlotClaim(
            business_id=appointment.business_id,
            slot_start=hour,
            appointment_id=appointment.id,
        ))


def ensure_hours_free(
    session: Session,
    business_id: int,
    start: datetime,
    end: datetime,
    exclude_appointment_id: Optional[int] = None,
):
    """InvalidSlotError if another appointment already holds any hour of [start, end)."""
    stmt = (
        select(SlotClaim)
        .where(SlotClaim.business_id == business_id)
        .where(SlotClaim.slot_start.in_(hours_touched(start, end)))
    )
    if exclude_appointment_id is not None:
        stmt = stmt.where(SlotClaim.appointment_id != exclude_appointment_id)

    taken = session.exec(stmt).first()
    if taken is not None:
        logger.warning(
            "Hour %s for business %s is held by appointment %s",
            taken.slot_start, business_id, taken.appointment_id,
        )
        raise InvalidSlotError()


def release_hours(session: Session, appointment_id: int):
    session.execute(delete(SlotClaim).where(SlotClaim.appointment_id == appointment_id))


# ---------------------------------------------------------------------------
# Fresh booking
# ---------------------------------------------------------------------------

def create_appointment(
    session: Session,
    actor: Actor,
    business_id: int,
    data: AppointmentCreate,
    now: Optional[datetime] = None,
) -> Appointment:
    if actor.role != UserRole.client:
        raise PermissionDeniedError("Only clients can book appointments")

    # 1) Validate business and service
    business = get_business(session, business_id)
    service = get_service(session, business_id, data.service_id)
    duration = service_duration(service)

    # 2) Slot must be offered right now
    starts_at = local_naive(data.starts_at)
    ensure_bookable(session, business, duration, starts_at, now=now)

    # 3) Insert appointment and its hour claims in one transaction
    appointment = Appointment(
        business_id=business_id,
        service_id=service.id,
        client_id=actor.user_id,
        start_time=starts_at,
        end_time=starts_at + timedelta(minutes=duration),
        duration_minutes=duration,
        status=AppointmentStatus.pending.value,
        payment_method=data.payment_method.value,
        client_notes=data.client_notes,
    )
    session.add(appointment)
    try:
        session.flush()  # assigns appointment.id
        claim_hours(session, appointment)
        session.commit()
    except IntegrityError:
        session.rollback()
        logger.warning("Booking race lost for business %s at %s", business_id, starts_at)
        raise InvalidSlotError()

    session.refresh(appointment)
    logger.info(
        "Appointment %s booked: business=%s client=%s %s-%s",
        appointment.id, business_id, actor.user_id, appointment.start_time, appointment.end_time,
    )
    notifications.notify(
        notifications.APPOINTMENT_CREATED,
        appointment_id=appointment.id,
        business_id=business_id,
        client_id=actor.user_id,
    )
    return appointment


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------

def set_status(session: Session, appointment: Appointment, expected: str, new: str, **values):
    """Conditional write: only applies while the row still has ``expected``."""
    result = session.execute(
        update(Appointment)
        .where(Appointment.id == appointment.id)
        .where(Appointment.status == expected)
        .values(status=new, **values)
    )
    if result.rowcount != 1:
        session.rollback()
        raise InvalidTransition(
            expected, "update",
            "The appointment was changed by someone else; reload it and try again",
        )


def _transition(
    session: Session,
    appointment_id: int,
    actor: Actor,
    event: AppointmentEvent,
) -> Appointment:
    appointment = get_appointment(session, appointment_id)
    party_role(session, appointment, actor)

    pending = pending_reschedule(session, appointment.id)
    current = appointment.status
    target = next_status(current, event, awaiting_reschedule=pending is not None)

    if event == AppointmentEvent.cancel and pending is not None:
        # a cancelled appointment cannot keep an open negotiation
        session.execute(
            update(RescheduleRequest)
            .where(RescheduleRequest.id == pending.id)
            .where(RescheduleRequest.status == "pending")
            .values(
                status="rejected",
                resolved_at=datetime.now(),
                resolved_by=actor.user_id,
                rejection_reason="Appointment cancelled",
            )
        )

    set_status(session, appointment, current, target.value)
    if AppointmentStatus(target) not in ACTIVE:
        release_hours(session, appointment.id)
    session.commit()
    session.refresh(appointment)

    logger.info("Appointment %s %s -> %s by user %s", appointment.id, current, target.value, actor.user_id)
    notifications.notify(
        notifications.APPOINTMENT_STATUS_CHANGED,
        appointment_id=appointment.id,
        previous=current,
        status=target.value,
    )
    return appointment


def confirm_appointment(session: Session, actor: Actor, appointment_id: int) -> Appointment:
    if actor.role != UserRole.merchant:
        raise PermissionDeniedError("Only the merchant can confirm an appointment")
    return _transition(session, appointment_id, actor, AppointmentEvent.confirm)


def cancel_appointment(session: Session, actor: Actor, appointment_id: int) -> Appointment:
    return _transition(session, appointment_id, actor, AppointmentEvent.cancel)


def complete_appointment(
    session: Session,
    actor: Actor,
    appointment_id: int,
    now: Optional[datetime] = None,
) -> Appointment:
    if actor.role != UserRole.merchant:
        raise PermissionDeniedError("Only the merchant can complete an appointment")
    appointment = get_appointment(session, appointment_id)
    party_role(session, appointment, actor)
    now = now or datetime.now()
    if now < appointment.start_time:
        raise InvalidTransition(appointment.status, "complete", "The appointment has not started yet")
    return _transition(session, appointment_id, actor, AppointmentEvent.complete)


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------

def _status_filter(stmt, status: Optional[str]):
    if status in (None, "all"):
        return stmt
    if status == "active":
        return stmt.where(Appointment.status.in_(ACTIVE_VALUES))
    try:
        AppointmentStatus(status)
    except ValueError:
        raise ValidationError("status must be 'all', 'active' or an appointment status")
    return stmt.where(Appointment.status == status)


def list_client_appointments(session: Session, client_id: int, status: Optional[str] = "all") -> List[Appointment]:
    stmt = select(Appointment).where(Appointment.client_id == client_id)
    stmt = _status_filter(stmt, status).order_by(Appointment.start_time)
    return session.exec(stmt).all()


def list_business_appointments(
    session: Session,
    business_id: int,
    status: Optional[str] = "all",
    on_date: Optional[Date] = None,
) -> List[Appointment]:
    stmt = select(Appointment).where(Appointment.business_id == business_id)

    if on_date is not None:
        day_start_dt = datetime.combine(on_date, datetime.min.time())
        day_end_dt = day_start_dt + timedelta(days=1)
        stmt = stmt.where(Appointment.start_time >= day_start_dt).where(Appointment.start_time < day_end_dt)

    stmt = _status_filter(stmt, status).order_by(Appointment.start_time)
    return session.exec(stmt).all()
