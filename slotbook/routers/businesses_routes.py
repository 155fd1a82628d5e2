# slotbook/routers/businesses_routes.py

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from slotbook.auth import get_current_user
from slotbook.availability import upcoming_open_dates
from slotbook.booking import (
    calendar_for,
    get_business,
    get_business_for_owner,
    get_service,
    service_duration,
    slots_for,
)
from slotbook.calendar import WorkingHoursCalendar
from slotbook.db import get_session
from slotbook.deps import require_role
from slotbook.errors import NotFoundError, ValidationError
from slotbook.models import BusinessProfile, Service
from slotbook.schemas import (
    AvailabilityResponse,
    BusinessHours,
    BusinessPublic,
    OpenDatesResponse,
    ServiceCreate,
    ServicePublic,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/businesses",
    tags=["businesses"],
)


def _public(business: BusinessProfile) -> dict:
    return {
        "id": business.id,
        "owner_id": business.owner_id,
        "name": business.name,
        "work_days": calendar_for(business).to_dict(),
    }


def _my_business(session: Session, current_user: dict) -> BusinessProfile:
    require_role(current_user, "merchant")
    business = get_business_for_owner(session, current_user["id"])
    if business is None:
        raise NotFoundError("Business profile not found")
    return business


@router.put("/me/hours", response_model=BusinessPublic)
def set_working_hours(
    hours: BusinessHours,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "merchant")

    # Validates weekday names and start < end
    calendar = WorkingHoursCalendar.from_dict({
        day: (window.model_dump() if window is not None else None)
        for day, window in hours.work_days.items()
    })

    # DB upsert: one business profile per merchant
    business = get_business_for_owner(session, current_user["id"])
    if business is None:
        if not hours.name:
            raise ValidationError("name is required for a new business")
        business = BusinessProfile(
            owner_id=current_user["id"],
            name=hours.name,
            work_days=calendar.to_dict(),
        )
    else:
        if hours.name:
            business.name = hours.name
        business.work_days = calendar.to_dict()

    session.add(business)
    session.commit()
    session.refresh(business)
    logger.info("Working hours for business %s set to %s", business.id, business.work_days)

    return _public(business)


@router.get("/me/hours", response_model=BusinessPublic)
def get_my_working_hours(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return _public(_my_business(session, current_user))


@router.post("/me/services", response_model=ServicePublic, status_code=201)
def create_service(
    service: ServiceCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    business = _my_business(session, current_user)

    db_service = Service(
        business_id=business.id,
        name=service.name,
        duration_minutes=service.duration_minutes,
        price=service.price,
    )
    session.add(db_service)
    session.commit()
    session.refresh(db_service)
    return db_service


@router.get("/{business_id}/services", response_model=List[ServicePublic])
def list_services(
    business_id: int,
    session: Session = Depends(get_session),
):
    get_business(session, business_id)
    return session.exec(
        select(Service).where(Service.business_id == business_id).order_by(Service.id)
    ).all()


@router.get("/{business_id}/availability", response_model=AvailabilityResponse)
def business_availability(
    business_id: int,
    on_date: date,
    service_id: int,
    session: Session = Depends(get_session),
):
    business = get_business(session, business_id)
    service = get_service(session, business_id, service_id)
    duration = service_duration(service)

    slots = slots_for(session, business, duration, on_date)

    return {
        "business_id": business_id,
        "service_id": service_id,
        "date": on_date,
        "duration_minutes": duration,
        "slots": [{"time": s.time.strftime("%H:%M"), "status": s.status} for s in slots],
    }


@router.get("/{business_id}/open-dates", response_model=OpenDatesResponse)
def business_open_dates(
    business_id: int,
    start: Optional[date] = None,
    days: int = 30,
    session: Session = Depends(get_session),
):
    if not (1 <= days <= 90):
        raise ValidationError("days must be between 1 and 90")
    business = get_business(session, business_id)
    start = start or date.today()
    return {
        "business_id": business_id,
        "dates": upcoming_open_dates(calendar_for(business), start, days),
    }
