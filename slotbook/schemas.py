# slotbook/schemas.py

from pydantic import BaseModel, ConfigDict, Field
from enum import Enum
from datetime import datetime, date, time
from decimal import Decimal
from typing import Dict, List, Optional

from slotbook.availability import SlotStatus


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserRole(str, Enum):
    client = "client"
    merchant = "merchant"


class PaymentMethod(str, Enum):
    pix = "pix"
    card = "card"
    cash = "cash"


class Actor(BaseModel):
    """Caller identity as supplied by the session layer."""
    user_id: int
    role: UserRole


class UserPublic(BaseModel):
    id: int
    email: str
    role: UserRole
    business_id: Optional[int] = None


class UserCreate(BaseModel):
    email: str
    password: str = Field(min_length=8, max_length=72)
    role: UserRole
    # merchants sign up together with their business
    business_name: Optional[str] = None


class WorkDay(BaseModel):
    start: time
    end: time


class BusinessHours(BaseModel):
    name: Optional[str] = None
    work_days: Dict[str, Optional[WorkDay]]


class BusinessPublic(BaseModel):
    id: int
    owner_id: int
    name: str
    work_days: Dict[str, WorkDay]


class ServiceCreate(BaseModel):
    name: str
    duration_minutes: Optional[int] = Field(default=None, gt=0)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)


class ServicePublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    business_id: int
    name: str
    duration_minutes: Optional[int]
    price: Optional[Decimal] = None


class TimeSlotPublic(BaseModel):
    time: str  # "HH:MM"
    status: SlotStatus


class AvailabilityResponse(BaseModel):
    business_id: int
    service_id: int
    date: date
    duration_minutes: int
    slots: List[TimeSlotPublic]


class OpenDatesResponse(BaseModel):
    business_id: int
    dates: List[date]


class AppointmentCreate(BaseModel):
    service_id: int
    starts_at: datetime
    payment_method: PaymentMethod = PaymentMethod.pix
    client_notes: Optional[str] = None


class AppointmentPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    business_id: int
    service_id: int
    client_id: int
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    status: str
    reschedule_justification: Optional[str] = None
    payment_method: PaymentMethod
    client_notes: Optional[str] = None


class RescheduleCreate(BaseModel):
    starts_at: datetime
    justification: Optional[str] = None


class RescheduleReject(BaseModel):
    reason: Optional[str] = None


class ReschedulePublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    appointment_id: int
    requested_by: int
    requested_by_role: UserRole
    original_start_time: datetime
    original_end_time: datetime
    proposed_start_time: datetime
    proposed_end_time: datetime
    justification: Optional[str] = None
    status: str
    created_at: datetime
    resolved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
