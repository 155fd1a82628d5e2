# slotbook/models.py

from typing import Optional
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, UniqueConstraint, text
from sqlalchemy.types import JSON
from sqlmodel import SQLModel, Field, Column

# all stored times are local wall-clock times without tzinfo
NaiveDateTime = DateTime(timezone=False)


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    role: str  # client or merchant


class BusinessProfile(SQLModel, table=True):
    __tablename__ = "business_profiles"

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key="users.id", index=True, unique=True)
    name: str
    # {"monday": {"start": "09:00", "end": "17:00"}, ...}; missing day = closed
    work_days: dict = Field(default_factory=dict, sa_column=Column(JSON))


class Service(SQLModel, table=True):
    __tablename__ = "services"

    id: Optional[int] = Field(default=None, primary_key=True)
    business_id: int = Field(foreign_key="business_profiles.id", index=True)
    name: str
    duration_minutes: Optional[int] = None
    # shown to clients, never used in availability
    price: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"

    id: Optional[int] = Field(default=None, primary_key=True)

    business_id: int = Field(foreign_key="business_profiles.id", index=True)
    service_id: int = Field(foreign_key="services.id")
    client_id: int = Field(foreign_key="users.id", index=True)

    start_time: datetime = Field(index=True, sa_type=NaiveDateTime)
    end_time: datetime = Field(sa_type=NaiveDateTime)
    # copied from the service when booked
    duration_minutes: int

    status: str = "pending"
    reschedule_justification: Optional[str] = None
    payment_method: str = "pix"
    client_notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now, sa_type=NaiveDateTime)


class RescheduleRequest(SQLModel, table=True):
    __tablename__ = "reschedule_requests"
    __table_args__ = (
        # at most one pending request per appointment, enforced on insert
        Index(
            "uq_reschedule_one_pending",
            "appointment_id",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    appointment_id: int = Field(foreign_key="appointments.id", index=True)

    requested_by: int = Field(foreign_key="users.id")
    requested_by_role: str  # client or merchant

    original_start_time: datetime = Field(sa_type=NaiveDateTime)
    original_end_time: datetime = Field(sa_type=NaiveDateTime)
    proposed_start_time: datetime = Field(sa_type=NaiveDateTime)
    proposed_end_time: datetime = Field(sa_type=NaiveDateTime)

    justification: Optional[str] = None
    status: str = "pending"
    prior_appointment_status: str

    created_at: datetime = Field(default_factory=datetime.now, sa_type=NaiveDateTime)
    resolved_at: Optional[datetime] = Field(default=None, sa_type=NaiveDateTime)
    resolved_by: Optional[int] = None
    rejection_reason: Optional[str] = None


class SlotClaim(SQLModel, table=True):
    """One whole hour of a business's day held by an active appointment."""

    __tablename__ = "slot_claims"
    __table_args__ = (
        UniqueConstraint("business_id", "slot_start", name="uq_business_slot"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    business_id: int = Field(foreign_key="business_profiles.id", index=True)
    slot_start: datetime = Field(sa_type=NaiveDateTime)
    appointment_id: int = Field(foreign_key="appointments.id", index=True)
