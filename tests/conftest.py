"""
Pytest fixtures.

Every test gets a fresh in-memory SQLite database; the API client is wired
to the same session so HTTP tests and direct store checks see one state.
"""
import os
from datetime import date, datetime, time, timedelta

os.environ.setdefault("SLOTBOOK_DATABASE_URL", "sqlite://")
os.environ.setdefault("SLOTBOOK_SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from slotbook import models
from slotbook.db import get_session
from slotbook.main import app
from slotbook.schemas import Actor, UserRole

HOURS = {
    "monday": {"start": "09:00", "end": "17:00"},
    "tuesday": {"start": "09:00", "end": "17:00"},
    "wednesday": {"start": "09:00", "end": "17:00"},
    "thursday": {"start": "09:00", "end": "17:00"},
    "friday": {"start": "09:00", "end": "17:00"},
    "saturday": {"start": "09:00", "end": "12:00"},
}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def next_monday():
    """A Monday strictly in the future."""
    today = date.today()
    return today + timedelta(days=(7 - today.weekday()) or 7)


@pytest.fixture
def at(next_monday):
    def _at(hour, day=None):
        return datetime.combine(day or next_monday, time(hour))
    return _at


def _user(session, email, role):
    user = models.User(email=email, password_hash="not-a-real-hash", role=role)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def merchant(session):
    return _user(session, "owner@salon.test", "merchant")


@pytest.fixture
def customer(session):
    return _user(session, "ana@client.test", "client")


@pytest.fixture
def other_customer(session):
    return _user(session, "bia@client.test", "client")


@pytest.fixture
def merchant_actor(merchant):
    return Actor(user_id=merchant.id, role=UserRole.merchant)


@pytest.fixture
def client_actor(customer):
    return Actor(user_id=customer.id, role=UserRole.client)


@pytest.fixture
def other_client_actor(other_customer):
    return Actor(user_id=other_customer.id, role=UserRole.client)


@pytest.fixture
def business(session, merchant):
    business = models.BusinessProfile(owner_id=merchant.id, name="Salon", work_days=HOURS)
    session.add(business)
    session.commit()
    session.refresh(business)
    return business


@pytest.fixture
def haircut(session, business):
    service = models.Service(business_id=business.id, name="Haircut", duration_minutes=60)
    session.add(service)
    session.commit()
    session.refresh(service)
    return service


@pytest.fixture
def coloring(session, business):
    service = models.Service(business_id=business.id, name="Coloring", duration_minutes=90)
    session.add(service)
    session.commit()
    session.refresh(service)
    return service
