# slotbook/accounts.py
"""
Sign-up, login and the caller's own profile.

A merchant signs up together with their business: the profile is created in
the same commit as the user, with no working hours yet (closed every day)
until ``PUT /businesses/me/hours`` fills them in.
"""

import logging
from typing import Optional

from sqlmodel import Session, select

from slotbook.auth import hash_password, verify_password
from slotbook.booking import get_business_for_owner
from slotbook.errors import AlreadyRegisteredError, AuthenticationError, NotFoundError, ValidationError
from slotbook.models import BusinessProfile, User
from slotbook.schemas import Actor, UserCreate, UserRole

logger = logging.getLogger(__name__)


def get_user_by_email(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == email)).first()


def public_profile(session: Session, user: User) -> dict:
    profile = {"id": user.id, "email": user.email, "role": user.role, "business_id": None}
    if user.role == UserRole.merchant.value:
        business = get_business_for_owner(session, user.id)
        if business is not None:
            profile["business_id"] = business.id
    return profile


def register(session: Session, data: UserCreate) -> dict:
    business_name = (data.business_name or "").strip()
    if data.role == UserRole.merchant and not business_name:
        raise ValidationError("business_name is required for a merchant")

    if get_user_by_email(session, data.email) is not None:
        raise AlreadyRegisteredError()

    user = User(
        email=data.email,
        password_hash=hash_password(data.password),
        role=data.role.value,
    )
    session.add(user)
    session.flush()  # assigns user.id

    if data.role == UserRole.merchant:
        session.add(BusinessProfile(owner_id=user.id, name=business_name, work_days={}))

    session.commit()
    session.refresh(user)
    logger.info("Registered %s %s", user.role, user.id)
    return public_profile(session, user)


def authenticate(session: Session, email: str, password: str) -> User:
    user = get_user_by_email(session, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Failed login for %s", email)
        raise AuthenticationError()
    return user


def me(session: Session, actor: Actor) -> dict:
    user = session.get(User, actor.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return public_profile(session, user)
