# slotbook/deps.py

from fastapi import Depends

from slotbook.auth import get_current_user
from slotbook.errors import PermissionDeniedError
from slotbook.schemas import Actor, UserRole


def require_role(user: dict, role: str):
    if user["role"] != role:
        raise PermissionDeniedError(f"Only a {role} can do this")


def get_actor(current_user: dict = Depends(get_current_user)) -> Actor:
    return Actor(user_id=current_user["id"], role=UserRole(current_user["role"]))
