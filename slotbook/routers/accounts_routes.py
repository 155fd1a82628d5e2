# slotbook/routers/accounts_routes.py

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session

from slotbook import accounts
from slotbook.auth import create_access_token
from slotbook.db import get_session
from slotbook.deps import get_actor
from slotbook.schemas import Actor, Token, UserCreate, UserPublic

router = APIRouter(
    tags=["accounts"],
)


@router.post("/users", status_code=201, response_model=UserPublic)
def create_user(
    user: UserCreate,
    session: Session = Depends(get_session),
):
    return accounts.register(session, user)


@router.post("/auth/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
):
    user = accounts.authenticate(session, form_data.username, form_data.password)
    return {"access_token": create_access_token({"sub": user.email}), "token_type": "bearer"}


@router.get("/me", response_model=UserPublic)
def me(
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    return accounts.me(session, actor)
