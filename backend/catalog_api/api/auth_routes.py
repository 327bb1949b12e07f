# backend/catalog_api/api/auth_routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session

from catalog_api.api.deps_auth import CurrentUser, get_current_user, get_db
from catalog_api.api.schemas import ORMModel
from catalog_api.core.security import create_access_token, verify_password
from catalog_api.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter()


class LoginIn(BaseModel):
    username: str
    password: str


class UserOut(ORMModel):
    id: int
    username: str
    name: str
    role: str


class LoginOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


def _authenticate(db: Session, username: str, password: str) -> LoginOut:
    username = (username or "").strip()
    user = db.scalars(select(User).where(User.username == username)).first()
    if not user or not verify_password(password or "", user.password_hash):
        logger.warning("login_failed", extra={"username": username})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password")

    token = create_access_token({"sub": str(user.id), "role": user.role})
    return LoginOut(access_token=token, user=UserOut.model_validate(user))


# JSON login for API clients
@router.post("/login", response_model=LoginOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    return _authenticate(db, payload.username, payload.password)


# OAuth2 form endpoint (Swagger Authorize uses this)
@router.post("/token", response_model=LoginOut)
def token(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    return _authenticate(db, form_data.username, form_data.password)


@router.get("/me", response_model=CurrentUser)
def me(current_user: CurrentUser = Depends(get_current_user)):
    return current_user
