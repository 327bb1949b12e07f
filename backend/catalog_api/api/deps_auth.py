# backend/catalog_api/api/deps_auth.py

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel
from sqlalchemy.orm import Session

from catalog_api.core.database import SessionLocal
from catalog_api.core.security import decode_token
from catalog_api.models.user import ROLE_MANAGER, User as UserModel

# Swagger "Authorize" posts the form here; normal clients just send
# Authorization: Bearer <token>
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token")


class CurrentUser(BaseModel):
    id: int
    username: str
    name: str
    role: str  # "manager" | "viewer"


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> CurrentUser:
    cred_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_token(token)
    except ValueError:
        raise cred_exc

    # sub is the user id
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise cred_exc

    user = db.get(UserModel, user_id)
    if not user:
        raise cred_exc

    return CurrentUser(
        id=user.id,
        username=user.username,
        name=user.name,
        role=user.role,
    )


def require_manager(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role != ROLE_MANAGER:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Manager role required")
    return user
