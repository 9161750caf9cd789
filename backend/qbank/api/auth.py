"""Auth API — register, login, logout, profile endpoints and role dependencies."""
from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
from jose import JWTError, jwt

from qbank.core import config
from qbank.api.errors import unwrap
from qbank.application.user_app_service import UserAppService
from qbank.container import get_user_app_service
from qbank.domain.user.models import ROLE_ADMIN, ROLE_STUDENT, User

router = APIRouter(prefix="/api/auth", tags=["auth"])

_bearer = HTTPBearer(auto_error=False)


# ------------------------------------------------------------------
# Pydantic schemas
# ------------------------------------------------------------------
class RegisterRequest(BaseModel):
    username: str
    password: str
    display_name: Optional[str] = None
    email: Optional[str] = None


class LoginRequest(BaseModel):
    username: str
    password: str


class ProfileUpdateRequest(BaseModel):
    display_name: Optional[str] = None
    email: Optional[str] = None


def serialize_user(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "role": user.role,
        "admin_role": user.admin_role,
        "display_name": user.display_name,
        "email": user.email,
        "status": user.status,
        "created_at": user.created_at,
    }


# ------------------------------------------------------------------
# JWT helpers
# ------------------------------------------------------------------
def create_token(user: User) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": user.id,
        "username": user.username,
        "role": user.role,
        "admin_role": user.admin_role,
        "exp": expire,
    }
    return jwt.encode(payload, config.SECRET_KEY, algorithm=config.ALGORITHM)


def _decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}")


# ------------------------------------------------------------------
# Dependency: current user from Bearer token, reloaded on every request
# ------------------------------------------------------------------
def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    users: UserAppService = Depends(get_user_app_service),
) -> User:
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    claims = _decode_token(credentials.credentials)
    user = users.get_user(claims.get("sub", ""))
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User no longer exists")
    if user.is_suspended:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is suspended")
    return user


def require_superadmin(user: User = Depends(get_current_user)) -> User:
    if not user.is_superadmin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Superadmin access required")
    return user


def require_admin_role(*admin_roles: str) -> Callable[..., User]:
    """Dependency factory: the user must hold one of ``admin_roles``. Superadmins always pass."""
    def _check(user: User = Depends(get_current_user)) -> User:
        if user.is_superadmin:
            return user
        if user.role != ROLE_ADMIN or user.admin_role not in admin_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires one of the roles: {', '.join(sorted(admin_roles))}",
            )
        return user
    return _check


def require_student(user: User = Depends(get_current_user)) -> User:
    if user.role != ROLE_STUDENT and not user.is_superadmin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Student access required")
    return user


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------
@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(body: RegisterRequest, users: UserAppService = Depends(get_user_app_service)):
    user = unwrap(users.register_student(body.model_dump()))
    return {"token": create_token(user), "user": serialize_user(user)}


@router.post("/login")
def login(body: LoginRequest, users: UserAppService = Depends(get_user_app_service)):
    user = users.authenticate(body.username, body.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if user.is_suspended:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is suspended")
    return {"token": create_token(user), "user": serialize_user(user)}


@router.post("/logout")
def logout(current_user: User = Depends(get_current_user)):
    # Stateless JWT — just acknowledge. Client discards token.
    return {"detail": "Logged out successfully"}


@router.get("/profile")
def get_profile(current_user: User = Depends(get_current_user)):
    return serialize_user(current_user)


@router.put("/profile")
def update_profile(
    body: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    users: UserAppService = Depends(get_user_app_service),
):
    user = unwrap(users.update_profile(current_user.id, body.display_name, body.email))
    return serialize_user(user)
