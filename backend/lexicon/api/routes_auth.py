import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from ..config import settings
from ..core.auth import generate_token, require_admin, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


# ---------- Schemas ----------

class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    token: str
    expires_at: datetime


class AdminUser(BaseModel):
    user_id: Optional[str] = None
    username: Optional[str] = None


# ---------- Endpoints ----------

@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest):
    if not payload.username or not payload.password:
        raise HTTPException(status_code=400, detail="Username and password are required")

    if not settings.admin_username or not settings.admin_password_hash:
        logger.error("Missing ADMIN_USERNAME or ADMIN_PASSWORD_HASH in environment")
        raise HTTPException(status_code=500, detail="Server authentication is not configured")

    if payload.username != settings.admin_username or not verify_password(
        payload.password, settings.admin_password_hash
    ):
        logger.warning("Failed login attempt for %r", payload.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )

    token, expires_at = generate_token({"user_id": "admin", "username": settings.admin_username})
    return LoginResponse(token=token, expires_at=expires_at)


@router.get("/me", response_model=AdminUser)
def me(user: dict = Depends(require_admin)):
    return user
