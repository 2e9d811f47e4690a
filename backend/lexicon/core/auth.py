from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict

import bcrypt
import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config import settings
from .errors import AuthError, TokenExpired, TokenInvalid, TokenMissing

JWT_ALGORITHM = "HS256"
SALT_ROUNDS = 12

_bearer = HTTPBearer(auto_error=False)


def hash_password(password: str, rounds: int = SALT_ROUNDS) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed hash in the environment
        return False


def generate_token(payload: Dict[str, Any], expires_in: timedelta | None = None) -> tuple[str, datetime]:
    """Sign a JWT for the admin user. Returns (token, expires_at)."""
    expires_at = datetime.utcnow() + (expires_in or timedelta(hours=settings.jwt_expiration_hours))
    claims = dict(payload)
    claims["exp"] = expires_at
    token = jwt.encode(claims, settings.jwt_secret, algorithm=JWT_ALGORITHM)
    return token, expires_at


def verify_token(token: str | None) -> Dict[str, Any]:
    if not token:
        raise TokenMissing()
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise TokenExpired() from exc
    except jwt.InvalidTokenError as exc:
        raise TokenInvalid() from exc


# FastAPI dependency
def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> Dict[str, Any]:
    token = credentials.credentials if credentials else None
    try:
        claims = verify_token(token)
    except AuthError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return {"user_id": claims.get("user_id"), "username": claims.get("username")}
