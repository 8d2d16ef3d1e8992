# services/api/core/auth.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from core.errors import AuthenticationError
from settings import get_settings


@dataclass(frozen=True)
class Owner:
    """The authenticated operator; every read and write is scoped to `id`."""
    id: str
    email: Optional[str] = None


def create_access_token(owner_id: str, email: Optional[str] = None, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    settings = get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    to_encode = {
        "sub": owner_id,
        "email": email,
        "type": "access",
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_owner(token: str) -> Owner:
    """Decode a bearer token into an Owner, or raise AuthenticationError."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise AuthenticationError("Could not validate credentials")

    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type")

    owner_id = payload.get("sub")
    if not owner_id:
        raise AuthenticationError("Invalid token payload")

    return Owner(id=str(owner_id), email=payload.get("email"))
