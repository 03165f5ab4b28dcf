"""
Session tokens, password hashing and the auth dependencies used by the routes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Callable, Optional

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from college_events.config import Settings, get_settings
from college_events.scheduling import utc_now

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 10
# bcrypt only looks at the first 72 bytes of a password.
BCRYPT_MAX_BYTES = 72

bearer_scheme = HTTPBearer(auto_error=False)


class Role(str, Enum):
    STUDENT = "STUDENT"
    STAFF = "STAFF"
    ORGANIZER = "ORGANIZER"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class AuthUser:
    """Identity carried by a session token."""

    user_id: str
    email: Optional[str]
    role: str


def hash_password(password: str) -> str:
    hashed = bcrypt.hashpw(
        password.encode("utf-8")[:BCRYPT_MAX_BYTES], bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    )
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(
            password.encode("utf-8")[:BCRYPT_MAX_BYTES], password_hash.encode("utf-8")
        )
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


def create_access_token(
    user_id: str, email: Optional[str], role: str, settings: Settings
) -> str:
    issued_at = utc_now()
    claims = {
        "userId": user_id,
        "email": email,
        "role": role,
        "iat": issued_at,
        "exp": issued_at + timedelta(hours=settings.jwt_expires_hours),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> Optional[AuthUser]:
    """Return the token's user, or None when it is malformed, forged or expired."""
    try:
        claims = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except JWTError as exc:
        logger.info("Rejected session token: %s", exc)
        return None
    user_id = claims.get("userId")
    role = claims.get("role")
    if not user_id or not role:
        return None
    return AuthUser(user_id=user_id, email=claims.get("email"), role=role)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> Optional[AuthUser]:
    if credentials is None:
        return None
    return decode_access_token(credentials.credentials, settings)


def get_current_user(
    user: Optional[AuthUser] = Depends(get_optional_user),
) -> AuthUser:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user


def require_roles(
    *roles: Role, detail: str = "Unauthorized"
) -> Callable[..., AuthUser]:
    """Build a dependency that admits only the given roles (401 without a token, 403 otherwise)."""
    allowed = {role.value for role in roles}

    def dependency(user: AuthUser = Depends(get_current_user)) -> AuthUser:
        if user.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return user

    return dependency
