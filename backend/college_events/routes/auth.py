"""
Account registration and login.

Students authenticate against a bcrypt hash kept on their user document;
every other role authenticates through the external identity provider.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from college_events.config import Settings, get_settings
from college_events.db import DbClient, UserRecord
from college_events.dependencies import get_db_client, get_identity_provider
from college_events.identity import (
    INVALID_CREDENTIALS_MESSAGE,
    IdentityError,
    IdentityNotConfiguredError,
    IdentityProvider,
)
from college_events.schemas import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    UserResponse,
)
from college_events.security import (
    Role,
    create_access_token,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _register_student(payload: RegisterRequest, db: DbClient) -> UserRecord:
    if not payload.register_number:
        raise HTTPException(
            status_code=400, detail="Register Number is required for Students"
        )
    if db.find_user_by_register_number(payload.register_number):
        raise HTTPException(status_code=400, detail="Register Number already registered")

    user = UserRecord(
        user_id="",
        name=payload.name,
        role=Role.STUDENT.value,
        email=payload.email or None,
        register_number=payload.register_number,
        password_hash=hash_password(payload.password),
    )
    return db.create_user(user)


def _register_staff(
    payload: RegisterRequest, db: DbClient, identity: IdentityProvider
) -> UserRecord:
    if not payload.email:
        raise HTTPException(status_code=400, detail="Email is required")
    try:
        uid = identity.create_user(payload.email, payload.password, payload.name)
    except IdentityError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    user = UserRecord(
        user_id=uid, name=payload.name, role=payload.role, email=payload.email
    )
    return db.create_user(user)


def _issue(message: str, user: UserRecord, settings: Settings) -> AuthResponse:
    token = create_access_token(user.user_id, user.email, user.role, settings)
    return AuthResponse(
        message=message,
        token=token,
        user=UserResponse(
            id=user.user_id,
            name=user.name,
            email=user.email,
            role=user.role,
            register_number=user.register_number,
        ),
    )


@router.post("/register", response_model=AuthResponse)
def register(
    payload: RegisterRequest,
    db: DbClient = Depends(get_db_client),
    identity: IdentityProvider = Depends(get_identity_provider),
    settings: Settings = Depends(get_settings),
):
    if not payload.name or not payload.password or not payload.role:
        raise HTTPException(status_code=400, detail="Missing required fields")
    if payload.role not in Role.__members__:
        raise HTTPException(status_code=400, detail="Invalid role")

    if payload.role == Role.STUDENT.value:
        user = _register_student(payload, db)
    else:
        user = _register_staff(payload, db, identity)

    logger.info("Registered %s account %s", user.role, user.user_id)
    return _issue("User registered successfully", user, settings)


def _login_student(register_number: str, password: str, db: DbClient) -> UserRecord:
    user = db.find_user_by_register_number(register_number)
    if not user or not verify_password(password, user.password_hash):
        raise HTTPException(status_code=401, detail=INVALID_CREDENTIALS_MESSAGE)
    return user


def _login_staff(
    email: str, password: str, db: DbClient, identity: IdentityProvider
) -> UserRecord:
    try:
        uid = identity.sign_in(email, password)
    except IdentityNotConfiguredError as exc:
        logger.error("Staff login unavailable: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except IdentityError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    user = db.get_user(uid)
    if not user:
        raise HTTPException(status_code=404, detail="User data not found")
    user.name = user.name or "User"
    user.email = user.email or email
    user.role = user.role or Role.STAFF.value
    return user


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    db: DbClient = Depends(get_db_client),
    identity: IdentityProvider = Depends(get_identity_provider),
    settings: Settings = Depends(get_settings),
):
    if not payload.password or (not payload.email and not payload.register_number):
        raise HTTPException(status_code=400, detail="Missing fields")

    if payload.register_number:
        user = _login_student(payload.register_number, payload.password, db)
    else:
        user = _login_staff(payload.email, payload.password, db, identity)

    if payload.role and user.role != payload.role:
        raise HTTPException(status_code=401, detail=INVALID_CREDENTIALS_MESSAGE)

    return _issue("Login successful", user, settings)
