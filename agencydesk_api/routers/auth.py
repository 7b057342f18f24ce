from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..context import ActorContext, get_actor_context
from ..db import get_db
from ..models import Role, User
from ..schemas import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ProfileUpdateRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
)
from ..services.audit import write_activity_log, write_system_activity_log
from ..services.security import create_access_token, generate_reset_token, hash_password, verify_password
from ..settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

RESET_REQUESTED_MESSAGE = "If the email exists, a reset link will be sent"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(User.email == email.lower()))


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> LoginResponse:
    user = find_user_by_email(db, payload.email)
    if user is None or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="account is inactive")

    token = create_access_token(user.id, user.role.value)
    write_system_activity_log(db=db, action="user.login", entity="user", entity_id=user.id, actor_user_id=user.id)
    db.commit()
    db.refresh(user)
    return LoginResponse(token=token, user=UserResponse.from_model(user))


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> UserResponse:
    if find_user_by_email(db, payload.email) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="user already exists")

    user = User(
        email=payload.email.lower(),
        password_hash=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=Role.CLIENT_VIEWER,
        is_active=True,
    )
    db.add(user)
    db.flush()
    write_system_activity_log(db=db, action="user.registered", entity="user", entity_id=user.id, actor_user_id=user.id)
    db.commit()
    db.refresh(user)
    return UserResponse.from_model(user)


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(payload: ForgotPasswordRequest, db: Session = Depends(get_db)) -> MessageResponse:
    user = find_user_by_email(db, payload.email)
    if user is None:
        return MessageResponse(message=RESET_REQUESTED_MESSAGE)

    user.reset_token = generate_reset_token()
    user.reset_token_expires_at = _utcnow() + timedelta(minutes=settings.password_reset_ttl_minutes)
    db.flush()
    write_system_activity_log(
        db=db, action="user.password_reset_requested", entity="user", entity_id=user.id, actor_user_id=user.id
    )
    db.commit()
    logger.info("password reset token issued for user %s", user.id)
    if settings.app_env == "development":
        logger.debug("password reset token for %s: %s", user.id, user.reset_token)
    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(payload: ResetPasswordRequest, db: Session = Depends(get_db)) -> MessageResponse:
    user = db.scalar(select(User).where(User.reset_token == payload.token))
    if user is None or user.reset_token_expires_at is None or _as_utc(user.reset_token_expires_at) <= _utcnow():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid or expired token")

    user.password_hash = hash_password(payload.password)
    user.reset_token = None
    user.reset_token_expires_at = None
    db.flush()
    write_system_activity_log(
        db=db, action="user.password_reset", entity="user", entity_id=user.id, actor_user_id=user.id
    )
    db.commit()
    return MessageResponse(message="Password reset successfully")


@router.get("/me", response_model=UserResponse)
def me(
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> UserResponse:
    user = db.get(User, context.user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="user not found")
    return UserResponse.from_model(user)


@router.put("/profile", response_model=UserResponse)
def update_profile(
    payload: ProfileUpdateRequest,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> UserResponse:
    user = db.get(User, context.user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="user not found")
    email = payload.email.lower()
    if email != user.email:
        if find_user_by_email(db, email) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="email already in use")

    user.first_name = payload.first_name
    user.last_name = payload.last_name
    user.email = email
    db.flush()
    write_activity_log(
        db=db,
        context=context,
        action="user.profile_updated",
        entity="user",
        entity_id=user.id,
        metadata_json={"first_name": payload.first_name, "last_name": payload.last_name, "email": email},
    )
    db.commit()
    db.refresh(user)
    return UserResponse.from_model(user)


@router.put("/change-password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> MessageResponse:
    user = db.get(User, context.user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="user not found")
    if not verify_password(payload.current_password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="current password is incorrect")

    user.password_hash = hash_password(payload.new_password)
    db.flush()
    write_activity_log(db=db, context=context, action="user.password_changed", entity="user", entity_id=user.id)
    db.commit()
    return MessageResponse(message="Password changed successfully")
