from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import delete, desc, select
from sqlalchemy.orm import Session

from agencydesk_core.policy import Action, authorize_user_delete, authorize_user_update

from ..context import ActorContext, get_actor_context, require
from ..db import get_db
from ..models import BrandUser, Notification, Role, User
from ..schemas import MessageResponse, UserCreateRequest, UserResponse, UserUpdateRequest
from ..services.audit import write_activity_log
from ..services.security import hash_password

router = APIRouter(prefix="/users", tags=["users"])


def _get_user_or_404(db: Session, user_id: uuid.UUID) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="user not found")
    return user


@router.get("", response_model=list[UserResponse])
def list_users(
    role: Role | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> list[UserResponse]:
    require(context, Action.USER_LIST)
    stmt = select(User).order_by(desc(User.created_at))
    if role is not None:
        stmt = stmt.where(User.role == role)
    if is_active is not None:
        stmt = stmt.where(User.is_active.is_(is_active))
    return [UserResponse.from_model(row) for row in db.scalars(stmt).all()]


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> UserResponse:
    if user_id != context.user_id:
        require(context, Action.USER_LIST)
    return UserResponse.from_model(_get_user_or_404(db, user_id))


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreateRequest,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> UserResponse:
    require(context, Action.USER_CREATE)
    email = payload.email.lower()
    if db.scalar(select(User.id).where(User.email == email)) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="user already exists")

    user = User(
        email=email,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=payload.role,
        is_active=True,
    )
    db.add(user)
    db.flush()
    write_activity_log(
        db=db,
        context=context,
        action="user.created",
        entity="user",
        entity_id=user.id,
        metadata_json={"email": email, "role": payload.role.value},
    )
    db.commit()
    db.refresh(user)
    return UserResponse.from_model(user)


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: uuid.UUID,
    payload: UserUpdateRequest,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> UserResponse:
    decision = authorize_user_update(
        actor_id=str(context.user_id),
        actor_role=context.role,
        target_id=str(user_id),
        changes_role=payload.role is not None,
    )
    if not decision.allowed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=decision.reason)
    user = _get_user_or_404(db, user_id)

    changes = payload.model_dump(exclude_none=True, mode="json")
    if payload.first_name is not None:
        user.first_name = payload.first_name
    if payload.last_name is not None:
        user.last_name = payload.last_name
    if payload.role is not None:
        user.role = payload.role
    if payload.is_active is not None:
        user.is_active = payload.is_active
    db.flush()

    write_activity_log(
        db=db,
        context=context,
        action="user.updated",
        entity="user",
        entity_id=user.id,
        metadata_json={"changes": changes},
    )
    db.commit()
    db.refresh(user)
    return UserResponse.from_model(user)


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> MessageResponse:
    decision = authorize_user_delete(actor_id=str(context.user_id), actor_role=context.role, target_id=str(user_id))
    if not decision.allowed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=decision.reason)
    user = _get_user_or_404(db, user_id)

    db.execute(delete(Notification).where(Notification.user_id == user.id))
    db.execute(delete(BrandUser).where(BrandUser.user_id == user.id))
    email = user.email
    db.delete(user)
    # Tasks and comments still referencing the user fail here and map to 409.
    db.flush()

    write_activity_log(
        db=db,
        context=context,
        action="user.deleted",
        entity="user",
        entity_id=user_id,
        metadata_json={"email": email},
    )
    db.commit()
    return MessageResponse(message="User deleted successfully")
