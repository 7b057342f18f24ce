from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, desc, select
from sqlalchemy.orm import Session

from agencydesk_core.policy import Action

from ..context import ActorContext, get_actor_context, member_brand_ids, require, require_brand_access
from ..db import get_db
from ..models import Brand, BrandUser, Calendar, CalendarScope, Task, User
from ..schemas import (
    BrandCreateRequest,
    BrandDetailResponse,
    BrandMemberRequest,
    BrandResponse,
    BrandUpdateRequest,
    MessageResponse,
    UserSummary,
)
from ..services.audit import write_activity_log
from ..services.tasks import purge_tasks

router = APIRouter(prefix="/brands", tags=["brands"])


def get_brand_or_404(db: Session, brand_id: uuid.UUID) -> Brand:
    brand = db.get(Brand, brand_id)
    if brand is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="brand not found")
    return brand


def _serialize_brand_detail(db: Session, brand: Brand) -> BrandDetailResponse:
    members = db.scalars(
        select(User).join(BrandUser, BrandUser.user_id == User.id).where(BrandUser.brand_id == brand.id)
    ).all()
    return BrandDetailResponse(
        **BrandResponse.from_model(brand).model_dump(),
        members=[
            UserSummary(id=user.id, first_name=user.first_name, last_name=user.last_name, role=user.role)
            for user in members
        ],
    )


@router.get("", response_model=list[BrandResponse])
def list_brands(
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> list[BrandResponse]:
    require(context, Action.BRAND_READ)
    stmt = select(Brand).order_by(desc(Brand.created_at))
    if not context.unrestricted:
        stmt = stmt.where(Brand.id.in_(member_brand_ids(context.user_id)))
    return [BrandResponse.from_model(row) for row in db.scalars(stmt).all()]


@router.get("/{brand_id}", response_model=BrandDetailResponse)
def get_brand(
    brand_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> BrandDetailResponse:
    require(context, Action.BRAND_READ)
    brand = get_brand_or_404(db, brand_id)
    require_brand_access(db, context, brand.id)
    return _serialize_brand_detail(db, brand)


@router.post("", response_model=BrandResponse, status_code=status.HTTP_201_CREATED)
def create_brand(
    payload: BrandCreateRequest,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> BrandResponse:
    require(context, Action.BRAND_WRITE)
    brand = Brand(name=payload.name, description=payload.description, logo_url=payload.logo_url, is_active=True)
    db.add(brand)
    db.flush()
    write_activity_log(
        db=db,
        context=context,
        action="brand.created",
        entity="brand",
        entity_id=brand.id,
        metadata_json={"name": brand.name},
    )
    db.commit()
    db.refresh(brand)
    return BrandResponse.from_model(brand)


@router.put("/{brand_id}", response_model=BrandResponse)
def update_brand(
    brand_id: uuid.UUID,
    payload: BrandUpdateRequest,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> BrandResponse:
    require(context, Action.BRAND_WRITE)
    brand = get_brand_or_404(db, brand_id)
    changes = payload.model_dump(exclude_unset=True)
    for field_name, value in changes.items():
        if field_name in ("name", "is_active") and value is None:
            continue
        setattr(brand, field_name, value)
    db.flush()
    write_activity_log(
        db=db,
        context=context,
        action="brand.updated",
        entity="brand",
        entity_id=brand.id,
        metadata_json={"changes": changes},
    )
    db.commit()
    db.refresh(brand)
    return BrandResponse.from_model(brand)


@router.delete("/{brand_id}", response_model=MessageResponse)
def delete_brand(
    brand_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> MessageResponse:
    require(context, Action.BRAND_WRITE)
    brand = get_brand_or_404(db, brand_id)
    name = brand.name

    removed_tasks = purge_tasks(db, Task.brand_id == brand.id)
    calendar_ids = select(Calendar.id).where(Calendar.brand_id == brand.id)
    db.execute(delete(CalendarScope).where(CalendarScope.calendar_id.in_(calendar_ids)))
    db.execute(delete(Calendar).where(Calendar.brand_id == brand.id))
    db.execute(delete(BrandUser).where(BrandUser.brand_id == brand.id))
    db.delete(brand)
    db.flush()

    write_activity_log(
        db=db,
        context=context,
        action="brand.deleted",
        entity="brand",
        entity_id=brand_id,
        metadata_json={"name": name, "tasks_removed": removed_tasks},
    )
    db.commit()
    return MessageResponse(message="Brand deleted successfully")


@router.post("/{brand_id}/users", response_model=BrandDetailResponse, status_code=status.HTTP_201_CREATED)
def add_brand_member(
    brand_id: uuid.UUID,
    payload: BrandMemberRequest,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> BrandDetailResponse:
    require(context, Action.BRAND_MEMBERS)
    brand = get_brand_or_404(db, brand_id)
    if db.get(User, payload.user_id) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="user does not exist")
    existing = db.scalar(
        select(BrandUser).where(BrandUser.brand_id == brand.id, BrandUser.user_id == payload.user_id)
    )
    if existing is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="user is already a member of this brand")

    membership = BrandUser(brand_id=brand.id, user_id=payload.user_id)
    db.add(membership)
    db.flush()
    write_activity_log(
        db=db,
        context=context,
        action="brand.member_added",
        entity="brand_user",
        entity_id=membership.id,
        metadata_json={"brand_id": str(brand.id), "user_id": str(payload.user_id)},
    )
    db.commit()
    return _serialize_brand_detail(db, brand)


@router.delete("/{brand_id}/users/{user_id}", response_model=BrandDetailResponse)
def remove_brand_member(
    brand_id: uuid.UUID,
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> BrandDetailResponse:
    require(context, Action.BRAND_MEMBERS)
    brand = get_brand_or_404(db, brand_id)
    membership = db.scalar(select(BrandUser).where(BrandUser.brand_id == brand.id, BrandUser.user_id == user_id))
    if membership is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="membership not found")

    membership_id = membership.id
    db.delete(membership)
    db.flush()
    write_activity_log(
        db=db,
        context=context,
        action="brand.member_removed",
        entity="brand_user",
        entity_id=membership_id,
        metadata_json={"brand_id": str(brand.id), "user_id": str(user_id)},
    )
    db.commit()
    return _serialize_brand_detail(db, brand)
