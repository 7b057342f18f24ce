from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from agencydesk_core.policy import Action

from ..context import ActorContext, get_actor_context, require
from ..db import get_db
from ..models import ActivityLog
from ..schemas import ActivityLogResponse

router = APIRouter(prefix="/activity", tags=["activity"])

DEFAULT_LIMIT = 100
MAX_LIMIT = 500


@router.get("", response_model=list[ActivityLogResponse])
def list_activity(
    entity: str | None = Query(default=None),
    user_id: uuid.UUID | None = Query(default=None),
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> list[ActivityLogResponse]:
    require(context, Action.ACTIVITY_READ)
    stmt = select(ActivityLog)
    if entity is not None:
        stmt = stmt.where(ActivityLog.entity == entity)
    if user_id is not None:
        stmt = stmt.where(ActivityLog.actor_user_id == user_id)
    stmt = stmt.order_by(desc(ActivityLog.created_at)).limit(limit)
    return [ActivityLogResponse.from_model(row) for row in db.scalars(stmt).all()]


@router.get("/{activity_id}", response_model=ActivityLogResponse)
def get_activity(
    activity_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> ActivityLogResponse:
    require(context, Action.ACTIVITY_READ)
    row = db.get(ActivityLog, activity_id)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="activity not found")
    return ActivityLogResponse.from_model(row)
