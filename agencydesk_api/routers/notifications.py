from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..context import ActorContext, get_actor_context
from ..db import get_db
from ..schemas import MarkAllReadResponse, NotificationResponse
from ..services.audit import write_activity_log
from ..services.notifications import list_notifications, mark_all_as_read, mark_as_read

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
def get_notifications(
    is_read: bool | None = Query(default=None),
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> list[NotificationResponse]:
    return [NotificationResponse.from_model(row) for row in list_notifications(db, context, is_read=is_read)]


@router.put("/read-all", response_model=MarkAllReadResponse)
def read_all_notifications(
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> MarkAllReadResponse:
    updated = mark_all_as_read(db, context)
    write_activity_log(
        db=db,
        context=context,
        action="notification.read_all",
        entity="notification",
        entity_id=context.user_id,
        metadata_json={"updated": updated},
    )
    db.commit()
    return MarkAllReadResponse(message="All notifications marked as read", updated=updated)


@router.put("/{notification_id}/read", response_model=NotificationResponse)
def read_notification(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> NotificationResponse:
    notification = mark_as_read(db, context, notification_id)
    write_activity_log(
        db=db,
        context=context,
        action="notification.read",
        entity="notification",
        entity_id=notification.id,
    )
    db.commit()
    db.refresh(notification)
    return NotificationResponse.from_model(notification)
