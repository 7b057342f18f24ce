from __future__ import annotations

import uuid
from collections.abc import Iterable
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import desc, select, update
from sqlalchemy.orm import Session

from agencydesk_core.events import LiveEvent, LiveEventType, fanout_recipients

from ..context import ActorContext
from ..models import Notification

INBOX_LIMIT = 50


def notify(
    db: Session,
    recipient_id: uuid.UUID,
    title: str,
    message: str,
    event: LiveEventType = LiveEventType.NOTIFICATION,
    data: dict[str, Any] | None = None,
) -> tuple[Notification, LiveEvent]:
    """Persist a notification row and build the matching live event.

    The caller publishes the returned event only after its transaction commits;
    the row is the durable record and the push is best-effort.
    """
    notification = Notification(user_id=recipient_id, title=title, message=message, is_read=False)
    db.add(notification)
    db.flush()
    payload = data if data is not None else {"id": str(notification.id), "title": title, "message": message}
    return notification, LiveEvent(recipient_id=recipient_id, event=event, data=payload)


def fan_out(
    db: Session,
    context: ActorContext,
    candidates: Iterable[uuid.UUID | None],
    title: str,
    message: str,
    event: LiveEventType = LiveEventType.NOTIFICATION,
    data: dict[str, Any] | None = None,
) -> list[LiveEvent]:
    events: list[LiveEvent] = []
    for recipient_id in fanout_recipients(context.user_id, candidates):
        _, live_event = notify(db, recipient_id, title=title, message=message, event=event, data=data)
        events.append(live_event)
    return events


def list_notifications(db: Session, context: ActorContext, is_read: bool | None = None) -> list[Notification]:
    stmt = select(Notification).where(Notification.user_id == context.user_id)
    if is_read is not None:
        stmt = stmt.where(Notification.is_read.is_(is_read))
    stmt = stmt.order_by(desc(Notification.created_at)).limit(INBOX_LIMIT)
    return list(db.scalars(stmt).all())


def mark_as_read(db: Session, context: ActorContext, notification_id: uuid.UUID) -> Notification:
    notification = db.scalar(
        select(Notification).where(Notification.id == notification_id, Notification.user_id == context.user_id)
    )
    if notification is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="notification not found")
    notification.is_read = True
    db.flush()
    return notification


def mark_all_as_read(db: Session, context: ActorContext) -> int:
    result = db.execute(
        update(Notification)
        .where(Notification.user_id == context.user_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    return int(result.rowcount or 0)
