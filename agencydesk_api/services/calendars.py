from __future__ import annotations

import uuid
from collections.abc import Sequence

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agencydesk_core.scheduling import (
    ContentType,
    PlannedTask,
    ScheduleOutOfRange,
    ScopeItem,
    ScopeProgress,
    plan_scope,
    summarize_progress,
)

from ..context import ActorContext
from ..models import Brand, Calendar, CalendarScope, Task, TaskPriority, TaskStatus
from .audit import write_activity_log
from .tasks import purge_tasks


def get_calendar_or_404(db: Session, calendar_id: uuid.UUID) -> Calendar:
    calendar = db.get(Calendar, calendar_id)
    if calendar is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="calendar not found")
    return calendar


def find_calendar(db: Session, brand_id: uuid.UUID, month: int, year: int) -> Calendar | None:
    return db.scalar(
        select(Calendar).where(Calendar.brand_id == brand_id, Calendar.month == month, Calendar.year == year)
    )


def ensure_calendar(
    db: Session, context: ActorContext, brand_id: uuid.UUID, month: int, year: int
) -> tuple[Calendar, bool]:
    """Return the calendar for (brand, month, year), creating it when absent.

    The boolean is True when a row was created. A concurrent insert of the same
    key trips the unique constraint and surfaces as 409 instead of a duplicate.
    """
    existing = find_calendar(db, brand_id=brand_id, month=month, year=year)
    if existing is not None:
        return existing, False

    calendar = Calendar(brand_id=brand_id, month=month, year=year, status="DRAFT", created_by_id=context.user_id)
    db.add(calendar)
    try:
        db.flush()
    except IntegrityError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="calendar already exists for this month"
        ) from exc

    write_activity_log(
        db=db,
        context=context,
        action="calendar.created",
        entity="calendar",
        entity_id=calendar.id,
        metadata_json={"brand_id": str(brand_id), "month": month, "year": year},
    )
    return calendar, True


def _upsert_scope_row(
    db: Session, calendar_id: uuid.UUID, content_type: ContentType, quantity: int
) -> tuple[CalendarScope, bool]:
    scope = db.scalar(
        select(CalendarScope).where(
            CalendarScope.calendar_id == calendar_id, CalendarScope.content_type == content_type
        )
    )
    created = scope is None
    if scope is None:
        scope = CalendarScope(calendar_id=calendar_id, content_type=content_type, quantity=quantity, completed=0)
        db.add(scope)
    else:
        scope.quantity = quantity
    db.flush()
    return scope, created


def upsert_scope(
    db: Session, context: ActorContext, calendar: Calendar, content_type: ContentType, quantity: int
) -> tuple[CalendarScope, bool]:
    scope, created = _upsert_scope_row(db, calendar.id, content_type, quantity)
    write_activity_log(
        db=db,
        context=context,
        action="calendar_scope.created" if created else "calendar_scope.updated",
        entity="calendar_scope",
        entity_id=scope.id,
        metadata_json={"calendar_id": str(calendar.id), "content_type": content_type.value, "quantity": quantity},
    )
    return scope, created


def generate_tasks(
    db: Session, context: ActorContext, calendar: Calendar, items: Sequence[ScopeItem]
) -> list[Task]:
    """Materialize dated tasks for every scope item.

    Additive: calling twice with the same items creates a second batch, because
    only the scope target is upserted, not which slots already exist. Every item
    is planned before anything is written, so a slot past the supported date
    range rejects the whole request.
    """
    brand = db.get(Brand, calendar.brand_id)
    brand_name = brand.name if brand is not None else ""

    plans: list[tuple[ScopeItem, list[PlannedTask]]] = []
    for index, item in enumerate(items):
        try:
            slots = plan_scope(item, year=calendar.year, month=calendar.month, brand_name=brand_name)
        except ScheduleOutOfRange as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=f"scopes.{index}: {exc}"
            ) from exc
        plans.append((item, slots))

    created: list[Task] = []
    for item, slots in plans:
        _upsert_scope_row(db, calendar.id, item.content_type, item.quantity)
        for planned in slots:
            task = Task(
                title=planned.title,
                description=planned.description,
                status=TaskStatus.TODO,
                priority=TaskPriority.MEDIUM,
                brand_id=calendar.brand_id,
                calendar_id=calendar.id,
                content_type=planned.content_type,
                posting_date=planned.posting_date,
                due_date=planned.due_date,
                created_by_id=context.user_id,
            )
            db.add(task)
            created.append(task)
        db.flush()

    write_activity_log(
        db=db,
        context=context,
        action="calendar.tasks_generated",
        entity="calendar_tasks",
        entity_id=calendar.id,
        metadata_json={
            "tasks_created": len(created),
            "scopes": [item.model_dump(mode="json") for item in items],
        },
    )
    return created


def list_scopes(db: Session, calendar_id: uuid.UUID) -> list[CalendarScope]:
    return list(
        db.scalars(
            select(CalendarScope)
            .where(CalendarScope.calendar_id == calendar_id)
            .order_by(CalendarScope.content_type)
        ).all()
    )


def calendar_progress(db: Session, calendar_id: uuid.UUID) -> list[ScopeProgress]:
    scopes = list_scopes(db, calendar_id)
    rows = db.execute(select(Task.content_type, Task.status).where(Task.calendar_id == calendar_id)).all()
    return summarize_progress(
        scopes=[(scope.content_type, scope.quantity) for scope in scopes],
        tasks=[(content_type, task_status == TaskStatus.COMPLETED) for content_type, task_status in rows],
    )


def delete_calendar(db: Session, calendar: Calendar) -> int:
    removed_tasks = purge_tasks(db, Task.calendar_id == calendar.id)
    for scope in list_scopes(db, calendar.id):
        db.delete(scope)
    db.delete(calendar)
    db.flush()
    return removed_tasks
