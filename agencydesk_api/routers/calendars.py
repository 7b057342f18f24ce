from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from agencydesk_core.policy import Action
from agencydesk_core.scheduling import ScopeProgress

from ..context import ActorContext, get_actor_context, member_brand_ids, require, require_brand_access
from ..db import get_db
from ..models import Brand, Calendar, CalendarScope, Task
from ..schemas import (
    CalendarCreateRequest,
    CalendarDetailResponse,
    CalendarResponse,
    CalendarUpdateRequest,
    GenerateTasksRequest,
    GenerateTasksResponse,
    MessageResponse,
    ScopeResponse,
    ScopeUpdateRequest,
    ScopeUpsertRequest,
    TaskResponse,
)
from ..services.audit import write_activity_log
from ..services.calendars import (
    calendar_progress,
    delete_calendar,
    ensure_calendar,
    generate_tasks,
    get_calendar_or_404,
    list_scopes,
    upsert_scope,
)

router = APIRouter(prefix="/calendars", tags=["calendars"])


def _task_count(db: Session, calendar_id: uuid.UUID) -> int:
    return int(db.scalar(select(func.count(Task.id)).where(Task.calendar_id == calendar_id)) or 0)


def _serialize_calendar(db: Session, calendar: Calendar) -> CalendarResponse:
    return CalendarResponse.from_model(
        calendar, scopes=list_scopes(db, calendar.id), task_count=_task_count(db, calendar.id)
    )


def _writable_calendar(db: Session, context: ActorContext, calendar_id: uuid.UUID) -> Calendar:
    require(context, Action.CALENDAR_WRITE)
    calendar = get_calendar_or_404(db, calendar_id)
    require_brand_access(db, context, calendar.brand_id)
    return calendar


def _writable_scope(db: Session, context: ActorContext, scope_id: uuid.UUID) -> CalendarScope:
    require(context, Action.CALENDAR_WRITE)
    scope = db.get(CalendarScope, scope_id)
    if scope is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="scope not found")
    calendar = get_calendar_or_404(db, scope.calendar_id)
    require_brand_access(db, context, calendar.brand_id)
    return scope


@router.get("", response_model=list[CalendarResponse])
def list_calendars(
    brand_id: uuid.UUID | None = Query(default=None),
    year: int | None = Query(default=None),
    month: int | None = Query(default=None, ge=1, le=12),
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> list[CalendarResponse]:
    require(context, Action.CALENDAR_READ)
    stmt = select(Calendar).order_by(desc(Calendar.year), desc(Calendar.month))
    if brand_id is not None:
        stmt = stmt.where(Calendar.brand_id == brand_id)
    if year is not None:
        stmt = stmt.where(Calendar.year == year)
    if month is not None:
        stmt = stmt.where(Calendar.month == month)
    if not context.unrestricted:
        stmt = stmt.where(Calendar.brand_id.in_(member_brand_ids(context.user_id)))
    return [_serialize_calendar(db, row) for row in db.scalars(stmt).all()]


@router.get("/{calendar_id}", response_model=CalendarDetailResponse)
def get_calendar(
    calendar_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> CalendarDetailResponse:
    require(context, Action.CALENDAR_READ)
    calendar = get_calendar_or_404(db, calendar_id)
    require_brand_access(db, context, calendar.brand_id)
    tasks = db.scalars(
        select(Task).where(Task.calendar_id == calendar.id).order_by(Task.posting_date, Task.title)
    ).all()
    return CalendarDetailResponse(
        **_serialize_calendar(db, calendar).model_dump(),
        tasks=[TaskResponse.from_model(task) for task in tasks],
        progress=calendar_progress(db, calendar.id),
    )


@router.get("/{calendar_id}/progress", response_model=list[ScopeProgress])
def get_calendar_progress(
    calendar_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> list[ScopeProgress]:
    require(context, Action.CALENDAR_READ)
    calendar = get_calendar_or_404(db, calendar_id)
    require_brand_access(db, context, calendar.brand_id)
    return calendar_progress(db, calendar.id)


@router.post("", response_model=CalendarResponse, status_code=status.HTTP_201_CREATED)
def create_calendar(
    payload: CalendarCreateRequest,
    response: Response,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> CalendarResponse:
    require(context, Action.CALENDAR_WRITE)
    if db.get(Brand, payload.brand_id) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="brand does not exist")
    require_brand_access(db, context, payload.brand_id)

    calendar, created = ensure_calendar(
        db, context, brand_id=payload.brand_id, month=payload.month, year=payload.year
    )
    if not created:
        response.status_code = status.HTTP_200_OK
    db.commit()
    db.refresh(calendar)
    return _serialize_calendar(db, calendar)


@router.put("/{calendar_id}", response_model=CalendarResponse)
def update_calendar(
    calendar_id: uuid.UUID,
    payload: CalendarUpdateRequest,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> CalendarResponse:
    calendar = _writable_calendar(db, context, calendar_id)
    calendar.status = payload.status
    db.flush()
    write_activity_log(
        db=db,
        context=context,
        action="calendar.updated",
        entity="calendar",
        entity_id=calendar.id,
        metadata_json={"status": payload.status},
    )
    db.commit()
    db.refresh(calendar)
    return _serialize_calendar(db, calendar)


@router.delete("/{calendar_id}", response_model=MessageResponse)
def remove_calendar(
    calendar_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> MessageResponse:
    require(context, Action.CALENDAR_DELETE)
    calendar = get_calendar_or_404(db, calendar_id)
    removed_tasks = delete_calendar(db, calendar)
    write_activity_log(
        db=db,
        context=context,
        action="calendar.deleted",
        entity="calendar",
        entity_id=calendar_id,
        metadata_json={"tasks_removed": removed_tasks},
    )
    db.commit()
    return MessageResponse(message="Calendar deleted successfully")


@router.post("/{calendar_id}/scopes", response_model=ScopeResponse, status_code=status.HTTP_201_CREATED)
def add_scope(
    calendar_id: uuid.UUID,
    payload: ScopeUpsertRequest,
    response: Response,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> ScopeResponse:
    calendar = _writable_calendar(db, context, calendar_id)
    scope, created = upsert_scope(db, context, calendar, content_type=payload.content_type, quantity=payload.quantity)
    if not created:
        response.status_code = status.HTTP_200_OK
    db.commit()
    db.refresh(scope)
    return ScopeResponse.from_model(scope)


@router.put("/scopes/{scope_id}", response_model=ScopeResponse)
def update_scope(
    scope_id: uuid.UUID,
    payload: ScopeUpdateRequest,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> ScopeResponse:
    scope = _writable_scope(db, context, scope_id)
    if payload.quantity is not None:
        scope.quantity = payload.quantity
    if payload.completed is not None:
        scope.completed = payload.completed
    db.flush()
    write_activity_log(
        db=db,
        context=context,
        action="calendar_scope.updated",
        entity="calendar_scope",
        entity_id=scope.id,
        metadata_json={"changes": payload.model_dump(exclude_none=True)},
    )
    db.commit()
    db.refresh(scope)
    return ScopeResponse.from_model(scope)


@router.delete("/scopes/{scope_id}", response_model=MessageResponse)
def delete_scope(
    scope_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> MessageResponse:
    scope = _writable_scope(db, context, scope_id)
    metadata = {"calendar_id": str(scope.calendar_id), "content_type": scope.content_type.value}
    db.delete(scope)
    db.flush()
    write_activity_log(
        db=db,
        context=context,
        action="calendar_scope.deleted",
        entity="calendar_scope",
        entity_id=scope_id,
        metadata_json=metadata,
    )
    db.commit()
    return MessageResponse(message="Scope deleted successfully")


@router.post(
    "/{calendar_id}/generate-tasks", response_model=GenerateTasksResponse, status_code=status.HTTP_201_CREATED
)
def generate_calendar_tasks(
    calendar_id: uuid.UUID,
    payload: GenerateTasksRequest,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> GenerateTasksResponse:
    calendar = _writable_calendar(db, context, calendar_id)
    tasks = generate_tasks(db, context, calendar, payload.scopes)
    db.commit()
    return GenerateTasksResponse(
        message=f"Generated {len(tasks)} tasks",
        count=len(tasks),
        tasks=[TaskResponse.from_model(task) for task in tasks],
    )
