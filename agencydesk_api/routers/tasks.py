from __future__ import annotations

import os
import uuid

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from agencydesk_core.events import LiveEvent, LiveEventType
from agencydesk_core.policy import Action

from ..context import ActorContext, get_actor_context, require, require_brand_access
from ..db import get_db
from ..models import Attachment, Brand, Calendar, Comment, ContentType, Task, TaskPriority, TaskStatus, User
from ..schemas import (
    AttachmentResponse,
    CommentCreateRequest,
    CommentResponse,
    MessageResponse,
    TaskCreateRequest,
    TaskDetailResponse,
    TaskResponse,
    TaskUpdateRequest,
)
from ..services.audit import write_activity_log
from ..services.live_channel import LiveChannel, get_live_channel, publish_live_events
from ..services.notifications import fan_out, notify
from ..services.storage import UnsupportedFileType, discard_file, store_file, validate_file
from ..services.tasks import apply_visibility, get_visible_task, purge_tasks
from ..settings import settings

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _require_user(db: Session, user_id: uuid.UUID) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="assigned user does not exist")
    return user


def _notify_assignee(db: Session, context: ActorContext, task: Task) -> list[LiveEvent]:
    if task.assigned_to_id is None or task.assigned_to_id == context.user_id:
        return []
    _, event = notify(
        db,
        task.assigned_to_id,
        title="New Task Assigned",
        message=f"You have been assigned to task: {task.title}",
    )
    return [event]


def _upload_size(upload: UploadFile) -> int:
    upload.file.seek(0, os.SEEK_END)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


@router.get("", response_model=list[TaskResponse])
def list_tasks(
    status_filter: TaskStatus | None = Query(default=None, alias="status"),
    priority: TaskPriority | None = Query(default=None),
    brand_id: uuid.UUID | None = Query(default=None),
    assigned_to_id: uuid.UUID | None = Query(default=None),
    calendar_id: uuid.UUID | None = Query(default=None),
    content_type: ContentType | None = Query(default=None),
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> list[TaskResponse]:
    require(context, Action.TASK_READ)
    stmt = select(Task).order_by(desc(Task.created_at))
    if status_filter is not None:
        stmt = stmt.where(Task.status == status_filter)
    if priority is not None:
        stmt = stmt.where(Task.priority == priority)
    if brand_id is not None:
        stmt = stmt.where(Task.brand_id == brand_id)
    if assigned_to_id is not None:
        stmt = stmt.where(Task.assigned_to_id == assigned_to_id)
    if calendar_id is not None:
        stmt = stmt.where(Task.calendar_id == calendar_id)
    if content_type is not None:
        stmt = stmt.where(Task.content_type == content_type)
    stmt = apply_visibility(stmt, context)
    return [TaskResponse.from_model(row) for row in db.scalars(stmt).all()]


@router.get("/{task_id}", response_model=TaskDetailResponse)
def get_task(
    task_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> TaskDetailResponse:
    require(context, Action.TASK_READ)
    task = get_visible_task(db, context, task_id)
    comments = db.scalars(select(Comment).where(Comment.task_id == task.id).order_by(Comment.created_at)).all()
    attachments = db.scalars(
        select(Attachment).where(Attachment.task_id == task.id).order_by(desc(Attachment.created_at))
    ).all()
    return TaskDetailResponse(
        **TaskResponse.from_model(task).model_dump(),
        comments=[CommentResponse.from_model(row) for row in comments],
        attachments=[AttachmentResponse.from_model(row) for row in attachments],
    )


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    payload: TaskCreateRequest,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
    channel: LiveChannel = Depends(get_live_channel),
) -> TaskResponse:
    require(context, Action.TASK_CREATE)
    if db.get(Brand, payload.brand_id) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="brand does not exist")
    require_brand_access(db, context, payload.brand_id)
    if payload.calendar_id is not None:
        calendar = db.get(Calendar, payload.calendar_id)
        if calendar is None or calendar.brand_id != payload.brand_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="calendar does not belong to brand")
    if payload.assigned_to_id is not None:
        _require_user(db, payload.assigned_to_id)

    task = Task(**payload.model_dump(), created_by_id=context.user_id)
    db.add(task)
    db.flush()

    write_activity_log(
        db=db,
        context=context,
        action="task.created",
        entity="task",
        entity_id=task.id,
        metadata_json={"title": task.title, "brand_id": str(task.brand_id)},
    )
    events = _notify_assignee(db, context, task)
    db.commit()
    db.refresh(task)
    publish_live_events(channel, events)
    return TaskResponse.from_model(task)


@router.put("/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: uuid.UUID,
    payload: TaskUpdateRequest,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
    channel: LiveChannel = Depends(get_live_channel),
) -> TaskResponse:
    require(context, Action.TASK_UPDATE)
    task = get_visible_task(db, context, task_id)

    # assigned_to_id may be cleared with an explicit null, the other fields only change when non-null
    changes = {
        field: getattr(payload, field)
        for field in payload.model_fields_set
        if field == "assigned_to_id" or getattr(payload, field) is not None
    }
    previous_assignee = task.assigned_to_id
    new_assignee = changes.get("assigned_to_id")
    if new_assignee is not None:
        _require_user(db, new_assignee)

    for field, value in changes.items():
        setattr(task, field, value)
    db.flush()

    write_activity_log(
        db=db,
        context=context,
        action="task.updated",
        entity="task",
        entity_id=task.id,
        metadata_json={"changes": payload.model_dump(mode="json", include=set(changes))},
    )
    events: list[LiveEvent] = []
    if "assigned_to_id" in changes and new_assignee != previous_assignee:
        events = _notify_assignee(db, context, task)
    db.commit()
    db.refresh(task)
    publish_live_events(channel, events)
    return TaskResponse.from_model(task)


@router.delete("/{task_id}", response_model=MessageResponse)
def delete_task(
    task_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> MessageResponse:
    require(context, Action.TASK_DELETE)
    task = get_visible_task(db, context, task_id)
    metadata = {"title": task.title, "brand_id": str(task.brand_id)}
    purge_tasks(db, Task.id == task.id)
    write_activity_log(
        db=db,
        context=context,
        action="task.deleted",
        entity="task",
        entity_id=task_id,
        metadata_json=metadata,
    )
    db.commit()
    return MessageResponse(message="Task deleted successfully")


@router.get("/{task_id}/comments", response_model=list[CommentResponse])
def list_comments(
    task_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> list[CommentResponse]:
    require(context, Action.TASK_READ)
    task = get_visible_task(db, context, task_id)
    rows = db.scalars(select(Comment).where(Comment.task_id == task.id).order_by(Comment.created_at)).all()
    return [CommentResponse.from_model(row) for row in rows]


@router.post("/{task_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
def create_comment(
    task_id: uuid.UUID,
    payload: CommentCreateRequest,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
    channel: LiveChannel = Depends(get_live_channel),
) -> CommentResponse:
    require(context, Action.COMMENT_CREATE)
    task = get_visible_task(db, context, task_id)

    comment = Comment(task_id=task.id, author_id=context.user_id, content=payload.content)
    db.add(comment)
    db.flush()
    db.refresh(comment)
    response = CommentResponse.from_model(comment)

    write_activity_log(
        db=db,
        context=context,
        action="comment.created",
        entity="comment",
        entity_id=comment.id,
        metadata_json={"task_id": str(task.id)},
    )
    events = fan_out(
        db,
        context,
        candidates=[task.assigned_to_id, task.created_by_id],
        title="New Comment",
        message=f"{context.first_name} commented on: {task.title}",
        event=LiveEventType.NEW_COMMENT,
        data={"task_id": str(task.id), "comment": response.model_dump(mode="json")},
    )
    db.commit()
    publish_live_events(channel, events)
    return response


@router.get("/{task_id}/attachments", response_model=list[AttachmentResponse])
def list_attachments(
    task_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> list[AttachmentResponse]:
    require(context, Action.TASK_READ)
    task = get_visible_task(db, context, task_id)
    rows = db.scalars(
        select(Attachment).where(Attachment.task_id == task.id).order_by(desc(Attachment.created_at))
    ).all()
    return [AttachmentResponse.from_model(row) for row in rows]


@router.post("/{task_id}/attachments", response_model=AttachmentResponse, status_code=status.HTTP_201_CREATED)
def upload_attachment(
    task_id: uuid.UUID,
    file: UploadFile = File(...),
    description: str | None = Form(default=None),
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
    channel: LiveChannel = Depends(get_live_channel),
) -> AttachmentResponse:
    require(context, Action.ATTACHMENT_CREATE)
    task = get_visible_task(db, context, task_id)

    file_name = file.filename or "upload"
    content_type = file.content_type or "application/octet-stream"
    try:
        validate_file(file_name, content_type)
    except UnsupportedFileType as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    size = _upload_size(file)
    if size > settings.max_upload_bytes:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="file too large")

    stored = store_file(file_name, content_type, file.file)
    try:
        attachment = Attachment(
            task_id=task.id,
            file_name=file_name,
            file_url=stored.url,
            file_type=content_type,
            file_size=size,
            description=description,
        )
        db.add(attachment)
        db.flush()
        db.refresh(attachment)
        response = AttachmentResponse.from_model(attachment)

        write_activity_log(
            db=db,
            context=context,
            action="attachment.uploaded",
            entity="attachment",
            entity_id=attachment.id,
            metadata_json={"task_id": str(task.id), "file_name": file_name, "file_size": size},
        )
        events = fan_out(
            db,
            context,
            candidates=[task.assigned_to_id, task.created_by_id],
            title="New Attachment",
            message=f"{context.first_name} added an attachment to: {task.title}",
            event=LiveEventType.NEW_ATTACHMENT,
            data={"task_id": str(task.id), "attachment": response.model_dump(mode="json")},
        )
        db.commit()
    except Exception:
        discard_file(stored)
        raise
    publish_live_events(channel, events)
    return response


@router.delete("/attachments/{attachment_id}", response_model=MessageResponse)
def delete_attachment(
    attachment_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: ActorContext = Depends(get_actor_context),
) -> MessageResponse:
    require(context, Action.ATTACHMENT_DELETE)
    attachment = db.get(Attachment, attachment_id)
    if attachment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="attachment not found")
    task = get_visible_task(db, context, attachment.task_id)

    metadata = {"task_id": str(task.id), "file_name": attachment.file_name}
    db.delete(attachment)
    db.flush()
    write_activity_log(
        db=db,
        context=context,
        action="attachment.deleted",
        entity="attachment",
        entity_id=attachment_id,
        metadata_json=metadata,
    )
    db.commit()
    return MessageResponse(message="Attachment deleted successfully")
