from __future__ import annotations

import uuid
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import ColumnElement, Select, delete, or_, select
from sqlalchemy.orm import Session

from agencydesk_core.policy import task_visible_to

from ..context import ActorContext, is_brand_member, member_brand_ids
from ..models import Attachment, Comment, Task


def visibility_clause(context: ActorContext) -> ColumnElement[bool]:
    return or_(
        Task.assigned_to_id == context.user_id,
        Task.created_by_id == context.user_id,
        Task.brand_id.in_(member_brand_ids(context.user_id)),
    )


def apply_visibility(stmt: Select[Any], context: ActorContext) -> Select[Any]:
    """Restrict a task query to rows the actor may see; composes with other filters by AND."""
    if context.unrestricted:
        return stmt
    return stmt.where(visibility_clause(context))


def get_task_or_404(db: Session, task_id: uuid.UUID) -> Task:
    task = db.get(Task, task_id)
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="task not found")
    return task


def ensure_task_visible(db: Session, context: ActorContext, task: Task) -> None:
    visible = task_visible_to(
        actor_id=str(context.user_id),
        actor_role=context.role,
        assigned_to_id=str(task.assigned_to_id) if task.assigned_to_id else None,
        created_by_id=str(task.created_by_id),
        is_brand_member=not context.unrestricted and is_brand_member(db, context.user_id, task.brand_id),
    )
    if not visible:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="task not accessible")


def get_visible_task(db: Session, context: ActorContext, task_id: uuid.UUID) -> Task:
    task = get_task_or_404(db, task_id)
    ensure_task_visible(db, context, task)
    return task


def purge_tasks(db: Session, *criteria: ColumnElement[bool]) -> int:
    """Delete matching tasks together with their comments and attachments."""
    task_ids = select(Task.id).where(*criteria)
    db.execute(delete(Comment).where(Comment.task_id.in_(task_ids)))
    db.execute(delete(Attachment).where(Attachment.task_id.in_(task_ids)))
    result = db.execute(delete(Task).where(*criteria))
    return int(result.rowcount or 0)
