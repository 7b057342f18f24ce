from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, EmailStr, Field

from agencydesk_core.scheduling import MAX_SCOPE_QUANTITY, ScopeItem, ScopeProgress

from .models import (
    ActivityLog,
    Attachment,
    Brand,
    Calendar,
    CalendarScope,
    Comment,
    ContentType,
    Notification,
    Role,
    Task,
    TaskPriority,
    TaskStatus,
    User,
)

MIN_PASSWORD_LENGTH = 6


class MessageResponse(BaseModel):
    message: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)


class ProfileUpdateRequest(BaseModel):
    email: EmailStr
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=MIN_PASSWORD_LENGTH)


class UserResponse(BaseModel):
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    role: Role
    is_active: bool
    created_at: datetime

    @classmethod
    def from_model(cls, model: User) -> "UserResponse":
        return cls(
            id=model.id,
            email=model.email,
            first_name=model.first_name,
            last_name=model.last_name,
            role=model.role,
            is_active=model.is_active,
            created_at=model.created_at,
        )


class UserSummary(BaseModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    role: Role


class LoginResponse(BaseModel):
    token: str
    user: UserResponse


class UserCreateRequest(RegisterRequest):
    role: Role = Role.CLIENT_VIEWER


class UserUpdateRequest(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    role: Role | None = None
    is_active: bool | None = None


class BrandCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    logo_url: str | None = Field(default=None, max_length=1024)


class BrandUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    logo_url: str | None = Field(default=None, max_length=1024)
    is_active: bool | None = None


class BrandMemberRequest(BaseModel):
    user_id: uuid.UUID


class BrandResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None
    logo_url: str | None
    is_active: bool
    created_at: datetime

    @classmethod
    def from_model(cls, model: Brand) -> "BrandResponse":
        return cls(
            id=model.id,
            name=model.name,
            description=model.description,
            logo_url=model.logo_url,
            is_active=model.is_active,
            created_at=model.created_at,
        )


class BrandDetailResponse(BrandResponse):
    members: list[UserSummary] = Field(default_factory=list)


class CalendarCreateRequest(BaseModel):
    brand_id: uuid.UUID
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2000, le=9999)


class CalendarUpdateRequest(BaseModel):
    status: str = Field(min_length=1, max_length=50)


class ScopeUpsertRequest(BaseModel):
    content_type: ContentType
    quantity: int = Field(ge=1, le=MAX_SCOPE_QUANTITY)


class ScopeUpdateRequest(BaseModel):
    quantity: int | None = Field(default=None, ge=1, le=MAX_SCOPE_QUANTITY)
    completed: int | None = Field(default=None, ge=0)


class GenerateTasksRequest(BaseModel):
    scopes: list[ScopeItem] = Field(min_length=1)


class ScopeResponse(BaseModel):
    id: uuid.UUID
    calendar_id: uuid.UUID
    content_type: ContentType
    quantity: int
    completed: int

    @classmethod
    def from_model(cls, model: CalendarScope) -> "ScopeResponse":
        return cls(
            id=model.id,
            calendar_id=model.calendar_id,
            content_type=model.content_type,
            quantity=model.quantity,
            completed=model.completed,
        )


class CalendarResponse(BaseModel):
    id: uuid.UUID
    brand_id: uuid.UUID
    month: int
    year: int
    status: str
    created_by_id: uuid.UUID
    created_at: datetime
    scopes: list[ScopeResponse] = Field(default_factory=list)
    task_count: int = 0

    @classmethod
    def from_model(
        cls, model: Calendar, scopes: list[CalendarScope] | None = None, task_count: int = 0
    ) -> "CalendarResponse":
        return cls(
            id=model.id,
            brand_id=model.brand_id,
            month=model.month,
            year=model.year,
            status=model.status,
            created_by_id=model.created_by_id,
            created_at=model.created_at,
            scopes=[ScopeResponse.from_model(scope) for scope in scopes or []],
            task_count=task_count,
        )


class TaskCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    brand_id: uuid.UUID
    calendar_id: uuid.UUID | None = None
    content_type: ContentType | None = None
    posting_date: date | None = None
    due_date: date | None = None
    assigned_to_id: uuid.UUID | None = None


class TaskUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    posting_date: date | None = None
    due_date: date | None = None
    assigned_to_id: uuid.UUID | None = None


class TaskResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str | None
    status: TaskStatus
    priority: TaskPriority
    brand_id: uuid.UUID
    calendar_id: uuid.UUID | None
    content_type: ContentType | None
    posting_date: date | None
    due_date: date | None
    assigned_to_id: uuid.UUID | None
    created_by_id: uuid.UUID
    created_at: datetime

    @classmethod
    def from_model(cls, model: Task) -> "TaskResponse":
        return cls(
            id=model.id,
            title=model.title,
            description=model.description,
            status=model.status,
            priority=model.priority,
            brand_id=model.brand_id,
            calendar_id=model.calendar_id,
            content_type=model.content_type,
            posting_date=model.posting_date,
            due_date=model.due_date,
            assigned_to_id=model.assigned_to_id,
            created_by_id=model.created_by_id,
            created_at=model.created_at,
        )


class CommentCreateRequest(BaseModel):
    content: str = Field(min_length=1)


class CommentResponse(BaseModel):
    id: uuid.UUID
    task_id: uuid.UUID
    author_id: uuid.UUID
    content: str
    created_at: datetime

    @classmethod
    def from_model(cls, model: Comment) -> "CommentResponse":
        return cls(
            id=model.id,
            task_id=model.task_id,
            author_id=model.author_id,
            content=model.content,
            created_at=model.created_at,
        )


class AttachmentResponse(BaseModel):
    id: uuid.UUID
    task_id: uuid.UUID
    file_name: str
    file_url: str
    file_type: str
    file_size: int
    description: str | None
    created_at: datetime

    @classmethod
    def from_model(cls, model: Attachment) -> "AttachmentResponse":
        return cls(
            id=model.id,
            task_id=model.task_id,
            file_name=model.file_name,
            file_url=model.file_url,
            file_type=model.file_type,
            file_size=model.file_size,
            description=model.description,
            created_at=model.created_at,
        )


class TaskDetailResponse(TaskResponse):
    comments: list[CommentResponse] = Field(default_factory=list)
    attachments: list[AttachmentResponse] = Field(default_factory=list)


class CalendarDetailResponse(CalendarResponse):
    tasks: list[TaskResponse] = Field(default_factory=list)
    progress: list[ScopeProgress] = Field(default_factory=list)


class GenerateTasksResponse(BaseModel):
    message: str
    count: int
    tasks: list[TaskResponse]


class NotificationResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    message: str
    is_read: bool
    created_at: datetime

    @classmethod
    def from_model(cls, model: Notification) -> "NotificationResponse":
        return cls(
            id=model.id,
            user_id=model.user_id,
            title=model.title,
            message=model.message,
            is_read=model.is_read,
            created_at=model.created_at,
        )


class MarkAllReadResponse(BaseModel):
    message: str
    updated: int


class ActivityLogResponse(BaseModel):
    id: uuid.UUID
    action: str
    entity: str
    entity_id: str
    actor_user_id: uuid.UUID | None
    metadata_json: dict[str, Any]
    created_at: datetime

    @classmethod
    def from_model(cls, model: ActivityLog) -> "ActivityLogResponse":
        return cls(
            id=model.id,
            action=model.action,
            entity=model.entity,
            entity_id=model.entity_id,
            actor_user_id=model.actor_user_id,
            metadata_json=model.metadata_json,
            created_at=model.created_at,
        )
