from __future__ import annotations

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator

POSTING_INTERVAL_DAYS = 3
DUE_LEAD_DAYS = 2
MAX_SCOPE_QUANTITY = 100


class ContentType(StrEnum):
    STATIC = "STATIC"
    VIDEO = "VIDEO"
    STORY = "STORY"
    REEL = "REEL"
    CAROUSEL = "CAROUSEL"
    BLOG_POST = "BLOG_POST"


class ScopeItem(BaseModel):
    content_type: ContentType
    quantity: int = Field(ge=1, le=MAX_SCOPE_QUANTITY)
    start_date: date | None = None

    @model_validator(mode="after")
    def check_schedule_fits_calendar(self) -> ScopeItem:
        if self.start_date is None:
            return self
        first_due = self.start_date.toordinal() - DUE_LEAD_DAYS
        last_posting = self.start_date.toordinal() + (self.quantity - 1) * POSTING_INTERVAL_DAYS
        if first_due < date.min.toordinal() or last_posting > date.max.toordinal():
            raise ValueError("start_date puts scheduled dates outside the supported range")
        return self


class PlannedTask(BaseModel):
    content_type: ContentType
    sequence: int = Field(ge=1)
    title: str
    description: str
    posting_date: date
    due_date: date


class ScopeProgress(BaseModel):
    content_type: ContentType
    quantity: int
    completed: int = 0
    total: int = 0
