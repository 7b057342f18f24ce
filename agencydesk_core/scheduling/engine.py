from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import date, timedelta

from .schema import DUE_LEAD_DAYS, POSTING_INTERVAL_DAYS, ContentType, PlannedTask, ScopeItem, ScopeProgress


class ScheduleOutOfRange(ValueError):
    pass


def humanize_content_type(content_type: ContentType) -> str:
    return content_type.value.replace("_", " ")


def month_start(year: int, month: int) -> date:
    return date(year, month, 1)


def plan_scope(item: ScopeItem, year: int, month: int, brand_name: str) -> list[PlannedTask]:
    """Expand one scope item into dated task slots.

    Slots start at the item's start date (or the first of the calendar month)
    and are spaced a fixed number of days apart regardless of weekends.
    Each slot is due a fixed number of days before it posts. Raises
    ScheduleOutOfRange when a slot would land outside the date range.
    """
    base_date = item.start_date or month_start(year, month)
    label = humanize_content_type(item.content_type)
    planned: list[PlannedTask] = []
    for index in range(item.quantity):
        try:
            posting_date = base_date + timedelta(days=index * POSTING_INTERVAL_DAYS)
            due_date = posting_date - timedelta(days=DUE_LEAD_DAYS)
        except OverflowError as exc:
            raise ScheduleOutOfRange(
                f"{label.lower()} #{index + 1} falls outside the supported date range"
            ) from exc
        planned.append(
            PlannedTask(
                content_type=item.content_type,
                sequence=index + 1,
                title=f"{label} #{index + 1}",
                description=f"Create {label.lower()} for {brand_name}",
                posting_date=posting_date,
                due_date=due_date,
            )
        )
    return planned


def summarize_progress(
    scopes: Iterable[tuple[ContentType, int]],
    tasks: Iterable[tuple[ContentType | None, bool]],
) -> list[ScopeProgress]:
    """Derive completed/total per scope from (content_type, is_completed) task pairs."""
    totals: Counter[ContentType] = Counter()
    completed: Counter[ContentType] = Counter()
    for content_type, is_completed in tasks:
        if content_type is None:
            continue
        totals[content_type] += 1
        if is_completed:
            completed[content_type] += 1
    return [
        ScopeProgress(
            content_type=content_type,
            quantity=quantity,
            completed=completed[content_type],
            total=totals[content_type],
        )
        for content_type, quantity in scopes
    ]
