from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from agencydesk_core.scheduling import (
    MAX_SCOPE_QUANTITY,
    ContentType,
    ScheduleOutOfRange,
    ScopeItem,
    plan_scope,
    summarize_progress,
)


def test_reel_slots_are_three_days_apart_and_due_two_days_early() -> None:
    item = ScopeItem(content_type=ContentType.REEL, quantity=3, start_date=date(2024, 3, 1))

    planned = plan_scope(item, year=2024, month=3, brand_name="Acme")

    assert [slot.posting_date for slot in planned] == [date(2024, 3, 1), date(2024, 3, 4), date(2024, 3, 7)]
    assert [slot.due_date for slot in planned] == [date(2024, 2, 28), date(2024, 3, 2), date(2024, 3, 5)]
    assert [slot.title for slot in planned] == ["REEL #1", "REEL #2", "REEL #3"]
    assert planned[0].description == "Create reel for Acme"


def test_base_date_defaults_to_first_of_calendar_month() -> None:
    item = ScopeItem(content_type=ContentType.STATIC, quantity=2)

    planned = plan_scope(item, year=2025, month=11, brand_name="Acme")

    assert planned[0].posting_date == date(2025, 11, 1)
    assert planned[1].posting_date == date(2025, 11, 4)
    assert planned[0].due_date == date(2025, 10, 30)


def test_multi_word_content_types_are_humanized() -> None:
    item = ScopeItem(content_type=ContentType.BLOG_POST, quantity=1)

    planned = plan_scope(item, year=2024, month=1, brand_name="Acme")

    assert planned[0].title == "BLOG POST #1"
    assert planned[0].description == "Create blog post for Acme"


def test_slots_past_the_last_supported_date_raise() -> None:
    item = ScopeItem(content_type=ContentType.STORY, quantity=12)

    with pytest.raises(ScheduleOutOfRange, match="story #12"):
        plan_scope(item, year=9999, month=12, brand_name="Acme")


def test_start_date_leaving_no_room_for_due_date_is_rejected() -> None:
    with pytest.raises(ValidationError, match="outside the supported range"):
        ScopeItem(content_type=ContentType.REEL, quantity=1, start_date=date(1, 1, 1))


def test_start_date_with_room_for_lead_time_is_accepted() -> None:
    item = ScopeItem(content_type=ContentType.REEL, quantity=1, start_date=date(1, 1, 3))

    planned = plan_scope(item, year=2024, month=1, brand_name="Acme")

    assert planned[0].due_date == date(1, 1, 1)


def test_quantity_is_capped() -> None:
    ScopeItem(content_type=ContentType.STATIC, quantity=MAX_SCOPE_QUANTITY)
    with pytest.raises(ValidationError):
        ScopeItem(content_type=ContentType.STATIC, quantity=MAX_SCOPE_QUANTITY + 1)


def test_summarize_progress_counts_completed_tasks_per_scope() -> None:
    progress = summarize_progress(
        scopes=[(ContentType.REEL, 3), (ContentType.STATIC, 2)],
        tasks=[
            (ContentType.REEL, True),
            (ContentType.REEL, False),
            (ContentType.STATIC, True),
            (ContentType.STATIC, True),
            (None, True),
        ],
    )

    by_type = {row.content_type: row for row in progress}
    assert (by_type[ContentType.REEL].completed, by_type[ContentType.REEL].total) == (1, 2)
    assert (by_type[ContentType.STATIC].completed, by_type[ContentType.STATIC].total) == (2, 2)
    assert by_type[ContentType.REEL].quantity == 3
