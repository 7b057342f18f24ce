from __future__ import annotations

from datetime import date

import pytest
from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agencydesk_api.models import ActivityLog, Calendar, CalendarScope, ContentType, Role, Task, TaskStatus
from agencydesk_api.services.calendars import (
    calendar_progress,
    delete_calendar,
    ensure_calendar,
    generate_tasks,
    upsert_scope,
)
from agencydesk_core.scheduling import ScopeItem


def test_ensure_calendar_returns_existing_row(db_session: Session, make_user, make_brand, actor_for) -> None:
    manager = make_user(Role.ACCOUNT_MANAGER)
    brand = make_brand(members=(manager,))
    context = actor_for(manager)

    first, created_first = ensure_calendar(db_session, context, brand_id=brand.id, month=3, year=2024)
    second, created_second = ensure_calendar(db_session, context, brand_id=brand.id, month=3, year=2024)
    db_session.commit()

    assert created_first is True
    assert created_second is False
    assert first.id == second.id
    assert db_session.scalar(select(func.count(Calendar.id))) == 1


def test_duplicate_calendar_insert_is_a_conflict(db_session: Session, make_user, make_brand) -> None:
    admin = make_user(Role.ADMIN)
    brand = make_brand()
    db_session.add(Calendar(brand_id=brand.id, month=4, year=2024, status="DRAFT", created_by_id=admin.id))
    db_session.flush()
    db_session.add(Calendar(brand_id=brand.id, month=4, year=2024, status="DRAFT", created_by_id=admin.id))

    with pytest.raises(IntegrityError):
        db_session.flush()
    db_session.rollback()


def test_ensure_calendar_writes_one_audit_row(db_session: Session, make_user, make_brand, actor_for) -> None:
    admin = make_user(Role.ADMIN)
    brand = make_brand()

    ensure_calendar(db_session, actor_for(admin), brand_id=brand.id, month=1, year=2025)
    ensure_calendar(db_session, actor_for(admin), brand_id=brand.id, month=1, year=2025)
    db_session.commit()

    rows = db_session.scalars(select(ActivityLog).where(ActivityLog.action == "calendar.created")).all()
    assert len(rows) == 1
    assert rows[0].metadata_json == {"brand_id": str(brand.id), "month": 1, "year": 2025}


def test_upsert_scope_keeps_last_quantity(db_session: Session, make_user, make_brand, actor_for) -> None:
    admin = make_user(Role.ADMIN)
    brand = make_brand()
    context = actor_for(admin)
    calendar, _ = ensure_calendar(db_session, context, brand_id=brand.id, month=6, year=2024)

    _, created = upsert_scope(db_session, context, calendar, ContentType.REEL, 4)
    _, created_again = upsert_scope(db_session, context, calendar, ContentType.REEL, 7)
    db_session.commit()

    scopes = db_session.scalars(select(CalendarScope).where(CalendarScope.calendar_id == calendar.id)).all()
    assert created is True
    assert created_again is False
    assert len(scopes) == 1
    assert scopes[0].quantity == 7
    assert scopes[0].completed == 0


def test_generate_tasks_is_additive(db_session: Session, make_user, make_brand, actor_for) -> None:
    admin = make_user(Role.ADMIN)
    brand = make_brand(name="Acme")
    context = actor_for(admin)
    calendar, _ = ensure_calendar(db_session, context, brand_id=brand.id, month=3, year=2024)
    items = [ScopeItem(content_type=ContentType.REEL, quantity=3, start_date=date(2024, 3, 1))]

    first = generate_tasks(db_session, context, calendar, items)
    second = generate_tasks(db_session, context, calendar, items)
    db_session.commit()

    assert len(first) == 3
    assert len(second) == 3
    assert db_session.scalar(select(func.count(Task.id)).where(Task.calendar_id == calendar.id)) == 6
    assert db_session.scalar(select(func.count(CalendarScope.id))) == 1
    assert sorted(task.posting_date for task in first) == [date(2024, 3, 1), date(2024, 3, 4), date(2024, 3, 7)]
    assert {task.status for task in first} == {TaskStatus.TODO}
    assert first[0].description == "Create reel for Acme"


def test_generate_tasks_writes_one_summary_row_per_call(
    db_session: Session, make_user, make_brand, actor_for
) -> None:
    admin = make_user(Role.ADMIN)
    brand = make_brand()
    context = actor_for(admin)
    calendar, _ = ensure_calendar(db_session, context, brand_id=brand.id, month=3, year=2024)
    items = [
        ScopeItem(content_type=ContentType.REEL, quantity=2),
        ScopeItem(content_type=ContentType.STATIC, quantity=3),
    ]

    generate_tasks(db_session, context, calendar, items)
    db_session.commit()

    rows = db_session.scalars(select(ActivityLog).where(ActivityLog.action == "calendar.tasks_generated")).all()
    assert len(rows) == 1
    assert rows[0].entity == "calendar_tasks"
    assert rows[0].metadata_json["tasks_created"] == 5
    assert len(rows[0].metadata_json["scopes"]) == 2


def test_progress_is_derived_from_task_status(db_session: Session, make_user, make_brand, actor_for) -> None:
    admin = make_user(Role.ADMIN)
    brand = make_brand()
    context = actor_for(admin)
    calendar, _ = ensure_calendar(db_session, context, brand_id=brand.id, month=3, year=2024)
    tasks = generate_tasks(db_session, context, calendar, [ScopeItem(content_type=ContentType.STORY, quantity=3)])
    tasks[0].status = TaskStatus.COMPLETED
    db_session.commit()

    progress = calendar_progress(db_session, calendar.id)

    assert len(progress) == 1
    assert (progress[0].completed, progress[0].total, progress[0].quantity) == (1, 3, 3)


def test_delete_calendar_removes_scopes_and_tasks(db_session: Session, make_user, make_brand, actor_for) -> None:
    admin = make_user(Role.ADMIN)
    brand = make_brand()
    context = actor_for(admin)
    calendar, _ = ensure_calendar(db_session, context, brand_id=brand.id, month=3, year=2024)
    generate_tasks(db_session, context, calendar, [ScopeItem(content_type=ContentType.VIDEO, quantity=2)])
    db_session.commit()

    removed = delete_calendar(db_session, calendar)
    db_session.commit()

    assert removed == 2
    assert db_session.scalar(select(func.count(Calendar.id))) == 0
    assert db_session.scalar(select(func.count(CalendarScope.id))) == 0
    assert db_session.scalar(select(func.count(Task.id))) == 0


def test_ensure_calendar_conflict_surfaces_as_409(
    db_session: Session, make_user, make_brand, actor_for, monkeypatch: pytest.MonkeyPatch
) -> None:
    admin = make_user(Role.ADMIN)
    brand = make_brand()
    db_session.add(Calendar(brand_id=brand.id, month=8, year=2024, status="DRAFT", created_by_id=admin.id))
    db_session.commit()

    # Simulate a concurrent request that has not committed its row when the lookup runs.
    monkeypatch.setattr("agencydesk_api.services.calendars.find_calendar", lambda *args, **kwargs: None)

    with pytest.raises(HTTPException) as excinfo:
        ensure_calendar(db_session, actor_for(admin), brand_id=brand.id, month=8, year=2024)
    db_session.rollback()

    assert excinfo.value.status_code == 409
