from __future__ import annotations

from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from agencydesk_api.models import ActivityLog, Calendar, CalendarScope, Role, Task
from agencydesk_core.scheduling import MAX_SCOPE_QUANTITY


async def test_create_calendar_is_idempotent_per_month(
    client: AsyncClient, db_session: Session, make_user, make_brand, auth_headers
) -> None:
    manager = make_user(Role.ACCOUNT_MANAGER)
    brand = make_brand(members=(manager,))
    payload = {"brand_id": str(brand.id), "month": 3, "year": 2024}

    created = await client.post("/calendars", headers=auth_headers(manager), json=payload)
    existing = await client.post("/calendars", headers=auth_headers(manager), json=payload)

    assert created.status_code == 201
    assert existing.status_code == 200
    assert created.json()["id"] == existing.json()["id"]
    assert created.json()["status"] == "DRAFT"
    assert db_session.scalar(select(func.count(Calendar.id))) == 1


async def test_writer_cannot_create_calendar(
    client: AsyncClient, db_session: Session, make_user, make_brand, auth_headers
) -> None:
    writer = make_user(Role.WRITER)
    brand = make_brand(members=(writer,))
    audit_rows = db_session.scalar(select(func.count(ActivityLog.id)))

    response = await client.post(
        "/calendars", headers=auth_headers(writer), json={"brand_id": str(brand.id), "month": 1, "year": 2024}
    )

    assert response.status_code == 403
    assert db_session.scalar(select(func.count(Calendar.id))) == 0
    assert db_session.scalar(select(func.count(ActivityLog.id))) == audit_rows


async def test_invalid_month_is_rejected(client: AsyncClient, make_user, make_brand, auth_headers) -> None:
    admin = make_user(Role.ADMIN)
    brand = make_brand()

    response = await client.post(
        "/calendars", headers=auth_headers(admin), json={"brand_id": str(brand.id), "month": 13, "year": 2024}
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "body.month"


async def test_generate_tasks_endpoint(
    client: AsyncClient, db_session: Session, make_user, make_brand, auth_headers
) -> None:
    manager = make_user(Role.ACCOUNT_MANAGER)
    brand = make_brand(name="Acme", members=(manager,))
    headers = auth_headers(manager)
    calendar = (
        await client.post("/calendars", headers=headers, json={"brand_id": str(brand.id), "month": 3, "year": 2024})
    ).json()
    body = {"scopes": [{"content_type": "REEL", "quantity": 3, "start_date": "2024-03-01"}]}

    first = await client.post(f"/calendars/{calendar['id']}/generate-tasks", headers=headers, json=body)
    second = await client.post(f"/calendars/{calendar['id']}/generate-tasks", headers=headers, json=body)

    assert first.status_code == 201
    assert first.json()["message"] == "Generated 3 tasks"
    assert first.json()["count"] == 3
    assert sorted(task["posting_date"] for task in first.json()["tasks"]) == ["2024-03-01", "2024-03-04", "2024-03-07"]
    assert sorted(task["due_date"] for task in first.json()["tasks"]) == ["2024-02-28", "2024-03-02", "2024-03-05"]
    assert second.json()["count"] == 3
    assert db_session.scalar(select(func.count(Task.id))) == 6
    generated = db_session.scalars(select(ActivityLog).where(ActivityLog.action == "calendar.tasks_generated")).all()
    assert len(generated) == 2

    detail = await client.get(f"/calendars/{calendar['id']}", headers=headers)
    assert detail.json()["task_count"] == 6
    assert detail.json()["scopes"][0]["quantity"] == 3
    assert detail.json()["progress"][0] == {"content_type": "REEL", "quantity": 3, "completed": 0, "total": 6}


async def test_generate_requires_at_least_one_scope(
    client: AsyncClient, make_user, make_brand, auth_headers
) -> None:
    admin = make_user(Role.ADMIN)
    brand = make_brand()
    headers = auth_headers(admin)
    calendar = (
        await client.post("/calendars", headers=headers, json={"brand_id": str(brand.id), "month": 5, "year": 2024})
    ).json()

    response = await client.post(f"/calendars/{calendar['id']}/generate-tasks", headers=headers, json={"scopes": []})

    assert response.status_code == 400


async def test_generate_rejects_slots_past_the_last_supported_date(
    client: AsyncClient, db_session: Session, make_user, make_brand, auth_headers
) -> None:
    admin = make_user(Role.ADMIN)
    brand = make_brand()
    headers = auth_headers(admin)
    calendar = (
        await client.post("/calendars", headers=headers, json={"brand_id": str(brand.id), "month": 12, "year": 9999})
    ).json()
    body = {"scopes": [{"content_type": "REEL", "quantity": 12}]}

    response = await client.post(f"/calendars/{calendar['id']}/generate-tasks", headers=headers, json=body)

    assert response.status_code == 400
    assert response.json()["detail"].startswith("scopes.0: reel #12")
    assert db_session.scalar(select(func.count(Task.id))) == 0
    assert db_session.scalar(select(func.count(CalendarScope.id))) == 0


async def test_generate_rejects_start_date_without_room_for_due_date(
    client: AsyncClient, db_session: Session, make_user, make_brand, auth_headers
) -> None:
    admin = make_user(Role.ADMIN)
    brand = make_brand()
    headers = auth_headers(admin)
    calendar = (
        await client.post("/calendars", headers=headers, json={"brand_id": str(brand.id), "month": 1, "year": 2024})
    ).json()
    body = {"scopes": [{"content_type": "REEL", "quantity": 1, "start_date": "0001-01-01"}]}

    response = await client.post(f"/calendars/{calendar['id']}/generate-tasks", headers=headers, json=body)

    assert response.status_code == 400
    error = response.json()["errors"][0]
    assert error["field"] == "body.scopes.0"
    assert "outside the supported range" in error["message"]
    assert db_session.scalar(select(func.count(Task.id))) == 0


async def test_generate_caps_scope_quantity(client: AsyncClient, make_user, make_brand, auth_headers) -> None:
    admin = make_user(Role.ADMIN)
    brand = make_brand()
    headers = auth_headers(admin)
    calendar = (
        await client.post("/calendars", headers=headers, json={"brand_id": str(brand.id), "month": 1, "year": 2024})
    ).json()
    body = {"scopes": [{"content_type": "STATIC", "quantity": MAX_SCOPE_QUANTITY + 1}]}

    response = await client.post(f"/calendars/{calendar['id']}/generate-tasks", headers=headers, json=body)
    scope = await client.post(
        f"/calendars/{calendar['id']}/scopes",
        headers=headers,
        json={"content_type": "STATIC", "quantity": MAX_SCOPE_QUANTITY + 1},
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "body.scopes.0.quantity"
    assert scope.status_code == 400


async def test_scope_upsert_and_update(client: AsyncClient, make_user, make_brand, auth_headers) -> None:
    admin = make_user(Role.ADMIN)
    brand = make_brand()
    headers = auth_headers(admin)
    calendar = (
        await client.post("/calendars", headers=headers, json={"brand_id": str(brand.id), "month": 2, "year": 2024})
    ).json()

    created = await client.post(
        f"/calendars/{calendar['id']}/scopes", headers=headers, json={"content_type": "STATIC", "quantity": 4}
    )
    replaced = await client.post(
        f"/calendars/{calendar['id']}/scopes", headers=headers, json={"content_type": "STATIC", "quantity": 6}
    )
    updated = await client.put(f"/calendars/scopes/{created.json()['id']}", headers=headers, json={"completed": 2})

    assert created.status_code == 201
    assert replaced.status_code == 200
    assert replaced.json()["id"] == created.json()["id"]
    assert replaced.json()["quantity"] == 6
    assert updated.json()["completed"] == 2

    deleted = await client.delete(f"/calendars/scopes/{created.json()['id']}", headers=headers)
    assert deleted.status_code == 200
    assert (await client.get(f"/calendars/{calendar['id']}", headers=headers)).json()["scopes"] == []


async def test_list_calendars_is_brand_scoped(client: AsyncClient, make_user, make_brand, auth_headers) -> None:
    admin = make_user(Role.ADMIN)
    viewer = make_user(Role.CLIENT_VIEWER)
    own_brand = make_brand(name="Own", members=(viewer,))
    other_brand = make_brand(name="Other")
    admin_headers = auth_headers(admin)
    for brand in (own_brand, other_brand):
        await client.post("/calendars", headers=admin_headers, json={"brand_id": str(brand.id), "month": 1, "year": 2024})
    await client.post("/calendars", headers=admin_headers, json={"brand_id": str(own_brand.id), "month": 2, "year": 2024})

    visible = await client.get("/calendars", headers=auth_headers(viewer))
    everything = await client.get("/calendars", headers=admin_headers)

    assert [(row["year"], row["month"]) for row in visible.json()] == [(2024, 2), (2024, 1)]
    assert {row["brand_id"] for row in visible.json()} == {str(own_brand.id)}
    assert len(everything.json()) == 3


async def test_delete_calendar_requires_admin(client: AsyncClient, make_user, make_brand, auth_headers) -> None:
    admin = make_user(Role.ADMIN)
    manager = make_user(Role.ACCOUNT_MANAGER)
    brand = make_brand(members=(manager,))
    calendar = (
        await client.post(
            "/calendars", headers=auth_headers(admin), json={"brand_id": str(brand.id), "month": 7, "year": 2024}
        )
    ).json()

    denied = await client.delete(f"/calendars/{calendar['id']}", headers=auth_headers(manager))
    allowed = await client.delete(f"/calendars/{calendar['id']}", headers=auth_headers(admin))

    assert denied.status_code == 403
    assert allowed.status_code == 200
    assert (await client.get(f"/calendars/{calendar['id']}", headers=auth_headers(admin))).status_code == 404
