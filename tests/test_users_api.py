from __future__ import annotations

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from agencydesk_api.models import ActivityLog, Role, User


@pytest.mark.parametrize("role", list(Role))
async def test_self_delete_is_rejected(
    client: AsyncClient, db_session: Session, make_user, auth_headers, role: Role
) -> None:
    user = make_user(role)
    audit_rows = db_session.scalar(select(func.count(ActivityLog.id)))

    response = await client.delete(f"/users/{user.id}", headers=auth_headers(user))

    assert response.status_code == 403
    assert db_session.get(User, user.id) is not None
    assert db_session.scalar(select(func.count(ActivityLog.id))) == audit_rows


async def test_super_admin_deletes_other_user(
    client: AsyncClient, db_session: Session, make_user, auth_headers
) -> None:
    super_admin = make_user(Role.SUPER_ADMIN)
    target = make_user(Role.WRITER)
    target_id = target.id

    response = await client.delete(f"/users/{target_id}", headers=auth_headers(super_admin))

    assert response.status_code == 200
    assert db_session.get(User, target_id) is None
    assert db_session.scalar(select(func.count(ActivityLog.id)).where(ActivityLog.action == "user.deleted")) == 1


async def test_admin_cannot_delete_users(client: AsyncClient, make_user, auth_headers) -> None:
    admin = make_user(Role.ADMIN)
    target = make_user(Role.WRITER)

    response = await client.delete(f"/users/{target.id}", headers=auth_headers(admin))

    assert response.status_code == 403


@pytest.mark.parametrize("role", [role for role in Role if role != Role.SUPER_ADMIN])
async def test_role_change_denied_for_non_super_admin(
    client: AsyncClient, db_session: Session, make_user, auth_headers, role: Role
) -> None:
    actor = make_user(role)
    target = make_user(Role.WRITER)
    audit_rows = db_session.scalar(select(func.count(ActivityLog.id)))

    response = await client.put(f"/users/{target.id}", headers=auth_headers(actor), json={"role": "ADMIN"})

    assert response.status_code == 403
    db_session.refresh(target)
    assert target.role == Role.WRITER
    assert db_session.scalar(select(func.count(ActivityLog.id))) == audit_rows


async def test_super_admin_changes_role(client: AsyncClient, make_user, auth_headers) -> None:
    super_admin = make_user(Role.SUPER_ADMIN)
    target = make_user(Role.WRITER)

    response = await client.put(f"/users/{target.id}", headers=auth_headers(super_admin), json={"role": "DESIGNER"})

    assert response.status_code == 200
    assert response.json()["role"] == "DESIGNER"


async def test_super_admin_cannot_change_own_role(client: AsyncClient, make_user, auth_headers) -> None:
    super_admin = make_user(Role.SUPER_ADMIN)

    response = await client.put(f"/users/{super_admin.id}", headers=auth_headers(super_admin), json={"role": "WRITER"})

    assert response.status_code == 403


async def test_role_change_applies_to_next_request(client: AsyncClient, make_user, auth_headers) -> None:
    super_admin = make_user(Role.SUPER_ADMIN)
    target = make_user(Role.ADMIN)
    stale_headers = auth_headers(target)

    await client.put(f"/users/{target.id}", headers=auth_headers(super_admin), json={"role": "WRITER"})
    response = await client.get("/users", headers=stale_headers)

    assert response.status_code == 403


async def test_admin_lists_and_filters_users(client: AsyncClient, make_user, auth_headers) -> None:
    admin = make_user(Role.ADMIN)
    make_user(Role.WRITER)
    make_user(Role.WRITER)

    response = await client.get("/users", params={"role": "WRITER"}, headers=auth_headers(admin))

    assert response.status_code == 200
    assert [row["role"] for row in response.json()] == ["WRITER", "WRITER"]


async def test_create_user_rejects_duplicate_email(client: AsyncClient, make_user, auth_headers) -> None:
    super_admin = make_user(Role.SUPER_ADMIN)
    payload = {
        "email": "new.hire@example.com",
        "password": "secret123",
        "first_name": "New",
        "last_name": "Hire",
        "role": "ACCOUNT_MANAGER",
    }

    created = await client.post("/users", headers=auth_headers(super_admin), json=payload)
    duplicate = await client.post("/users", headers=auth_headers(super_admin), json=payload)

    assert created.status_code == 201
    assert created.json()["role"] == "ACCOUNT_MANAGER"
    assert duplicate.status_code == 409


async def test_deactivated_user_token_is_rejected(client: AsyncClient, make_user, auth_headers) -> None:
    super_admin = make_user(Role.SUPER_ADMIN)
    target = make_user(Role.WRITER)
    target_headers = auth_headers(target)

    await client.put(f"/users/{target.id}", headers=auth_headers(super_admin), json={"is_active": False})
    response = await client.get("/tasks", headers=target_headers)

    assert response.status_code == 401
