from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Callable, Generator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from agencydesk_api.context import ActorContext
from agencydesk_api.db import get_db
from agencydesk_api.main import app
from agencydesk_api.models import Base, Brand, BrandUser, Role, Task, User
from agencydesk_api.services.live_channel import InMemoryLiveChannel, get_live_channel
from agencydesk_api.services.security import create_access_token, hash_password

TEST_PASSWORD = "secret123"


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, class_=Session, expire_on_commit=True)
    with factory() as session:
        yield session
    engine.dispose()


@pytest.fixture()
def live_channel() -> InMemoryLiveChannel:
    return InMemoryLiveChannel()


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    def _make_user(role: Role = Role.WRITER, email: str | None = None, first_name: str = "Test") -> User:
        user = User(
            email=email or f"{role.value.lower()}-{uuid.uuid4().hex[:8]}@example.com",
            password_hash=hash_password(TEST_PASSWORD),
            first_name=first_name,
            last_name="User",
            role=role,
            is_active=True,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def make_brand(db_session: Session) -> Callable[..., Brand]:
    def _make_brand(name: str = "Acme", members: tuple[User, ...] = ()) -> Brand:
        brand = Brand(name=name, is_active=True)
        db_session.add(brand)
        db_session.flush()
        for member in members:
            db_session.add(BrandUser(brand_id=brand.id, user_id=member.id))
        db_session.commit()
        db_session.refresh(brand)
        return brand

    return _make_brand


@pytest.fixture()
def make_task(db_session: Session) -> Callable[..., Task]:
    def _make_task(
        brand: Brand,
        created_by: User,
        assigned_to: User | None = None,
        title: str = "Draft caption",
    ) -> Task:
        task = Task(
            title=title,
            brand_id=brand.id,
            created_by_id=created_by.id,
            assigned_to_id=assigned_to.id if assigned_to is not None else None,
        )
        db_session.add(task)
        db_session.commit()
        db_session.refresh(task)
        return task

    return _make_task


def _auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role.value)}"}


def _actor_for(user: User) -> ActorContext:
    return ActorContext(user_id=user.id, role=user.role, first_name=user.first_name)


@pytest.fixture()
def auth_headers() -> Callable[[User], dict[str, str]]:
    return _auth_headers


@pytest.fixture()
def actor_for() -> Callable[[User], ActorContext]:
    return _actor_for


@pytest.fixture()
async def client(db_session: Session, live_channel: InMemoryLiveChannel) -> AsyncGenerator[AsyncClient, None]:
    def _get_db() -> Generator[Session, None, None]:
        try:
            yield db_session
        finally:
            db_session.rollback()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_live_channel] = lambda: live_channel
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
            yield http_client
    finally:
        app.dependency_overrides.clear()
