from __future__ import annotations

import uuid
from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from agencydesk_core.policy import Action, Role, authorize, has_unrestricted_visibility

from .db import get_db
from .models import BrandUser, User
from .services.security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class ActorContext:
    user_id: uuid.UUID
    role: Role
    first_name: str = ""

    @property
    def unrestricted(self) -> bool:
        return has_unrestricted_visibility(self.role)


def require(context: ActorContext, action: Action) -> None:
    decision = authorize(action, context.role)
    if not decision.allowed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=decision.reason or "insufficient role")


def is_brand_member(db: Session, user_id: uuid.UUID, brand_id: uuid.UUID) -> bool:
    row = db.scalar(select(BrandUser.id).where(BrandUser.brand_id == brand_id, BrandUser.user_id == user_id))
    return row is not None


def require_brand_access(db: Session, context: ActorContext, brand_id: uuid.UUID) -> None:
    if context.unrestricted:
        return
    if not is_brand_member(db, context.user_id, brand_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="brand membership required")


def member_brand_ids(user_id: uuid.UUID) -> Select[tuple[uuid.UUID]]:
    return select(BrandUser.brand_id).where(BrandUser.user_id == user_id)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def resolve_actor(db: Session, token: str) -> ActorContext:
    try:
        payload = decode_access_token(token)
        user_id = uuid.UUID(str(payload["sub"]))
    except (jwt.InvalidTokenError, ValueError) as exc:
        raise _unauthorized("invalid or expired token") from exc

    user = db.get(User, user_id)
    if user is None:
        raise _unauthorized("user no longer exists")
    if not user.is_active:
        raise _unauthorized("account is inactive")
    return ActorContext(user_id=user.id, role=user.role, first_name=user.first_name)


def get_actor_context(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> ActorContext:
    if credentials is None or not credentials.credentials:
        raise _unauthorized("authentication required")
    return resolve_actor(db, credentials.credentials)
