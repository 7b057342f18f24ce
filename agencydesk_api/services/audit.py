"""Append-only activity log.

``metadata_json`` is a schema-less key/value map. Its contents depend on the
action and are best-effort: readers must tolerate missing keys, and values are
limited to JSON-serializable scalars, lists and dicts. Nothing in the
application reads these rows back to make a decision.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.orm import Session

from ..context import ActorContext
from ..models import ActivityLog


def write_activity_log(
    db: Session,
    context: ActorContext,
    action: str,
    entity: str,
    entity_id: uuid.UUID | str,
    metadata_json: dict[str, Any] | None = None,
) -> ActivityLog:
    entry = ActivityLog(
        actor_user_id=context.user_id,
        action=action,
        entity=entity,
        entity_id=str(entity_id),
        metadata_json=metadata_json or {},
    )
    db.add(entry)
    db.flush()
    return entry


def write_system_activity_log(
    db: Session,
    action: str,
    entity: str,
    entity_id: uuid.UUID | str,
    metadata_json: dict[str, Any] | None = None,
    actor_user_id: uuid.UUID | None = None,
) -> ActivityLog:
    entry = ActivityLog(
        actor_user_id=actor_user_id,
        action=action,
        entity=entity,
        entity_id=str(entity_id),
        metadata_json=metadata_json or {},
    )
    db.add(entry)
    db.flush()
    return entry
