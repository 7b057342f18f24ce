from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

CHANNEL_PREFIX = "live:user:"


class LiveEventType(StrEnum):
    NOTIFICATION = "notification"
    NEW_COMMENT = "new-comment"
    NEW_ATTACHMENT = "new-attachment"


@dataclass(frozen=True)
class LiveEvent:
    recipient_id: uuid.UUID
    event: LiveEventType
    data: dict[str, Any] = field(default_factory=dict)


def user_channel(user_id: uuid.UUID | str) -> str:
    return f"{CHANNEL_PREFIX}{user_id}"


def build_live_message(event: LiveEvent) -> dict[str, Any]:
    return {"event": event.event.value, "data": event.data}
