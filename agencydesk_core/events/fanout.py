from __future__ import annotations

import uuid
from collections.abc import Iterable


def fanout_recipients(actor_id: uuid.UUID, candidates: Iterable[uuid.UUID | None]) -> list[uuid.UUID]:
    """Return the distinct, non-null candidates other than the actor, in first-seen order."""
    recipients: list[uuid.UUID] = []
    for candidate in candidates:
        if candidate is None or candidate == actor_id or candidate in recipients:
            continue
        recipients.append(candidate)
    return recipients
