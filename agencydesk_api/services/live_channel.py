from __future__ import annotations

import json
import logging
from collections import defaultdict, deque
from collections.abc import Iterable
from typing import Any, Protocol

from redis.exceptions import RedisError

from agencydesk_core.events import LiveEvent, build_live_message, user_channel

from ..redis_client import get_redis_client
from ..settings import settings

logger = logging.getLogger(__name__)

MEMORY_CHANNEL_HISTORY = 100


class LiveChannel(Protocol):
    def publish(self, event: LiveEvent) -> None: ...


class RedisLiveChannel:
    """Publishes to a per-user Redis pub/sub channel that websocket sessions subscribe to."""

    def publish(self, event: LiveEvent) -> None:
        message = json.dumps(build_live_message(event), default=str)
        try:
            get_redis_client().publish(user_channel(event.recipient_id), message)
        except RedisError:
            # The notification row is already committed; clients catch up on next poll.
            logger.warning("live push to %s failed", event.recipient_id, exc_info=True)


class InMemoryLiveChannel:
    """Keeps the most recent messages per user channel, for tests and local dev."""

    def __init__(self, history: int = MEMORY_CHANNEL_HISTORY) -> None:
        self.published: dict[str, deque[dict[str, Any]]] = defaultdict(lambda: deque(maxlen=history))

    def publish(self, event: LiveEvent) -> None:
        self.published[user_channel(event.recipient_id)].append(build_live_message(event))

    def messages_for(self, user_id: object) -> list[dict[str, Any]]:
        return list(self.published.get(user_channel(str(user_id)), []))


_memory_channel = InMemoryLiveChannel()


def get_live_channel() -> LiveChannel:
    if settings.live_channel_mode == "memory":
        return _memory_channel
    return RedisLiveChannel()


def publish_live_events(channel: LiveChannel, events: Iterable[LiveEvent]) -> None:
    for event in events:
        channel.publish(event)
