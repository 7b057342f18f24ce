from agencydesk_core.events.fanout import fanout_recipients
from agencydesk_core.events.writer import CHANNEL_PREFIX, LiveEvent, LiveEventType, build_live_message, user_channel

__all__ = [
    "CHANNEL_PREFIX",
    "LiveEvent",
    "LiveEventType",
    "build_live_message",
    "fanout_recipients",
    "user_channel",
]
