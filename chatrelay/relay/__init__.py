"""Consumer-side relay: events, fan-out, merge and the hub."""

from .events import (
    BackfillBatch,
    ChatEvent,
    IdentityInfo,
    ProfileResult,
    RequestProfile,
    SendText,
    Unwatch,
    UserProfile,
    Watch,
)
from .broadcaster import ConsumerBroadcaster, ConsumerGone
from .merge import MessageMerge, SeenMessageIds

__all__ = [
    "BackfillBatch",
    "ChatEvent",
    "ConsumerBroadcaster",
    "ConsumerGone",
    "IdentityInfo",
    "MessageMerge",
    "ProfileResult",
    "RequestProfile",
    "SeenMessageIds",
    "SendText",
    "Unwatch",
    "UserProfile",
    "Watch",
]
