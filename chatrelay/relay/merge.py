"""Per-consumer merge of backfill history and live chat."""

from __future__ import annotations

from collections import OrderedDict, deque
from collections.abc import Iterable

from ..constants import DEFAULT_MESSAGE_CAP
from ..irc.models import normalize_channel
from ..irc.parser import ParsedMessage
from .events import BackfillBatch, ChatEvent, Event


class SeenMessageIds:
    """Bounded insertion-ordered id set; the oldest id is evicted first."""

    def __init__(self, capacity: int = DEFAULT_MESSAGE_CAP) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._ids: OrderedDict[str, None] = OrderedDict()

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def add(self, message_id: str) -> bool:
        """Record an id; False when it was already present."""
        if message_id in self._ids:
            return False
        self._ids[message_id] = None
        while len(self._ids) > self.capacity:
            self._ids.popitem(last=False)
        return True

    def clear(self) -> None:
        self._ids.clear()


class MessageMerge:
    """De-duplicated, arrival-ordered view of one channel.

    Backfill batches and live messages go through the same ``apply`` path.
    Uniqueness is guaranteed, chronological order is not: history resolving
    after live traffic is appended where it lands.
    """

    def __init__(self, channel: str | None = None, message_cap: int = DEFAULT_MESSAGE_CAP) -> None:
        self.message_cap = message_cap
        self.channel = normalize_channel(channel) if channel else None
        self.seen = SeenMessageIds(message_cap)
        self.messages: deque[ParsedMessage] = deque(maxlen=message_cap)

    def reset(self, channel: str | None) -> None:
        self.channel = normalize_channel(channel) if channel else None
        self.seen.clear()
        self.messages.clear()

    def handle_event(self, event: Event) -> list[ParsedMessage]:
        """Apply a relay event; returns the newly rendered messages."""
        match event:
            case ChatEvent(message=message):
                return [message] if self.apply(message) else []
            case BackfillBatch(messages=messages):
                return self.apply_batch(messages)
        return []

    def apply_batch(self, messages: Iterable[ParsedMessage]) -> list[ParsedMessage]:
        return [m for m in messages if self.apply(m) and m.command == "PRIVMSG"]

    def apply(self, message: ParsedMessage) -> bool:
        """Apply one message; True when the rendered view changed."""
        if self.channel is None or message.channel != self.channel:
            return False
        match message.command:
            case "CLEARCHAT":
                return self._clear_chat(message.trailing)
            case "CLEARMSG":
                target = message.tags.get("target-msg-id")
                return isinstance(target, str) and self._remove_where(
                    lambda m: m.message_id == target
                )
            case "PRIVMSG":
                return self._accept(message)
        return False

    def _accept(self, message: ParsedMessage) -> bool:
        message_id = message.message_id
        if message_id is not None and not self.seen.add(message_id):
            return False
        self.messages.append(message)
        return True

    def _clear_chat(self, user: str | None) -> bool:
        if user:
            user = user.lower()
            return self._remove_where(lambda m: (m.username or "").lower() == user)
        had_messages = bool(self.messages)
        self.messages.clear()
        return had_messages

    def _remove_where(self, predicate) -> bool:
        kept = [m for m in self.messages if not predicate(m)]
        if len(kept) == len(self.messages):
            return False
        self.messages = deque(kept, maxlen=self.message_cap)
        return True
