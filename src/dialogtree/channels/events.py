"""Bus message models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from dialogtree.types import Visual


def session_key(channel: str, chat_id: str) -> str:
    return f"{channel}:{chat_id}"


@dataclass(frozen=True)
class InboundMessage:
    """User message arriving from a chat transport."""

    channel: str
    sender_id: str
    chat_id: str
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def session_id(self) -> str:
        return session_key(self.channel, self.chat_id)

    def is_from(self, session_id: str, sender_id: str | None = None) -> bool:
        """Whether this message belongs to `session_id`, and to `sender_id` if given."""
        if self.session_id != session_id:
            return False
        return sender_id is None or self.sender_id == sender_id


@dataclass(frozen=True)
class OutboundMessage:
    """A step's visual, rendered for one chat."""

    channel: str
    chat_id: str
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def session_id(self) -> str:
        return session_key(self.channel, self.chat_id)

    @classmethod
    def from_visual(cls, channel: str, chat_id: str, visual: Any) -> OutboundMessage:
        if isinstance(visual, Visual):
            metadata = {"embed": dict(visual.embed)} if visual.embed else {}
            return cls(channel, chat_id, visual.text, metadata)
        return cls(channel, chat_id, str(visual))
