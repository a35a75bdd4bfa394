"""Inbound message variants and outbound addressing.

Adapters build one of the concrete message classes and hand it to
``Robot.receive``.  The dispatch engine synthesizes :class:`CatchAllMessage`
when no listener handled the original message.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import ClassVar, Literal, TypeAlias

MessageKind: TypeAlias = Literal["text", "enter", "leave", "topic", "catch_all"]


@dataclass(slots=True)
class User:
    """A chat participant as seen by the adapter."""

    id: str
    name: str = ""
    room: str | None = None
    fields: dict[str, object] = field(default_factory=dict)
    """Adapter-specific extras (e.g. email, display colour)."""

    def __post_init__(self) -> None:
        self.id = str(self.id)
        if not self.name:
            self.name = self.id


@dataclass(slots=True, kw_only=True)
class Message:
    """Base inbound message.

    ``done`` may be set by any middleware or listener to stop further
    listener attempts for this message.
    """

    kind: ClassVar[MessageKind]

    user: User
    id: str | None = None
    done: bool = False

    @property
    def room(self) -> str | None:
        return self.user.room

    def finish(self) -> None:
        """Mark the message as handled."""
        self.done = True


@dataclass(slots=True, kw_only=True)
class TextMessage(Message):
    """Plain chat text."""

    kind: ClassVar[MessageKind] = "text"

    text: str

    def match(self, pattern: re.Pattern[str]) -> re.Match[str] | None:
        return pattern.search(self.text)

    def __str__(self) -> str:
        return self.text


@dataclass(slots=True, kw_only=True)
class EnterMessage(Message):
    """A user joined the room."""

    kind: ClassVar[MessageKind] = "enter"

    text: str | None = None


@dataclass(slots=True, kw_only=True)
class LeaveMessage(Message):
    """A user left the room."""

    kind: ClassVar[MessageKind] = "leave"

    text: str | None = None


@dataclass(slots=True, kw_only=True)
class TopicMessage(TextMessage):
    """The room topic changed; ``text`` holds the new topic."""

    kind: ClassVar[MessageKind] = "topic"


@dataclass(slots=True, kw_only=True)
class CatchAllMessage(Message):
    """Synthetic re-dispatch of a message no listener handled."""

    kind: ClassVar[MessageKind] = "catch_all"

    inner: Message

    @classmethod
    def wrap(cls, message: Message) -> CatchAllMessage:
        if isinstance(message, CatchAllMessage):
            raise ValueError("a catch-all message cannot wrap another catch-all message")
        return cls(user=message.user, id=message.id, inner=message)

    def __str__(self) -> str:
        return str(self.inner)


@dataclass(frozen=True, slots=True)
class Envelope:
    """Addressing context for outbound text."""

    room: str | None
    user: User | None = None
    message: Message | None = None

    @classmethod
    def for_message(cls, message: Message) -> Envelope:
        return cls(room=message.room, user=message.user, message=message)
