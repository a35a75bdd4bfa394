"""Per-dispatch response envelope handed to listener callbacks."""

from __future__ import annotations

import random
import re
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, TypeVar

from herald.core.message import Envelope, Message
from herald.core.middleware import ResponseContext

if TYPE_CHECKING:
    from herald.core.robot import Robot

T = TypeVar("T")


class Response:
    """Joins the robot, the message being handled and the listener match.

    ``send``/``reply``/``emote``/``topic`` run the robot's response middleware
    and then deliver through the adapter, addressed with this message's
    envelope.
    """

    __slots__ = ("robot", "message", "match")

    def __init__(self, robot: Robot, message: Message, match: Any = None) -> None:
        self.robot = robot
        self.message = message
        self.match = match

    @property
    def matches(self) -> tuple[str | None, ...]:
        """Full match followed by capture groups, empty for non-regex matches."""
        if isinstance(self.match, re.Match):
            return (self.match.group(0), *self.match.groups())
        return ()

    @property
    def envelope(self) -> Envelope:
        return Envelope.for_message(self.message)

    async def send(self, *strings: str) -> bool:
        """Post ``strings`` to the originating room."""
        return await self._run_strings("send", strings)

    async def reply(self, *strings: str) -> bool:
        """Post ``strings`` addressed to the originating user."""
        return await self._run_strings("reply", strings)

    async def emote(self, *strings: str) -> bool:
        return await self._run_strings("emote", strings)

    async def topic(self, *strings: str) -> bool:
        return await self._run_strings("topic", strings)

    def random(self, items: Sequence[T]) -> T:
        return random.choice(items)

    def finish(self) -> None:
        """Stop any further listener from handling this message."""
        self.message.finish()

    async def _run_strings(self, method: str, strings: tuple[str, ...]) -> bool:
        ctx = ResponseContext(response=self, strings=list(strings), method=method)
        return await self.robot.middleware.response.execute(ctx, self._deliver)

    async def _deliver(self, ctx: ResponseContext) -> None:
        deliver = getattr(self.robot.adapter, ctx.method)
        await deliver(self.envelope, *ctx.strings)

    def __repr__(self) -> str:
        return f"Response(message={self.message!r}, matches={self.matches!r})"
