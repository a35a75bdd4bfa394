"""Base adapter interface for chat sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from herald.core.events import EventEmitter
from herald.core.message import Envelope, Message

if TYPE_CHECKING:
    from herald.core.robot import Robot


class Adapter(EventEmitter, ABC):
    """
    Abstract base class for chat source bindings.

    Each adapter (console, chat network, etc.) implements this interface to
    feed messages into the robot and deliver its output.  An adapter must
    emit ``connected`` exactly once, when it is ready to receive.
    """

    name: str = "base"

    def __init__(self, robot: Robot):
        super().__init__()
        self.robot = robot
        self._connected = False

    @abstractmethod
    async def send(self, envelope: Envelope, *strings: str) -> None:
        """Post ``strings`` to the room named by ``envelope``."""

    @abstractmethod
    async def reply(self, envelope: Envelope, *strings: str) -> None:
        """Post ``strings`` addressed to the user named by ``envelope``."""

    @abstractmethod
    async def run(self) -> None:
        """
        Connect and start delivering messages.

        This should be a long-running task that:
        1. Connects to the chat source
        2. Calls :meth:`connected` once ready
        3. Forwards messages to the robot via :meth:`receive`
        """

    @abstractmethod
    async def close(self) -> None:
        """Disconnect and release resources."""

    async def emote(self, envelope: Envelope, *strings: str) -> None:
        """Default: send emotes as plain text."""
        await self.send(envelope, *strings)

    async def topic(self, envelope: Envelope, *strings: str) -> None:
        """Default: announce the topic as plain text."""
        await self.send(envelope, *strings)

    async def receive(self, message: Message) -> bool:
        """Hand one inbound message to the robot."""
        return await self.robot.receive(message)

    async def connected(self) -> None:
        """Emit ``connected``; later calls are ignored."""
        if self._connected:
            return
        self._connected = True
        await self.emit("connected")

    @property
    def is_connected(self) -> bool:
        return self._connected
