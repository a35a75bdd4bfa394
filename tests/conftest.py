from __future__ import annotations

import pytest

from herald.adapters.base import Adapter
from herald.core.message import Envelope, User
from herald.core.robot import Robot
from herald.telemetry import InMemoryTelemetry


class RecordingAdapter(Adapter):
    """Adapter that keeps every outbound call instead of posting it."""

    name = "recording"

    def __init__(self, robot: Robot) -> None:
        super().__init__(robot)
        self.sent: list[tuple[str, Envelope, tuple[str, ...]]] = []
        self.closed = False

    async def send(self, envelope: Envelope, *strings: str) -> None:
        self.sent.append(("send", envelope, strings))

    async def reply(self, envelope: Envelope, *strings: str) -> None:
        self.sent.append(("reply", envelope, strings))

    async def emote(self, envelope: Envelope, *strings: str) -> None:
        self.sent.append(("emote", envelope, strings))

    async def run(self) -> None:
        await self.connected()

    async def close(self) -> None:
        self.closed = True

    def texts(self, method: str = "send") -> list[str]:
        return [s for m, _, strings in self.sent if m == method for s in strings]


@pytest.fixture
def telemetry() -> InMemoryTelemetry:
    return InMemoryTelemetry()


@pytest.fixture
def robot(telemetry: InMemoryTelemetry) -> Robot:
    bot = Robot(name="Hal", telemetry=telemetry)
    bot.adapter = RecordingAdapter(bot)
    return bot


@pytest.fixture
def adapter(robot: Robot) -> RecordingAdapter:
    return robot.adapter


@pytest.fixture
def user() -> User:
    return User(id="42", name="dave", room="pod-bay")
