"""Interactive console adapter."""

from __future__ import annotations

import asyncio
import itertools
from typing import TYPE_CHECKING

from loguru import logger
from rich.console import Console
from rich.markup import escape

from herald.adapters.base import Adapter
from herald.core.message import Envelope, TextMessage, User

if TYPE_CHECKING:
    from herald.core.robot import Robot

EXIT_COMMANDS = frozenset({"exit", "quit"})


class ShellAdapter(Adapter):
    """Reads lines from the terminal and prints the robot's output."""

    name = "shell"

    def __init__(
        self,
        robot: Robot,
        *,
        user_id: str = "1",
        user_name: str = "user",
        room: str = "shell",
        console: Console | None = None,
    ):
        super().__init__(robot)
        self.console = console or Console()
        self.user_id = user_id
        self.user_name = user_name
        self.room = room
        self.user: User | None = None
        self._running = False
        self._ids = itertools.count(1)

    async def send(self, envelope: Envelope, *strings: str) -> None:
        prefix = f"[bold yellow]{escape(self.robot.name)}>[/bold yellow] "
        for text in strings:
            for line in str(text).splitlines() or [""]:
                self.console.print(prefix + f"[bold cyan]{escape(line)}[/bold cyan]")

    async def emote(self, envelope: Envelope, *strings: str) -> None:
        await self.send(envelope, *(f"* {s}" for s in strings))

    async def reply(self, envelope: Envelope, *strings: str) -> None:
        name = envelope.user.name if envelope.user else self.user_name
        await self.send(envelope, *(f"@{name} {s}" for s in strings))

    async def run(self) -> None:
        self.user = self.robot.brain.user_for_id(self.user_id, name=self.user_name, room=self.room)
        self._running = True
        await self.connected()

        prompt = f"[green]{escape(self.user.name)}>[/green] "
        while self._running:
            try:
                line = await asyncio.to_thread(self.console.input, prompt)
            except (EOFError, KeyboardInterrupt):
                break
            text = line.strip()
            if not text:
                continue
            if text.lower() in EXIT_COMMANDS:
                break
            await self.receive(TextMessage(user=self.user, text=text, id=str(next(self._ids))))

        self._running = False
        logger.debug("Shell input closed")

    async def close(self) -> None:
        self._running = False
