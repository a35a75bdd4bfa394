"""Minimal async event emitter shared by the robot, adapters and brain."""

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import Any, TypeAlias

from loguru import logger

EventHandler: TypeAlias = Callable[..., Any]


class EventEmitter:
    """Named events with sync or async handlers.

    Handlers run in registration order.  A handler that raises is logged and
    the remaining handlers still run.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}
        self._once: set[int] = set()

    def on(self, event: str, handler: EventHandler) -> EventHandler:
        """Subscribe ``handler`` to ``event``."""
        if event not in self._handlers:
            self._handlers[event] = []
        self._handlers[event].append(handler)
        return handler

    def once(self, event: str, handler: EventHandler) -> EventHandler:
        """Subscribe ``handler`` for the next emission of ``event`` only."""
        self.on(event, handler)
        self._once.add(id(handler))
        return handler

    def off(self, event: str, handler: EventHandler) -> bool:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)
            self._once.discard(id(handler))
            return True
        return False

    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))

    async def emit(self, event: str, *args: Any) -> bool:
        """Call every handler of ``event``; return whether any was registered."""
        handlers = list(self._handlers.get(event, []))
        for handler in handlers:
            if id(handler) in self._once:
                self.off(event, handler)
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Event handler for '{}' raised", event)
        return bool(handlers)
