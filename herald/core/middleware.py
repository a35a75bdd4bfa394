"""Ordered interceptor chains for the three dispatch stages.

The robot owns three independent chains:

* ``receive`` runs before any listener is tried,
* ``listener`` runs after a listener matched, before its callback,
* ``response`` runs before outbound text reaches the adapter.

Each interceptor is called with the stage context and returns a :class:`Flow`.
``Flow.PROCEED`` (or ``None``) hands control to the next interceptor, and
after the last one to the chain's terminal action.  ``Flow.ABORT`` stops the
chain and skips the terminal action.

Usage::

    async def drop_bots(ctx: ReceiveContext) -> Flow:
        if ctx.response.message.user.fields.get("is_bot"):
            return Flow.ABORT
        return Flow.PROCEED

    robot.receive_middleware(drop_bots)
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, TypeAlias, TypeVar

from loguru import logger

if TYPE_CHECKING:
    from herald.core.listener import Listener
    from herald.core.response import Response


class Flow(Enum):
    """Result of one interceptor."""

    PROCEED = "proceed"
    ABORT = "abort"


@dataclass(slots=True)
class ReceiveContext:
    """Context of the receive chain."""

    response: Response


@dataclass(slots=True)
class ListenerContext:
    """Context of the listener chain; ``listener`` is the one that matched."""

    listener: Listener
    response: Response


@dataclass(slots=True)
class ResponseContext:
    """Context of the response chain.

    Attributes:
        response: The response the text is sent through.
        strings: Outbound strings.  Interceptors may replace or edit them.
        method: Adapter method that will deliver the strings
            (``send``, ``reply``, ``emote`` or ``topic``).
    """

    response: Response
    strings: list[str] = field(default_factory=list)
    method: str = "send"


C = TypeVar("C")

Interceptor: TypeAlias = Callable[[Any], Flow | None | Awaitable[Flow | None]]
ErrorSink: TypeAlias = Callable[[BaseException, "Response | None"], Awaitable[None]]


class MiddlewareChain(Generic[C]):
    """Ordered list of interceptors executed sequentially over one context."""

    __slots__ = ("_interceptors", "_on_error", "name")

    def __init__(self, name: str = "middleware", on_error: ErrorSink | None = None) -> None:
        self.name = name
        self._interceptors: list[Interceptor] = []
        self._on_error = on_error

    def register(self, interceptor: Interceptor) -> Interceptor:
        """Append ``interceptor``; no deduplication, no priorities."""
        self._interceptors.append(interceptor)
        return interceptor

    async def execute(
        self,
        ctx: C,
        terminal: Callable[[C], Any],
        callback: Callable[[bool], Any] | None = None,
    ) -> bool:
        """Run the chain once over ``ctx``.

        Returns ``True`` when every interceptor proceeded and ``terminal`` ran,
        ``False`` when the chain was aborted (explicitly or by an error).
        ``callback`` is invoked with the same outcome.
        """
        completed = await self._run(ctx, terminal)
        if callback is not None:
            try:
                result = callback(completed)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                await self._report(exc, ctx)
        return completed

    async def _run(self, ctx: C, terminal: Callable[[C], Any]) -> bool:
        for interceptor in list(self._interceptors):
            try:
                flow = interceptor(ctx)
                if inspect.isawaitable(flow):
                    flow = await flow
            except Exception as exc:
                logger.debug("{} interceptor {} raised; aborting chain", self.name, _describe(interceptor))
                await self._report(exc, ctx)
                return False
            if flow is Flow.ABORT or flow is False:
                logger.debug("{} chain aborted by {}", self.name, _describe(interceptor))
                return False

        result = terminal(ctx)
        if inspect.isawaitable(result):
            await result
        return True

    async def _report(self, exc: BaseException, ctx: C) -> None:
        response = getattr(ctx, "response", None)
        if self._on_error is None:
            logger.opt(exception=exc).error("{} chain error: {}", self.name, exc)
            return
        await self._on_error(exc, response)

    def __len__(self) -> int:
        return len(self._interceptors)

    def __repr__(self) -> str:
        names = [_describe(i) for i in self._interceptors]
        return f"MiddlewareChain({self.name}: {' → '.join(names)})"


def _describe(interceptor: Interceptor) -> str:
    return getattr(interceptor, "__name__", type(interceptor).__name__)
