"""The robot: listener registry, middleware chains and the dispatch loop."""

from __future__ import annotations

import asyncio
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from loguru import logger

from herald.core.brain import Brain
from herald.core.errors import ErrorHandler, ErrorHooks
from herald.core.events import EventEmitter, EventHandler
from herald.core.listener import Listener, ListenerCallback, ListenerOptions, TextListener
from herald.core.message import (
    CatchAllMessage,
    EnterMessage,
    Envelope,
    LeaveMessage,
    Message,
    TopicMessage,
)
from herald.core.middleware import (
    Interceptor,
    ListenerContext,
    MiddlewareChain,
    ReceiveContext,
    ResponseContext,
)
from herald.core.response import Response

if TYPE_CHECKING:
    from herald.adapters.base import Adapter
    from herald.telemetry.base import TelemetryPort

_NAME_ESCAPE_RE = re.compile(r"[-\[\]{}()*+?.,\\^$|#\s]")
_INLINE_FLAGS_RE = re.compile(r"^(?:\(\?[aiLmsux]+\))+")


def _escape_name(name: str) -> str:
    return _NAME_ESCAPE_RE.sub(lambda m: "\\" + m.group(0), name)


def _is_catch_all(message: Message) -> bool:
    return isinstance(message, CatchAllMessage)


@dataclass(slots=True)
class Middlewares:
    """The three independent middleware chains of one robot."""

    receive: MiddlewareChain[ReceiveContext]
    listener: MiddlewareChain[ListenerContext]
    response: MiddlewareChain[ResponseContext]


class Robot:
    """Receives messages from an adapter and dispatches them to listeners.

    Listeners are tried one at a time in registration order.  The first one
    that *executes* (matcher succeeded and listener middleware let the
    callback run) ends the search, as does a listener attempt that leaves
    ``message.done`` set.  When none executes, the message is re-dispatched
    once as a :class:`CatchAllMessage`.
    """

    def __init__(
        self,
        adapter: Adapter | None = None,
        *,
        name: str = "Herald",
        alias: str | None = None,
        brain: Brain | None = None,
        error_hooks: ErrorHooks | None = None,
        telemetry: TelemetryPort | None = None,
    ) -> None:
        self.name = name
        self.alias = alias or None
        self.adapter = adapter
        self.brain = brain if brain is not None else Brain()
        self.errors = error_hooks if error_hooks is not None else ErrorHooks()
        self.telemetry = telemetry
        self.events = EventEmitter()
        self.response_class: type[Response] = Response
        self._listeners: list[Listener] = []
        self.middleware = Middlewares(
            receive=MiddlewareChain("receive", on_error=self._report_error),
            listener=MiddlewareChain("listener", on_error=self._report_error),
            response=MiddlewareChain("response", on_error=self._report_error),
        )
        self._previous_exception_handler: Any = None
        self._loop: asyncio.AbstractEventLoop | None = None

        self.events.on("error", self.errors.report)
        logger.debug("Robot created: name={}, alias={}", self.name, self.alias)

    # ── Registration ─────────────────────────────────────────────────

    @property
    def listeners(self) -> tuple[Listener, ...]:
        return tuple(self._listeners)

    def listen(
        self,
        matcher: Callable[[Message], Any],
        options: ListenerOptions | ListenerCallback | None = None,
        callback: ListenerCallback | None = None,
    ) -> Any:
        """Add a listener with a custom ``matcher(message) -> truthy``.

        Without a callback this returns a decorator.
        """
        return self._register(lambda opts, cb: Listener(self, matcher, opts, cb), options, callback)

    def hear(
        self,
        regex: re.Pattern[str] | str,
        options: ListenerOptions | ListenerCallback | None = None,
        callback: ListenerCallback | None = None,
    ) -> Any:
        """Add a listener matching ``regex`` anywhere in message text."""
        return self._register(lambda opts, cb: TextListener(self, regex, opts, cb), options, callback)

    def respond(
        self,
        regex: re.Pattern[str] | str,
        options: ListenerOptions | ListenerCallback | None = None,
        callback: ListenerCallback | None = None,
    ) -> Any:
        """Add a listener for messages addressed to the robot by name or alias."""
        return self.hear(self.respond_pattern(regex), options, callback)

    def enter(self, options: ListenerOptions | ListenerCallback | None = None, callback: ListenerCallback | None = None) -> Any:
        return self.listen(lambda msg: isinstance(msg, EnterMessage), options, callback)

    def leave(self, options: ListenerOptions | ListenerCallback | None = None, callback: ListenerCallback | None = None) -> Any:
        return self.listen(lambda msg: isinstance(msg, LeaveMessage), options, callback)

    def topic(self, options: ListenerOptions | ListenerCallback | None = None, callback: ListenerCallback | None = None) -> Any:
        return self.listen(lambda msg: isinstance(msg, TopicMessage), options, callback)

    def catch_all(self, options: ListenerOptions | ListenerCallback | None = None, callback: ListenerCallback | None = None) -> Any:
        """Add a listener that runs when no other listener executed.

        The callback's response carries the original message, not the
        catch-all wrapper.
        """

        def wrap(fn: ListenerCallback) -> ListenerCallback:
            def unwrapped(res: Response) -> Any:
                return fn(self.response_class(self, res.message.inner, res.match))

            return unwrapped

        if callback is None and callable(options):
            options, callback = None, options
        if callback is None:
            def decorator(fn: ListenerCallback) -> ListenerCallback:
                self.listen(_is_catch_all, options, wrap(fn))
                return fn

            return decorator
        return self.listen(_is_catch_all, options, wrap(callback))

    def _register(
        self,
        factory: Callable[[ListenerOptions | None, ListenerCallback], Listener],
        options: ListenerOptions | ListenerCallback | None,
        callback: ListenerCallback | None,
    ) -> Any:
        if callback is None and callable(options):
            options, callback = None, options
        if callback is None:
            def decorator(fn: ListenerCallback) -> ListenerCallback:
                self._listeners.append(factory(options, fn))
                return fn

            return decorator
        listener = factory(options, callback)
        self._listeners.append(listener)
        return listener

    def listener_middleware(self, interceptor: Interceptor) -> Interceptor:
        """Run ``interceptor`` after a listener matched, before its callback."""
        return self.middleware.listener.register(interceptor)

    def response_middleware(self, interceptor: Interceptor) -> Interceptor:
        """Run ``interceptor`` before outbound strings reach the adapter."""
        return self.middleware.response.register(interceptor)

    def receive_middleware(self, interceptor: Interceptor) -> Interceptor:
        """Run ``interceptor`` before any listener is tried."""
        return self.middleware.receive.register(interceptor)

    def error(self, handler: ErrorHandler) -> ErrorHandler:
        """Register ``handler(error, response)`` for errors trapped during dispatch."""
        return self.errors.register(handler)

    # ── Respond pattern ──────────────────────────────────────────────

    def respond_pattern(self, regex: re.Pattern[str] | str) -> re.Pattern[str]:
        """Build a regex that only matches messages addressed to the robot.

        The robot's name (and alias, when set) must lead the message,
        optionally preceded by ``@`` and followed by ``:`` or ``,``.
        """
        compiled = re.compile(regex) if isinstance(regex, str) else regex
        # inline flags are only legal at the start; compiled.flags keeps them
        pattern = _INLINE_FLAGS_RE.sub("", compiled.pattern)

        if pattern.startswith("^"):
            logger.warning("Anchors don't work well with respond, perhaps you want to use 'hear'")
            logger.warning("The regex in question was {!r}", pattern)

        name = _escape_name(self.name)
        if not self.alias:
            return re.compile(rf"^\s*[@]?{name}[:,]?\s*(?:{pattern})", compiled.flags)

        alias = _escape_name(self.alias)
        # the longer of name/alias goes first so a shorter prefix cannot win
        first, second = (name, alias) if len(name) > len(alias) else (alias, name)
        return re.compile(rf"^\s*[@]?(?:{first}[:,]?|{second}[:,]?)\s*(?:{pattern})", compiled.flags)

    # ── Dispatch ─────────────────────────────────────────────────────

    async def receive(self, message: Message, callback: Callable[[bool], Any] | None = None) -> bool:
        """Run receive middleware over ``message``, then try the listeners.

        Returns ``False`` when receive middleware aborted, ``True`` otherwise.
        ``callback`` is invoked with the same value once processing is done.
        """
        self._metric("messages_received", labels=(("kind", message.kind),))
        started = time.perf_counter()
        ctx = ReceiveContext(response=self.response_class(self, message))
        completed = await self.middleware.receive.execute(ctx, self.process_listeners, callback)
        if self.telemetry is not None:
            self.telemetry.timing(
                "receive_duration_seconds",
                time.perf_counter() - started,
                labels=(("kind", message.kind),),
            )
        return completed

    async def process_listeners(self, ctx: ReceiveContext) -> None:
        """Try listeners in registration order until one executes.

        ``message.done`` is checked after each attempt and ends the search
        early.  The catch-all fallback depends only on whether a listener
        executed.
        """
        message = ctx.response.message
        any_executed = False

        for listener in list(self._listeners):
            try:
                executed = await listener.call(message, self.middleware.listener)
            except Exception as exc:
                await self.emit("error", exc, self.response_class(self, message))
                executed = False

            # yield between attempts so a long registry does not starve the loop
            await asyncio.sleep(0)

            if executed:
                any_executed = True
                self._metric("listener_executed", labels=(("listener", str(listener.id)),))
                break
            if message.done:
                break

        if any_executed:
            return
        if isinstance(message, CatchAllMessage):
            self._metric("catch_all_unhandled")
            return

        logger.debug("No listeners executed; falling back to catch-all")
        self._metric("catch_all_dispatch", labels=(("kind", message.kind),))
        await self.receive(CatchAllMessage.wrap(message))

    async def _report_error(self, error: BaseException, response: Response | None) -> None:
        await self.emit("error", error, response)

    # ── Outbound helpers ─────────────────────────────────────────────

    async def send(self, envelope: Envelope, *strings: str) -> None:
        await self._require_adapter().send(envelope, *strings)

    async def reply(self, envelope: Envelope, *strings: str) -> None:
        await self._require_adapter().reply(envelope, *strings)

    async def message_room(self, room: str, *strings: str) -> None:
        """Send ``strings`` to ``room`` without an originating message."""
        await self._require_adapter().send(Envelope(room=room), *strings)

    def _require_adapter(self) -> Adapter:
        if self.adapter is None:
            raise RuntimeError("robot has no adapter")
        return self.adapter

    # ── Events ───────────────────────────────────────────────────────

    def on(self, event: str, handler: EventHandler) -> EventHandler:
        return self.events.on(event, handler)

    async def emit(self, event: str, *args: Any) -> bool:
        if event == "error":
            self._metric("dispatch_error")
        return await self.events.emit(event, *args)

    # ── Lifecycle ────────────────────────────────────────────────────

    async def run(self) -> None:
        """Start the adapter; unhandled task errors go to the error hook meanwhile."""
        adapter = self._require_adapter()
        self._install_exception_hook()
        await self.emit("running")
        await adapter.run()

    async def shutdown(self) -> None:
        self._remove_exception_hook()
        if self.adapter is not None:
            await self.adapter.close()
        await self.brain.close()

    def _install_exception_hook(self) -> None:
        loop = asyncio.get_running_loop()
        self._loop = loop
        self._previous_exception_handler = loop.get_exception_handler()
        loop.set_exception_handler(self._on_loop_exception)

    def _remove_exception_hook(self) -> None:
        if self._loop is None:
            return
        self._loop.set_exception_handler(self._previous_exception_handler)
        self._loop = None
        self._previous_exception_handler = None

    def _on_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        error = context.get("exception") or RuntimeError(context.get("message", "unhandled loop error"))
        loop.create_task(self.emit("error", error, None))

    def _metric(self, name: str, labels: tuple[tuple[str, str], ...] = ()) -> None:
        if self.telemetry is not None:
            self.telemetry.incr(name, labels=labels)
