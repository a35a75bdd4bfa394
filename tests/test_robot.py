from __future__ import annotations

import asyncio
import re
from typing import Any

import pytest
from loguru import logger

from herald.adapters.base import Adapter
from herald.core.message import (
    CatchAllMessage,
    EnterMessage,
    Envelope,
    LeaveMessage,
    TextMessage,
    TopicMessage,
    User,
)
from herald.core.middleware import Flow, ListenerContext, ReceiveContext
from herald.core.response import Response
from herald.core.robot import Robot
from herald.telemetry import InMemoryTelemetry


def _text(body: str, user: User | None = None) -> TextMessage:
    return TextMessage(user=user or User(id="1", name="dave", room="lobby"), text=body)


# ── Dispatch ordering ────────────────────────────────────────────────────


async def test_first_executed_listener_wins(robot: Robot) -> None:
    calls: list[str] = []
    robot.hear(r"hello", lambda res: calls.append("first"))
    robot.hear(r"hello", lambda res: calls.append("second"))

    assert await robot.receive(_text("hello")) is True
    assert calls == ["first"]


async def test_listeners_tried_in_registration_order(robot: Robot) -> None:
    tried: list[str] = []

    def matcher(name: str):
        def attempt(msg: Any) -> bool:
            tried.append(name)
            return name == "c"

        return attempt

    for name in ("a", "b", "c", "d"):
        robot.listen(matcher(name), lambda res: None)

    await robot.receive(_text("anything"))

    assert tried == ["a", "b", "c"]


async def test_aborted_listener_does_not_stop_iteration(robot: Robot) -> None:
    calls: list[str] = []
    robot.hear(r"x", {"id": "blocked"}, lambda res: calls.append("blocked"))
    robot.hear(r"x", {"id": "open"}, lambda res: calls.append("open"))

    @robot.listener_middleware
    def block(ctx: ListenerContext) -> Flow:
        return Flow.ABORT if ctx.listener.id == "blocked" else Flow.PROCEED

    await robot.receive(_text("x"))

    assert calls == ["open"]


async def test_receive_middleware_abort_skips_listeners(robot: Robot) -> None:
    calls: list[str] = []
    outcomes: list[bool] = []
    robot.hear(r".*", lambda res: calls.append("heard"))
    robot.receive_middleware(lambda ctx: Flow.ABORT)

    assert await robot.receive(_text("hi"), outcomes.append) is False
    assert calls == []
    assert outcomes == [False]


async def test_done_flag_stops_iteration_and_falls_back_to_catch_all(robot: Robot) -> None:
    calls: list[str] = []

    def finishing_matcher(msg: TextMessage) -> bool:
        msg.finish()
        return False

    robot.listen(finishing_matcher, lambda res: calls.append("finisher"))
    robot.hear(r"hi", lambda res: calls.append("later"))
    robot.catch_all(lambda res: calls.append("catch-all"))

    await robot.receive(_text("hi"))

    assert calls == ["catch-all"]


async def test_done_checked_after_each_attempt(robot: Robot) -> None:
    calls: list[str] = []
    robot.hear(r"nope", lambda res: calls.append("nope"))
    robot.hear(r"hi", lambda res: calls.append("heard"))
    robot.catch_all(lambda res: calls.append(f"catch-all:{res.message.done}"))

    @robot.receive_middleware
    def finish(ctx: ReceiveContext) -> Flow:
        if not isinstance(ctx.response.message, CatchAllMessage):
            ctx.response.message.finish()
        return Flow.PROCEED

    assert await robot.receive(_text("hi")) is True
    assert calls == ["catch-all:True"]


async def test_listener_middleware_finishing_and_aborting_gets_catch_all(robot: Robot) -> None:
    calls: list[str] = []
    robot.hear(r"open the doors", {"id": "doors"}, lambda res: calls.append("doors"))
    robot.hear(r"open", lambda res: calls.append("open"))
    robot.catch_all(lambda res: calls.append("catch-all"))

    @robot.listener_middleware
    def deny_doors(ctx: ListenerContext) -> Flow:
        if ctx.listener.id == "doors":
            ctx.response.finish()
            return Flow.ABORT
        return Flow.PROCEED

    await robot.receive(_text("open the doors"))

    assert calls == ["catch-all"]


# ── Catch-all ────────────────────────────────────────────────────────────


async def test_catch_all_fires_once_with_original_message(robot: Robot) -> None:
    seen: list[Response] = []
    robot.hear(r"never", lambda res: None)
    robot.catch_all(seen.append)
    robot.catch_all(seen.append)

    message = _text("unmatched")
    await robot.receive(message)

    assert len(seen) == 1
    assert seen[0].message is message
    assert not isinstance(seen[0].message, CatchAllMessage)


async def test_catch_all_skipped_when_a_listener_executed(robot: Robot) -> None:
    calls: list[str] = []
    robot.hear(r"hi", lambda res: calls.append("heard"))
    robot.catch_all(lambda res: calls.append("catch-all"))

    await robot.receive(_text("hi"))

    assert calls == ["heard"]


async def test_unhandled_catch_all_does_not_recurse(robot: Robot, telemetry: InMemoryTelemetry) -> None:
    await robot.receive(_text("nobody listens"))

    assert telemetry.get_counter("catch_all_dispatch", (("kind", "text"),)) == 1
    assert telemetry.get_counter("catch_all_unhandled") == 1
    assert telemetry.get_counter("messages_received", (("kind", "catch_all"),)) == 1


async def test_catch_all_aborted_by_listener_middleware_is_not_retried(
    robot: Robot, telemetry: InMemoryTelemetry
) -> None:
    robot.catch_all(lambda res: None)
    robot.listener_middleware(lambda ctx: Flow.ABORT)

    await robot.receive(_text("hi"))

    assert telemetry.get_counter("catch_all_dispatch", (("kind", "text"),)) == 1
    assert telemetry.get_counter("catch_all_unhandled") == 1


def test_catch_all_message_refuses_to_wrap_itself() -> None:
    inner = _text("x")
    wrapped = CatchAllMessage.wrap(inner)
    assert wrapped.inner is inner
    with pytest.raises(ValueError):
        CatchAllMessage.wrap(wrapped)


# ── Errors ───────────────────────────────────────────────────────────────


async def test_matcher_error_reported_once_and_next_listener_runs(robot: Robot) -> None:
    first: list[tuple[BaseException, Response | None]] = []
    second: list[BaseException] = []
    calls: list[str] = []
    robot.error(lambda err, res: first.append((err, res)))

    @robot.error
    async def async_handler(err: BaseException, res: Response | None) -> None:
        second.append(err)

    def broken(msg: TextMessage) -> bool:
        raise RuntimeError("matcher exploded")

    robot.listen(broken, lambda res: calls.append("broken"))
    robot.hear(r"hi", lambda res: calls.append("next"))

    message = _text("hi")
    await robot.receive(message)

    assert calls == ["next"]
    assert len(first) == 1
    assert str(first[0][0]) == "matcher exploded"
    assert first[0][1].message is message
    assert [str(e) for e in second] == ["matcher exploded"]


async def test_callback_error_reported_and_counts_as_executed(
    robot: Robot, telemetry: InMemoryTelemetry
) -> None:
    errors: list[BaseException] = []
    calls: list[str] = []
    robot.error(lambda err, res: errors.append(err))

    def broken(res: Response) -> None:
        raise ValueError("callback exploded")

    robot.hear(r"hi", broken)
    robot.hear(r"hi", lambda res: calls.append("second"))
    robot.catch_all(lambda res: calls.append("catch-all"))

    await robot.receive(_text("hi"))

    assert [str(e) for e in errors] == ["callback exploded"]
    assert calls == []
    assert telemetry.get_counter("dispatch_error") == 1


async def test_middleware_error_reported_with_response(robot: Robot) -> None:
    reported: list[tuple[BaseException, Response | None]] = []
    robot.error(lambda err, res: reported.append((err, res)))

    def broken(ctx: ReceiveContext) -> Flow:
        raise RuntimeError("middleware exploded")

    robot.receive_middleware(broken)
    message = _text("hi")

    assert await robot.receive(message) is False
    assert len(reported) == 1
    assert reported[0][1].message is message


async def test_failing_error_handler_does_not_escape(robot: Robot) -> None:
    later: list[BaseException] = []

    def bad_handler(err: BaseException, res: Response | None) -> None:
        raise RuntimeError("handler exploded")

    robot.error(bad_handler)
    robot.error(lambda err, res: later.append(err))
    robot.hear(r"hi", lambda res: 1 / 0)

    await robot.receive(_text("hi"))

    assert len(later) == 1
    assert isinstance(later[0], ZeroDivisionError)


# ── Concurrency ──────────────────────────────────────────────────────────


async def test_stalled_message_does_not_block_another(robot: Robot) -> None:
    gate = asyncio.Event()
    calls: list[str] = []

    @robot.receive_middleware
    async def stall(ctx: ReceiveContext) -> Flow:
        if str(ctx.response.message) == "slow":
            await gate.wait()
        return Flow.PROCEED

    robot.hear(r"slow|fast", lambda res: calls.append(res.message.text))

    slow = asyncio.create_task(robot.receive(_text("slow")))
    await asyncio.sleep(0)

    assert await robot.receive(_text("fast")) is True
    assert calls == ["fast"]

    gate.set()
    assert await slow is True
    assert calls == ["fast", "slow"]


# ── Registration API ─────────────────────────────────────────────────────


async def test_registration_methods_work_as_decorators(robot: Robot) -> None:
    seen: list[tuple[str | None, ...]] = []

    @robot.respond(r"open the (\w+) doors")
    async def open_doors(res: Response) -> None:
        seen.append(res.matches)

    assert len(robot.listeners) == 1
    await robot.receive(_text("Hal: open the pod doors"))

    assert seen == [("Hal: open the pod doors", "pod")]


async def test_hear_returns_listener_when_callback_given(robot: Robot) -> None:
    listener = robot.hear(r"x", {"id": "x-listener"}, lambda res: None)
    assert robot.listeners == (listener,)
    assert listener.id == "x-listener"


async def test_enter_leave_topic_listeners(robot: Robot) -> None:
    calls: list[str] = []
    robot.enter(lambda res: calls.append("enter"))
    robot.leave(lambda res: calls.append("leave"))
    robot.topic(lambda res: calls.append(f"topic:{res.message.text}"))

    user = User(id="1", name="dave", room="lobby")
    await robot.receive(EnterMessage(user=user))
    await robot.receive(LeaveMessage(user=user))
    await robot.receive(TopicMessage(user=user, text="pod bay status"))

    assert calls == ["enter", "leave", "topic:pod bay status"]


async def test_text_listeners_hear_topic_changes(robot: Robot) -> None:
    calls: list[str] = []
    robot.hear(r"status", lambda res: calls.append("heard"))

    await robot.receive(TopicMessage(user=User(id="1"), text="status report"))

    assert calls == ["heard"]


# ── Respond pattern ──────────────────────────────────────────────────────


def test_respond_pattern_with_name_only(robot: Robot) -> None:
    pattern = robot.respond_pattern(r"open the pod bay doors")

    assert pattern.search("Hal: open the pod bay doors")
    assert pattern.search("  @Hal, open the pod bay doors")
    assert pattern.search("Hal open the pod bay doors")
    assert not pattern.search("open the pod bay doors")
    assert not pattern.search("hey Hal open the pod bay doors")


def test_respond_pattern_with_alias_puts_longer_first() -> None:
    expected = r"^\s*[@]?(?:Hubot[:,]?|Hal[:,]?)\s*(?:ping)"

    assert Robot(name="Hubot", alias="Hal").respond_pattern(r"ping").pattern == expected
    assert Robot(name="Hal", alias="Hubot").respond_pattern(r"ping").pattern == expected

    pattern = Robot(name="Hubot", alias="Hal").respond_pattern(r"ping")
    assert pattern.search("Hal ping")
    assert pattern.search("Hubot: ping")


def test_respond_pattern_keeps_flags(robot: Robot) -> None:
    pattern = robot.respond_pattern(re.compile(r"ping", re.IGNORECASE))

    assert pattern.flags & re.IGNORECASE
    assert pattern.search("hal PING")


def test_respond_pattern_escapes_name() -> None:
    pattern = Robot(name="bot.v2").respond_pattern(r"ping")

    assert pattern.search("bot.v2 ping")
    assert not pattern.search("botXv2 ping")


def test_respond_pattern_warns_about_anchors(robot: Robot) -> None:
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="WARNING")
    try:
        robot.respond_pattern(r"^ping")
    finally:
        logger.remove(handler_id)

    assert any("Anchors don't work well with respond" in m for m in messages)
    assert any("^ping" in m for m in messages)


async def test_respond_accepts_leading_inline_flags(robot: Robot) -> None:
    calls: list[str] = []
    listener = robot.respond(r"(?i)open the door", lambda res: calls.append(res.message.text))

    assert listener.regex.pattern == r"^\s*[@]?Hal[:,]?\s*(?:open the door)"
    assert listener.regex.flags & re.IGNORECASE
    await robot.receive(_text("hal OPEN THE DOOR"))
    assert calls == ["hal OPEN THE DOOR"]


def test_respond_pattern_moves_every_inline_flag_group(robot: Robot) -> None:
    pattern = robot.respond_pattern(r"(?i)(?s)pod.bay")

    assert pattern.pattern == r"^\s*[@]?Hal[:,]?\s*(?:pod.bay)"
    assert pattern.flags & re.IGNORECASE
    assert pattern.flags & re.DOTALL


def test_respond_pattern_warns_about_anchor_after_inline_flags(robot: Robot) -> None:
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="WARNING")
    try:
        robot.respond_pattern(r"(?i)^ping")
    finally:
        logger.remove(handler_id)

    assert any("Anchors don't work well with respond" in m for m in messages)


# ── Outbound and lifecycle ───────────────────────────────────────────────


async def test_message_room_sends_without_origin(robot: Robot, adapter) -> None:
    await robot.message_room("lobby", "hello", "world")

    method, envelope, strings = adapter.sent[0]
    assert method == "send"
    assert envelope == Envelope(room="lobby")
    assert strings == ("hello", "world")


async def test_outbound_without_adapter_raises() -> None:
    with pytest.raises(RuntimeError, match="no adapter"):
        await Robot().send(Envelope(room="x"), "hi")


class _LoopErrorAdapter(Adapter):
    name = "loop-error"

    def __init__(self, robot: Robot, error: BaseException) -> None:
        super().__init__(robot)
        self.error = error

    async def send(self, envelope: Envelope, *strings: str) -> None:
        pass

    async def reply(self, envelope: Envelope, *strings: str) -> None:
        pass

    async def run(self) -> None:
        await self.connected()
        asyncio.get_running_loop().call_exception_handler({"message": "stray", "exception": self.error})
        await asyncio.sleep(0)
        await asyncio.sleep(0)

    async def close(self) -> None:
        pass


async def test_run_routes_unhandled_loop_errors_to_error_hook() -> None:
    robot = Robot()
    stray = RuntimeError("stray task failure")
    robot.adapter = _LoopErrorAdapter(robot, stray)
    reported: list[tuple[BaseException, Response | None]] = []
    robot.error(lambda err, res: reported.append((err, res)))
    events: list[str] = []
    robot.on("running", lambda: events.append("running"))

    loop = asyncio.get_running_loop()
    previous = loop.get_exception_handler()
    try:
        await robot.run()
    finally:
        await robot.shutdown()

    assert events == ["running"]
    assert reported == [(stray, None)]
    assert loop.get_exception_handler() is previous


async def test_shutdown_closes_adapter_and_brain(robot: Robot, adapter) -> None:
    closed: list[str] = []
    robot.brain.on("close", lambda: closed.append("brain"))

    await robot.shutdown()

    assert adapter.closed is True
    assert closed == ["brain"]
