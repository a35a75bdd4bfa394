from __future__ import annotations

from herald.core.errors import ErrorHooks
from herald.core.events import EventEmitter


async def test_emit_runs_sync_and_async_handlers_in_order() -> None:
    emitter = EventEmitter()
    seen: list[str] = []

    async def second(value: str) -> None:
        seen.append(f"async:{value}")

    emitter.on("ping", lambda value: seen.append(f"sync:{value}"))
    emitter.on("ping", second)

    assert await emitter.emit("ping", "x") is True
    assert seen == ["sync:x", "async:x"]
    assert await emitter.emit("nobody") is False


async def test_once_handler_fires_a_single_time() -> None:
    emitter = EventEmitter()
    seen: list[int] = []
    emitter.once("tick", seen.append)

    await emitter.emit("tick", 1)
    await emitter.emit("tick", 2)

    assert seen == [1]
    assert emitter.listener_count("tick") == 0


async def test_raising_handler_does_not_stop_others() -> None:
    emitter = EventEmitter()
    seen: list[str] = []

    def broken() -> None:
        raise RuntimeError("nope")

    emitter.on("go", broken)
    emitter.on("go", lambda: seen.append("ok"))

    await emitter.emit("go")

    assert seen == ["ok"]


async def test_error_hooks_deliver_to_every_handler() -> None:
    received: list[tuple[BaseException, object]] = []
    hooks = ErrorHooks([lambda err, res: received.append((err, res))])

    @hooks.register
    async def second(err: BaseException, res: object) -> None:
        received.append((err, "second"))

    error = ValueError("x")
    await hooks.report(error)

    assert len(hooks) == 2
    assert received == [(error, None), (error, "second")]
