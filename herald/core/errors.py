"""Error taxonomy and the error-handler collaborator."""

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeAlias

from loguru import logger

if TYPE_CHECKING:
    from herald.core.response import Response

ErrorHandler: TypeAlias = Callable[[BaseException, "Response | None"], Any]


class HeraldError(Exception):
    """Base class for setup-time errors raised by herald."""


class ScriptLoadError(HeraldError):
    """A script module could not be imported or set up."""


class AdapterLoadError(HeraldError):
    """An adapter name could not be resolved to an adapter class."""


class ErrorHooks:
    """Registered handlers of last resort for errors trapped during dispatch.

    The robot receives one instance at construction and funnels every matcher,
    callback and middleware failure through :meth:`report`.  Handlers are
    called as ``handler(error, response)``; ``response`` is ``None`` when the
    error is not tied to a message.
    """

    def __init__(self, handlers: list[ErrorHandler] | None = None) -> None:
        self._handlers: list[ErrorHandler] = list(handlers or [])

    def register(self, handler: ErrorHandler) -> ErrorHandler:
        self._handlers.append(handler)
        return handler

    def __len__(self) -> int:
        return len(self._handlers)

    async def report(self, error: BaseException, response: Response | None = None) -> None:
        """Log ``error`` and deliver it once to every handler; never raises."""
        logger.opt(exception=error).error("Dispatch error: {}", error)

        for handler in list(self._handlers):
            try:
                result = handler(error, response)
                if inspect.isawaitable(result):
                    await result
            except Exception as handler_error:
                logger.opt(exception=handler_error).error(
                    "while invoking error handler: {}", handler_error
                )
