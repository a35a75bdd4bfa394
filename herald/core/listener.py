"""Listeners: a matcher paired with a callback.

Matchers come in two variants behind one ``attempt(message)`` contract:

* :class:`PredicateMatcher` wraps an arbitrary ``message -> truthy`` function,
* :class:`RegexMatcher` searches the text of text messages and keeps the
  ``re.Match`` so capture groups reach the callback.
"""

from __future__ import annotations

import inspect
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, TypeAlias

from loguru import logger

from herald.core.message import Message, TextMessage
from herald.core.middleware import ListenerContext, MiddlewareChain
from herald.core.response import Response

if TYPE_CHECKING:
    from herald.core.robot import Robot

ListenerCallback: TypeAlias = Callable[[Response], Any]
ListenerOptions: TypeAlias = dict[str, Any]


@dataclass(frozen=True, slots=True)
class MatchOutcome:
    """Result of one matcher attempt."""

    matched: bool
    match: Any = None
    """``re.Match`` for regex matchers, the predicate's return value otherwise."""


NO_MATCH = MatchOutcome(matched=False)


class Matcher(Protocol):
    def attempt(self, message: Message) -> MatchOutcome: ...


class PredicateMatcher:
    """Matches when ``predicate(message)`` returns a truthy value."""

    __slots__ = ("predicate",)

    def __init__(self, predicate: Callable[[Message], Any]) -> None:
        self.predicate = predicate

    def attempt(self, message: Message) -> MatchOutcome:
        result = self.predicate(message)
        if not result:
            return NO_MATCH
        return MatchOutcome(matched=True, match=result)

    def __repr__(self) -> str:
        return f"PredicateMatcher({getattr(self.predicate, '__name__', self.predicate)!r})"


class RegexMatcher:
    """Matches text messages whose text contains ``regex``."""

    __slots__ = ("regex",)

    def __init__(self, regex: re.Pattern[str] | str) -> None:
        self.regex = re.compile(regex) if isinstance(regex, str) else regex

    def attempt(self, message: Message) -> MatchOutcome:
        if not isinstance(message, TextMessage):
            return NO_MATCH
        found = message.match(self.regex)
        if found is None:
            return NO_MATCH
        return MatchOutcome(matched=True, match=found)

    def __repr__(self) -> str:
        return f"RegexMatcher({self.regex.pattern!r})"


def _split_options(
    options: ListenerOptions | ListenerCallback | None,
    callback: ListenerCallback | None,
) -> tuple[ListenerOptions, ListenerCallback | None]:
    """Allow ``options`` to be omitted: ``listen(matcher, callback)``."""
    if callback is None and callable(options):
        return {}, options
    return dict(options or {}), callback


class Listener:
    """A matcher and the callback to run when it matches."""

    def __init__(
        self,
        robot: Robot,
        matcher: Matcher | Callable[[Message], Any],
        options: ListenerOptions | ListenerCallback | None = None,
        callback: ListenerCallback | None = None,
    ) -> None:
        options, callback = _split_options(options, callback)
        if callback is None:
            raise ValueError("missing a callback for Listener")

        self.robot = robot
        self.matcher: Matcher = matcher if hasattr(matcher, "attempt") else PredicateMatcher(matcher)
        self.options = options
        self.options.setdefault("id", None)
        self.callback = callback

    @property
    def id(self) -> str | None:
        return self.options.get("id")

    async def call(
        self,
        message: Message,
        middleware: MiddlewareChain[ListenerContext] | None = None,
        callback: Callable[[bool], Any] | None = None,
    ) -> bool:
        """Try this listener against ``message``.

        Returns whether the listener executed: the matcher succeeded and the
        listener middleware let the callback run.  A callback that raises is
        reported to the robot's error hook and still counts as executed.
        Exceptions from the matcher propagate to the caller.
        """
        outcome = self.matcher.attempt(message)
        if not outcome.matched:
            executed = False
        else:
            logger.debug("Message '{}' matched {}; options={}", message, self.matcher, self.options)
            chain = middleware if middleware is not None else MiddlewareChain("listener")
            response = self.robot.response_class(self.robot, message, outcome.match)
            executed = await chain.execute(ListenerContext(listener=self, response=response), self._execute)

        if callback is not None:
            result = callback(executed)
            if inspect.isawaitable(result):
                await result
        return executed

    async def _execute(self, ctx: ListenerContext) -> None:
        logger.debug("Executing listener callback for message '{}'", ctx.response.message)
        try:
            result = self.callback(ctx.response)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            await self.robot.emit("error", exc, ctx.response)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, matcher={self.matcher!r})"


class TextListener(Listener):
    """Listener whose matcher is a regular expression over message text."""

    def __init__(
        self,
        robot: Robot,
        regex: re.Pattern[str] | str,
        options: ListenerOptions | ListenerCallback | None = None,
        callback: ListenerCallback | None = None,
    ) -> None:
        matcher = RegexMatcher(regex)
        self.regex = matcher.regex
        super().__init__(robot, matcher, options, callback)
