"""Dispatch core: messages, listeners, middleware and the robot."""

from herald.core.brain import Brain
from herald.core.errors import AdapterLoadError, ErrorHooks, HeraldError, ScriptLoadError
from herald.core.listener import (
    Listener,
    MatchOutcome,
    PredicateMatcher,
    RegexMatcher,
    TextListener,
)
from herald.core.message import (
    CatchAllMessage,
    EnterMessage,
    Envelope,
    LeaveMessage,
    Message,
    TextMessage,
    TopicMessage,
    User,
)
from herald.core.middleware import (
    Flow,
    ListenerContext,
    MiddlewareChain,
    ReceiveContext,
    ResponseContext,
)
from herald.core.response import Response
from herald.core.robot import Robot

__all__ = [
    "AdapterLoadError",
    "Brain",
    "CatchAllMessage",
    "EnterMessage",
    "Envelope",
    "ErrorHooks",
    "Flow",
    "HeraldError",
    "LeaveMessage",
    "Listener",
    "ListenerContext",
    "MatchOutcome",
    "Message",
    "MiddlewareChain",
    "PredicateMatcher",
    "ReceiveContext",
    "RegexMatcher",
    "Response",
    "ResponseContext",
    "Robot",
    "ScriptLoadError",
    "TextListener",
    "TextMessage",
    "TopicMessage",
    "User",
]
