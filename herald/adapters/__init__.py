"""Adapters binding the robot to chat sources."""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any

from loguru import logger

from herald.adapters.base import Adapter
from herald.adapters.shell import ShellAdapter
from herald.core.errors import AdapterLoadError

if TYPE_CHECKING:
    from herald.core.robot import Robot

BUILTIN_ADAPTERS: dict[str, type[Adapter]] = {
    "shell": ShellAdapter,
}


def resolve_adapter(name: str) -> type[Adapter]:
    """Resolve a builtin adapter name or a ``module:Class`` path."""
    if name in BUILTIN_ADAPTERS:
        return BUILTIN_ADAPTERS[name]

    module_name, _, class_name = name.partition(":")
    if not class_name:
        raise AdapterLoadError(
            f"Unknown adapter {name!r}; use one of {sorted(BUILTIN_ADAPTERS)} or 'module:Class'"
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise AdapterLoadError(f"Cannot import adapter module {module_name!r}: {e}") from e

    adapter_cls = getattr(module, class_name, None)
    if not isinstance(adapter_cls, type) or not issubclass(adapter_cls, Adapter):
        raise AdapterLoadError(f"{name!r} is not an Adapter subclass")
    return adapter_cls


def load_adapter(name: str, robot: Robot, **options: Any) -> Adapter:
    """Instantiate adapter ``name`` for ``robot`` and attach it."""
    logger.debug("Loading adapter {}", name)
    adapter = resolve_adapter(name)(robot, **options)
    robot.adapter = adapter
    return adapter


__all__ = ["Adapter", "AdapterLoadError", "BUILTIN_ADAPTERS", "ShellAdapter", "load_adapter", "resolve_adapter"]
