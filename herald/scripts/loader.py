"""Script discovery and loading.

A script is a Python module (or package directory) exposing
``setup(robot)``.  The function registers listeners and middleware; it may be
a coroutine function.
"""

from __future__ import annotations

import hashlib
import importlib.util
import inspect
import sys
from collections.abc import Iterable
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING

from loguru import logger

from herald.core.errors import ScriptLoadError

if TYPE_CHECKING:
    from herald.core.robot import Robot

BUILTIN_SCRIPTS_PATH = Path(__file__).parent / "builtin"
ACCEPTED_SUFFIXES = (".py",)
_SILENT_SUFFIXES = (".pyc", ".pyo", ".md", ".txt")


async def load_scripts(robot: Robot, paths: Iterable[str | Path], base_dir: Path | None = None) -> list[str]:
    """Load every script found under ``paths``; return the loaded module names.

    Relative paths are resolved against ``base_dir`` (default: the working
    directory).  Missing paths are skipped.  Directory entries load in sorted
    order; names starting with ``_`` or ``.`` are ignored.
    """
    base = base_dir or Path.cwd()
    loaded: list[str] = []
    for raw in paths:
        path = Path(raw).expanduser()
        if not path.is_absolute():
            path = base / path
        if not path.exists():
            logger.debug("No scripts found at {}", path)
            continue

        logger.debug("Loading scripts from {}", path)
        if path.is_file():
            candidates = [path]
        else:
            candidates = [p for p in sorted(path.iterdir()) if not p.name.startswith(("_", "."))]

        for candidate in candidates:
            name = await load_file(robot, candidate)
            if name is not None:
                loaded.append(name)
    return loaded


async def load_file(robot: Robot, path: Path) -> str | None:
    """Import one script and call its ``setup(robot)``.

    Returns the module name, or ``None`` when the file was skipped.

    Raises:
        ScriptLoadError: The module failed to import or its setup raised.
    """
    if path.is_dir():
        init = path / "__init__.py"
        if not init.exists():
            return None
        module = _import(path.name, init, package_dir=path)
    elif path.suffix in ACCEPTED_SUFFIXES:
        module = _import(path.stem, path)
    else:
        if path.suffix not in _SILENT_SUFFIXES:
            logger.warning(f"{path.name} uses unsupported extension, only {', '.join(ACCEPTED_SUFFIXES)} are accepted")
        return None

    setup = getattr(module, "setup", None)
    if not callable(setup):
        logger.warning(f"Expected {path} to define setup(robot), got {type(setup).__name__}")
        return None

    try:
        result = setup(robot)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        raise ScriptLoadError(f"Unable to set up {path}: {e}") from e

    logger.debug("Loaded script {}", module.__name__)
    return module.__name__


def _import(stem: str, file: Path, package_dir: Path | None = None) -> ModuleType:
    digest = hashlib.sha1(str(file.resolve()).encode()).hexdigest()[:8]
    module_name = f"herald_script_{stem}_{digest}"
    spec = importlib.util.spec_from_file_location(
        module_name,
        file,
        submodule_search_locations=[str(package_dir)] if package_dir is not None else None,
    )
    if spec is None or spec.loader is None:
        raise ScriptLoadError(f"Unable to load {file}: no import spec")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        sys.modules.pop(module_name, None)
        raise ScriptLoadError(f"Unable to load {file}: {e}") from e
    return module
