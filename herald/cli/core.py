"""Shared CLI application context and setup helpers."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from herald import __logo__, __version__
from herald.config.loader import load_config
from herald.config.schema import Config

app = typer.Typer(
    name="herald",
    help=f"{__logo__} herald - chat message dispatch framework",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"{__logo__} herald v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(None, "--version", "-v", callback=version_callback, is_eager=True),
) -> None:
    """herald - chat message dispatch framework."""


def resolve_config(
    config_path: Path | None,
    *,
    name: str | None = None,
    alias: str | None = None,
    adapter: str | None = None,
    scripts: list[str] | None = None,
    log_level: str | None = None,
) -> Config:
    """Load config from file/env, then apply command-line overrides."""
    config = load_config(config_path)
    overrides: dict[str, object] = {}
    if name:
        overrides["name"] = name
    if alias is not None:
        overrides["alias"] = alias
    if adapter:
        overrides["adapter"] = adapter
    if scripts:
        overrides["scripts"] = [*config.scripts, *scripts]
    if log_level:
        overrides["log_level"] = log_level
    if not overrides:
        return config
    try:
        return Config.model_validate({**config.model_dump(), **overrides})
    except ValueError as e:
        console.print(f"[red]Invalid option:[/red] {e}")
        raise typer.Exit(1)
