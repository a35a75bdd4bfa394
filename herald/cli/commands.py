"""CLI commands for herald."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from loguru import logger
from rich.table import Table

from herald import __logo__
from herald.config.schema import Config
from herald.core.errors import AdapterLoadError, ScriptLoadError
from herald.core.robot import Robot

from .core import app, console, resolve_config


def build_robot(config: Config) -> Robot:
    """Create a robot and attach the configured adapter."""
    from herald.adapters import load_adapter
    from herald.telemetry import InMemoryTelemetry

    robot = Robot(name=config.name, alias=config.alias, telemetry=InMemoryTelemetry())
    options: dict[str, object] = {}
    if config.adapter == "shell":
        options = config.shell.model_dump()
    load_adapter(config.adapter, robot, **options)
    return robot


async def load_all_scripts(robot: Robot, config: Config) -> list[str]:
    from herald.scripts import BUILTIN_SCRIPTS_PATH, load_scripts

    return await load_scripts(robot, [BUILTIN_SCRIPTS_PATH, *config.scripts])


# ============================================================================
# Run
# ============================================================================


@app.command()
def run(
    name: str = typer.Option(None, "--name", "-n", help="Robot name"),
    alias: str = typer.Option(None, "--alias", help="Alternative name the robot answers to"),
    adapter: str = typer.Option(None, "--adapter", "-a", help="Adapter name or module:Class"),
    scripts: list[str] = typer.Option(None, "--scripts", "-s", help="Extra script file or directory"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
    log_level: str = typer.Option(None, "--log-level", "-l", help="Console log level"),
):
    """Start the robot on its adapter."""
    from herald.utils.logging import configure_logging

    config = resolve_config(
        config_path, name=name, alias=alias, adapter=adapter, scripts=scripts, log_level=log_level
    )
    configure_logging(config.log_level, config.log_file)

    try:
        failures = asyncio.run(_run_robot(config))
    except AdapterLoadError as e:
        console.print(f"[red]Cannot load adapter:[/red] {e}")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\nGoodbye!")
        return

    if failures:
        for failure in failures:
            console.print(f"[red]{failure}[/red]")
        raise typer.Exit(1)


async def _run_robot(config: Config) -> list[ScriptLoadError]:
    robot = build_robot(config)
    failures: list[ScriptLoadError] = []

    async def on_connected() -> None:
        try:
            loaded = await load_all_scripts(robot, config)
            logger.info(f"Loaded {len(loaded)} script(s), {len(robot.listeners)} listener(s)")
        except ScriptLoadError as e:
            failures.append(e)
            await robot.shutdown()

    robot.adapter.once("connected", on_connected)
    console.print(f"{__logo__} {robot.name} is listening (type 'exit' to quit)\n")
    try:
        await robot.run()
    finally:
        await robot.shutdown()
    return failures


# ============================================================================
# Check
# ============================================================================


@app.command()
def check(
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
    scripts: list[str] = typer.Option(None, "--scripts", "-s", help="Extra script file or directory"),
):
    """Load scripts without connecting and list the registered listeners."""
    config = resolve_config(config_path, scripts=scripts)

    try:
        robot = build_robot(config)
        loaded = asyncio.run(load_all_scripts(robot, config))
    except (AdapterLoadError, ScriptLoadError) as e:
        console.print(f"[red]Check failed:[/red] {e}")
        raise typer.Exit(1)

    table = Table(title=f"{robot.name}: {len(robot.listeners)} listener(s) from {len(loaded)} script(s)")
    table.add_column("#", style="dim")
    table.add_column("Type", style="cyan")
    table.add_column("ID", style="green")
    table.add_column("Matcher", style="yellow")
    for index, listener in enumerate(robot.listeners, start=1):
        table.add_row(str(index), type(listener).__name__, listener.id or "-", repr(listener.matcher))
    console.print(table)
    console.print(
        f"Middleware: receive={len(robot.middleware.receive)} "
        f"listener={len(robot.middleware.listener)} response={len(robot.middleware.response)}"
    )


# ============================================================================
# Onboard
# ============================================================================


@app.command()
def onboard():
    """Write a default herald configuration."""
    from herald.config.loader import get_config_path, save_config

    config_path = get_config_path()
    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    save_config(Config())
    console.print(f"[green]✓[/green] Created config at {config_path}")
    console.print(f"\n{__logo__} herald is ready!")
    console.print("\nNext steps:")
    console.print("  1. Put scripts defining [cyan]setup(robot)[/cyan] in ./scripts")
    console.print("  2. Chat: [cyan]herald run[/cyan]")


if __name__ == "__main__":
    app()
