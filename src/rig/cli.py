"""Rig command-line interface."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer

from . import __version__
from .config import CommonConfig, Config, ConfigError, load_config
from .errors import RigError
from .graph import ModuleGraph
from .identifiers import ModuleId
from .logging import configure_logging

app = typer.Typer(help="Rig asynchronous module loader.")
LOGGER = logging.getLogger(__name__)


@dataclass
class CLIState:
    """Stores shared CLI options."""

    config_path: Path | None
    log_level: str | None = None


@app.callback()
def _rig(
    ctx: typer.Context,
    config: Annotated[
        Path | None,
        typer.Option(
            "-c",
            "--config",
            help="Path to loader config (env RIG_CONFIG or ./rig.yaml).",
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Override the configured log level (debug, info, warning, error).",
        ),
    ] = None,
) -> None:
    """Capture global CLI options."""

    resolved = config.expanduser() if config else None
    ctx.obj = CLIState(config_path=resolved, log_level=log_level)


@app.command()
def run(
    ctx: typer.Context,
    entry: Annotated[
        Path,
        typer.Argument(help="Program entry module; its directory becomes the loader root."),
    ],
) -> None:
    """Load ENTRY and everything it depends on."""

    state = _state(ctx)
    config = _load_environment(state)
    entry = entry.expanduser()
    if not entry.is_file():
        typer.secho(f"Entry module not found: {entry}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    try:
        asyncio.run(_run_program(entry, config))
    except ConfigError as exc:
        _config_failure(exc)
    except RigError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from exc


@app.command()
def resolve(
    ctx: typer.Context,
    ids: Annotated[list[str], typer.Argument(help="Module ids to normalise.")],
) -> None:
    """Print the canonical id and URL of each module id."""

    state = _state(ctx)
    config = _load_environment(state)
    common = CommonConfig()
    try:
        config.apply(common)
    except ConfigError as exc:
        _config_failure(exc)

    for raw in ids:
        try:
            module_id = ModuleId(raw, common)
            line = f"{raw} -> {module_id.canonical} -> {module_id.url}"
        except RigError as exc:
            typer.secho(str(exc), fg=typer.colors.RED, err=True)
            raise typer.Exit(1) from exc
        typer.echo(line)


@app.command()
def version() -> None:
    """Print the installed version."""

    typer.echo(__version__)


async def _run_program(entry: Path, config: Config) -> list[Any]:
    common = CommonConfig(root=entry.resolve().parent.as_posix())
    config.apply(common)
    graph = ModuleGraph(common)
    name = entry.stem if entry.suffix == common.default_extension else entry.name

    LOGGER.info("Running %s", entry)
    future = graph.require([name])
    await graph.wait_idle()
    if not future.done():
        future.cancel()
        stuck = ", ".join(graph.pending()) or name
        raise RigError(f"Program never finished loading; still pending: {stuck}")
    return future.result()


def _state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise RuntimeError("CLI state missing from context.")
    return state


def _load_environment(state: CLIState) -> Config:
    config = _load_config(state.config_path)
    try:
        configure_logging(config.logging, state.log_level)
    except ConfigError as exc:
        _config_failure(exc)
    return config


def _load_config(path: Path | None) -> Config:
    try:
        return load_config(path)
    except ConfigError as exc:  # pragma: no cover - exercised via CLI tests
        _config_failure(exc)


def _config_failure(exc: ConfigError) -> NoReturn:
    typer.secho(f"Configuration error: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(2) from exc


def main() -> None:  # pragma: no cover - delegated to Typer
    app()


__all__ = ["app", "main"]
