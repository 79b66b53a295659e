"""
Command-line interface for task-optimizer.

Temporarily retunes host performance settings for a demanding task and
restores the original values afterwards.
"""

from __future__ import annotations

import logging
from typing import NoReturn, Optional

import typer

from topt_common.api import TaskOptimizerError, error_to_payload
from topt_ui import __version__
from topt_ui.presenters.optimizer import (
    render_help,
    render_start_report,
    render_status_report,
    render_stop_report,
)
from topt_ui.wiring import UIContext, configure_logging

APP_NAME = "Task Optimizer"

logger = logging.getLogger(__name__)

ctx_store = UIContext()

app = typer.Typer(
    help="Optimize system resources for a task and restore the original state afterwards.",
    no_args_is_help=True,
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"task-optimizer {__version__}")
        raise typer.Exit()


def _fail(exc: TaskOptimizerError) -> NoReturn:
    logger.debug("Command failed: %s", error_to_payload(exc), exc_info=exc.__cause__ is not None)
    if exc.fatal:
        ctx_store.ui.show_error(f"Error: {exc}")
    else:
        ctx_store.ui.show_warning(str(exc))
    raise typer.Exit(exc.exit_code)


@app.callback(invoke_without_command=True)
def entry(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging."),
    headless: bool = typer.Option(
        False,
        "--headless",
        help="Force plain-text output (useful in scripts and CI).",
    ),
    non_interactive: bool = typer.Option(
        False,
        "--non-interactive",
        help="Never prompt for a sudo password; skip privileged changes instead.",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """Global entry point handling output mode and privilege prompting."""
    configure_logging(debug=debug, force=True)
    ctx_store.headless = ctx_store.headless or headless
    ctx_store.interactive = ctx_store.interactive and not non_interactive

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command("start")
def start(
    task: str = typer.Argument(..., help="Description of the task to optimize for."),
) -> None:
    """Capture the current state and optimize the system for TASK."""
    try:
        report = ctx_store.service.start(task)
    except TaskOptimizerError as exc:
        _fail(exc)
    render_start_report(ctx_store.ui, report)


@app.command("stop")
def stop() -> None:
    """Restore the state captured by the last start."""
    try:
        report = ctx_store.service.stop()
    except TaskOptimizerError as exc:
        _fail(exc)
    render_stop_report(ctx_store.ui, report)


@app.command("status")
def status() -> None:
    """Show whether an optimization is active and the current settings."""
    try:
        with ctx_store.ui.status("Reading system settings"):
            report = ctx_store.service.status()
    except TaskOptimizerError as exc:
        _fail(exc)
    render_status_report(ctx_store.ui, report)


@app.command("help")
def help_command() -> None:
    """Show usage, features and examples."""
    render_help(ctx_store.ui, APP_NAME, __version__)


def main() -> None:
    """Console script entrypoint (Typer app)."""
    app()


if __name__ == "__main__":
    main()
