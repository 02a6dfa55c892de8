"""CLI entry point for shellagent."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any

import click

from shellagent.cli.output import print_message
from shellagent.core.config import (
    ConfigError,
    CredentialMissing,
    load_config,
    load_environment,
    require_api_key,
)
from shellagent.permissions.approval import CommandConfirmer, StdinConfirmer
from shellagent.types.config import AgentConfig
from shellagent.types.messages import Result

EXIT_OK = 0
EXIT_SESSION_FAILED = 1
EXIT_NO_CREDENTIALS = 2
EXIT_EMPTY_GOAL = 3
EXIT_BAD_CONFIG = 4

GOAL_PROMPT = "Enter your goal (or press Enter to quit): "


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("goal", nargs=-1)
@click.option("--model", "-m", default=None, help="Model ID (default: gpt-5)")
@click.option("--max-turns", type=int, default=None, help="Maximum turns per goal")
@click.option("--temperature", type=float, default=None, help="Sampling temperature")
@click.option(
    "--safe/--unsafe", "safe", default=None,
    help="Ask before running each command (default: safe)",
)
@click.option("--yes", "-y", is_flag=True, default=False, help="Run commands without asking")
@click.option("--logs-dir", default=None, help="Directory for session logs")
@click.option("--base-url", default=None, help="OpenAI-compatible base URL")
@click.option("--api-key", default=None, help="OpenAI API key")
@click.option("--once", is_flag=True, default=False, help="Run a single goal, then exit")
@click.option("--rich/--no-rich", default=None, help="Rich terminal output (default: auto)")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging")
def cli(
    goal: tuple[str, ...],
    model: str | None,
    max_turns: int | None,
    temperature: float | None,
    safe: bool | None,
    yes: bool,
    logs_dir: str | None,
    base_url: str | None,
    api_key: str | None,
    once: bool,
    rich: bool | None,
    verbose: bool,
) -> None:
    """shellagent -- reach a goal by running model-proposed shell commands.

    \b
    Usage:
      shellagent "find the largest file in this directory"
      shellagent --once -y "show disk usage"
      shellagent                               (prompt for goals)
    """
    use_rich = rich if rich is not None else sys.stderr.isatty()
    _configure_logging(verbose, use_rich)

    if goal and not " ".join(goal).strip():
        click.echo("Error: empty goal", err=True)
        sys.exit(EXIT_EMPTY_GOAL)

    if yes:
        safe = False

    load_environment()
    try:
        config = load_config({
            "model": model,
            "max_turns": max_turns,
            "temperature": temperature,
            "safe_mode": safe,
            "logs_dir": logs_dir,
            "base_url": base_url,
            "api_key": api_key,
        })
        require_api_key(config)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_BAD_CONFIG)
    except CredentialMissing as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_NO_CREDENTIALS)

    initial_goal = " ".join(goal).strip() or None
    results = asyncio.run(_run_goals(
        config, initial_goal, once=once, use_rich=use_rich,
    ))

    if once and results and not results[-1].outcome.succeeded:
        sys.exit(EXIT_SESSION_FAILED)
    if not once:
        click.echo("Bye.", err=True)


def _configure_logging(verbose: bool, use_rich: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    handler: logging.Handler
    if use_rich:
        from rich.console import Console
        from rich.logging import RichHandler

        handler = RichHandler(console=Console(stderr=True), show_path=verbose)
        fmt = "%(message)s"
    else:
        handler = logging.StreamHandler(sys.stderr)
        fmt = "%(levelname)s %(name)s: %(message)s"
    logging.basicConfig(level=level, format=fmt, handlers=[handler], force=True)
    # SDK transport logs are noisy at DEBUG
    for name in ("httpx", "httpcore", "openai"):
        logging.getLogger(name).setLevel(logging.WARNING if not verbose else logging.INFO)


def _create_confirmer(use_rich: bool) -> CommandConfirmer:
    if use_rich:
        from shellagent.ui.approval import RichConfirmer
        return RichConfirmer()
    return StdinConfirmer()


async def _ask_goal() -> str:
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(None, lambda: input(GOAL_PROMPT))
    except (EOFError, KeyboardInterrupt):
        return ""


async def _run_goals(
    config: AgentConfig,
    initial_goal: str | None,
    *,
    once: bool,
    use_rich: bool,
) -> list[Result]:
    """Run goals and print output."""
    from shellagent.core.engine import GoalLoop

    # Choose output printer
    output_fn: Any
    if use_rich:
        from shellagent.ui.terminal import RichPrinter

        printer = RichPrinter()
        output_fn = printer.print_message
    else:
        output_fn = print_message

    goals = GoalLoop(
        config,
        ask_goal=_ask_goal,
        confirmer=_create_confirmer(use_rich),
        on_event=output_fn,
        once=once,
    )
    return await goals.run(initial_goal)


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
