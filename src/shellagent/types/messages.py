"""Events yielded by the session loop."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any

from shellagent.types.actions import Action
from shellagent.types.providers import UsageStats
from shellagent.types.session import CommandResult, SessionOutcome


@dataclass(frozen=True, slots=True)
class SystemEvent:
    """Lifecycle event (session start, log directory, etc.)."""

    type: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class TurnStart:
    """A model call is about to be made."""

    turn: int
    max_turns: int


@dataclass(frozen=True, slots=True)
class TurnUsage:
    """Token usage and estimated cost of one turn."""

    turn: int
    usage: UsageStats
    cost: Decimal
    total_cost: Decimal


@dataclass(frozen=True, slots=True)
class ActionEvent:
    """The assistant reply decoded into an action."""

    turn: int
    action: Action


@dataclass(frozen=True, slots=True)
class CommandStart:
    """A command is about to be confirmed and/or executed."""

    run_index: int
    command: str


@dataclass(frozen=True, slots=True)
class CommandFinished:
    """A command was executed or skipped."""

    result: CommandResult
    stdout_path: Path | None = None
    stderr_path: Path | None = None


@dataclass(frozen=True, slots=True)
class Result:
    """Final event of every session."""

    outcome: SessionOutcome
    goal: str
    turns: int = 0
    commands_run: int = 0
    total_tokens: int = 0
    total_cost: Decimal = Decimal("0")
    detail: str = ""
    log_dir: Path | None = None


Message = (
    SystemEvent | TurnStart | TurnUsage | ActionEvent | CommandStart | CommandFinished | Result
)
