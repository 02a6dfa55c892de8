"""Actions the model can request, one per assistant turn."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RunAction:
    """Execute ``commands`` in order and report the results back."""

    commands: tuple[str, ...]
    explanation: str = ""


@dataclass(frozen=True, slots=True)
class CompleteAction:
    """The model declares the goal reached."""

    explanation: str = ""


@dataclass(frozen=True, slots=True)
class ErrorAction:
    """The model declares it cannot reach the goal."""

    explanation: str = ""


Action = RunAction | CompleteAction | ErrorAction
