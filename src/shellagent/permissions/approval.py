"""Confirmation callbacks for the per-command safety gate."""

from __future__ import annotations

import asyncio
from typing import Protocol, runtime_checkable


@runtime_checkable
class CommandConfirmer(Protocol):
    """Protocol for asking whether a proposed command may run."""

    async def confirm(self, run_index: int, command: str) -> bool:
        """Return True to run the command, False to skip it."""
        ...


class AlwaysApprove:
    """Approves every command without asking."""

    async def confirm(self, run_index: int, command: str) -> bool:
        return True


class AlwaysDecline:
    """Declines every command without asking."""

    async def confirm(self, run_index: int, command: str) -> bool:
        return False


def describe_command(run_index: int, command: str, *, width: int = 0) -> str:
    """One-line description of a command attempt."""
    text = command if not width or len(command) <= width else command[: width - 3] + "..."
    return f"Command #{run_index}: {text}"


class StdinConfirmer:
    """Plain-text ``[y/N]`` prompt using stdin/stdout.

    Anything but ``y``/``yes`` declines, including end of input.
    """

    async def confirm(self, run_index: int, command: str) -> bool:
        loop = asyncio.get_running_loop()
        prompt = f"\n{describe_command(run_index, command)}\nRun this command? [y/N] "
        try:
            answer = await loop.run_in_executor(None, lambda: input(prompt))
        except (EOFError, KeyboardInterrupt):
            return False
        return answer.strip().lower() in ("y", "yes")
