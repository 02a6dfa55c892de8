"""Rich-formatted confirmation prompt for proposed commands."""

from __future__ import annotations

import asyncio

from rich.console import Console
from rich.panel import Panel
from rich.text import Text


class RichConfirmer:
    """Rich-formatted interactive safety gate."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)

    async def confirm(self, run_index: int, command: str) -> bool:
        """Show the command in a panel and wait for y/N."""
        title = Text(f" ◆ Command #{run_index} ", style="bold #fbbf24")
        body = Text(f"$ {command}", style="#e2e8f0")

        self._console.print()
        self._console.print(Panel(
            body,
            title=title,
            border_style="#fbbf24",
            expand=False,
            padding=(0, 1),
        ))

        loop = asyncio.get_running_loop()
        prompt_text = "[bold #fbbf24]Run?[/bold #fbbf24] [#7c7c8a](y/N)[/#7c7c8a] › "
        try:
            self._console.print(prompt_text, end="")
            answer = await loop.run_in_executor(None, lambda: input(""))
        except (EOFError, KeyboardInterrupt):
            self._console.print()
            return False
        return answer.strip().lower() in ("y", "yes")
