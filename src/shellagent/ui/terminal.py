"""Rich-powered terminal output."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from shellagent.types.actions import Action, CompleteAction, ErrorAction, RunAction
from shellagent.types.messages import (
    ActionEvent,
    CommandFinished,
    CommandStart,
    Message,
    Result,
    SystemEvent,
    TurnStart,
    TurnUsage,
)
from shellagent.types.session import CommandResult

# ── Palette ──────────────────────────────────────────────────────────────────
# Styles shared by every printed line.

ICON_COMMAND = "█"    # shell command
ICON_TURN = "──"
ICON_OK = "✓"
ICON_FAIL = "✗"

STYLE_ACCENT = "bold #a78bfa"         # violet
STYLE_DETAIL = "#7c7c8a"              # muted grey
STYLE_COMMAND = "bold #e2e8f0"        # bright white for shell commands
STYLE_ERROR_LABEL = "bold #f87171"    # red
STYLE_ERROR_BODY = "#f87171"
STYLE_SUCCESS = "bold #34d399"        # green
STYLE_SKIPPED = "dim italic #94a3b8"
STYLE_RESULT_DIM = "dim #7c7c8a"
STYLE_RESULT_LABEL = "bold #94a3b8"   # slate
STYLE_RESULT_VALUE = "#e2e8f0"        # light
STYLE_COST_VALUE = "#34d399"

_STDERR_PREVIEW = 300


class RichPrinter:
    """Rich-based event printer for terminal output.

    Replaces the basic print_message() with colored, formatted output.
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)

    def print_message(self, msg: Message) -> None:
        """Print a loop event with Rich formatting."""
        match msg:
            case SystemEvent(type="session_start", data=data):
                self._console.print(
                    Text(f"  Logs: {data.get('log_dir', '')}", style=STYLE_RESULT_DIM),
                )

            case SystemEvent():
                pass

            case TurnStart(turn=turn, max_turns=max_turns):
                self._console.print(
                    f"\n  [dim]{ICON_TURN}[/dim] [{STYLE_ACCENT}]Turn {turn}/{max_turns}[/]",
                )

            case TurnUsage(usage=usage, cost=cost, total_cost=total):
                self._console.print(Text(
                    f"    tokens in {usage.prompt_tokens:,} "
                    f"(cached {usage.cached_prompt_tokens:,}) "
                    f"out {usage.completion_tokens:,}  "
                    f"cost ${cost:.6f}  total ${total:.6f}",
                    style=STYLE_RESULT_DIM,
                ))

            case ActionEvent(action=action):
                self._print_action(action)

            case CommandStart(run_index=index, command=command):
                line = Text()
                line.append(f"  {ICON_COMMAND} ", style=STYLE_ACCENT)
                line.append(f"#{index} ", style=STYLE_DETAIL)
                line.append(f"$ {command}", style=STYLE_COMMAND)
                self._console.print(line)

            case CommandFinished(result=result):
                self._print_command_result(result)

            case Result() as r:
                self._print_result(r)

    # ── Actions ──────────────────────────────────────────────────────────────

    def _print_action(self, action: Action) -> None:
        match action:
            case RunAction(commands=commands, explanation=explanation):
                text = Text("  ")
                text.append(explanation or "Running commands", style=STYLE_RESULT_VALUE)
                text.append(f"  ({len(commands)} command(s))", style=STYLE_DETAIL)
                self._console.print(text)
            case CompleteAction(explanation=explanation):
                self._console.print(
                    Text(f"  {ICON_OK} {explanation or 'Done.'}", style=STYLE_SUCCESS),
                )
            case ErrorAction(explanation=explanation):
                self._console.print(
                    Text(f"  {ICON_FAIL} {explanation or 'Unknown error'}",
                         style=STYLE_ERROR_LABEL),
                )

    # ── Command Result ───────────────────────────────────────────────────────

    def _print_command_result(self, result: CommandResult) -> None:
        """Errors are prominent, success is quiet."""
        if result.skipped:
            self._console.print(Text("    skipped by user", style=STYLE_SKIPPED))
            return
        if result.exit_code == 0:
            self._console.print(
                Text(f"    exit 0  {result.duration:.2f}s", style=STYLE_RESULT_DIM),
            )
            return
        label = Text(f"    {ICON_FAIL} exit {result.exit_code}", style=STYLE_ERROR_LABEL)
        if result.timed_out:
            label.append("  (timed out)", style=STYLE_ERROR_BODY)
        self._console.print(label)
        stderr = (result.stderr or b"").decode("utf-8", errors="replace").strip()
        if stderr:
            preview = stderr[-_STDERR_PREVIEW:]
            self._console.print(Text(f"    {preview}", style=STYLE_ERROR_BODY))

    # ── Final Result ─────────────────────────────────────────────────────────

    def _print_result(self, result: Result) -> None:
        """Print the session summary as a compact, styled table."""
        self._console.print()

        tbl = Table(
            show_header=False,
            show_edge=False,
            show_lines=False,
            padding=(0, 1),
            expand=False,
        )
        tbl.add_column(style=STYLE_RESULT_LABEL, justify="right", no_wrap=True)
        tbl.add_column(style=STYLE_RESULT_VALUE)

        outcome_style = STYLE_SUCCESS if result.outcome.succeeded else STYLE_ERROR_LABEL
        tbl.add_row("Outcome", Text(result.outcome.value, style=outcome_style))
        if result.detail:
            tbl.add_row("Detail", result.detail)
        tbl.add_row("Turns", str(result.turns))
        tbl.add_row("Commands", str(result.commands_run))
        if result.total_tokens:
            tbl.add_row("Tokens", f"{result.total_tokens:,}")
        tbl.add_row("Cost", Text(f"${result.total_cost:.6f}", style=STYLE_COST_VALUE))
        if result.log_dir is not None:
            tbl.add_row("Logs", str(result.log_dir))

        self._console.print(Panel(
            tbl,
            border_style="#3f3f50",
            expand=False,
            padding=(0, 1),
        ))
