"""Basic text output for --no-rich mode."""

from __future__ import annotations

import sys

from shellagent.types.actions import CompleteAction, ErrorAction, RunAction
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


def print_message(msg: Message) -> None:
    """Print a loop event to stderr in basic text mode."""
    match msg:
        case SystemEvent(type="session_start", data=data):
            print(f"[Logs] {data.get('log_dir', '')}", file=sys.stderr)
        case SystemEvent():
            pass
        case TurnStart(turn=turn, max_turns=max_turns):
            print(f"\n[Turn {turn}/{max_turns}]", file=sys.stderr)
        case TurnUsage(usage=usage, cost=cost, total_cost=total):
            print(
                f"[Usage] in={usage.prompt_tokens} cached={usage.cached_prompt_tokens} "
                f"out={usage.completion_tokens} cost=${cost:.6f} total=${total:.6f}",
                file=sys.stderr,
            )
        case ActionEvent(action=RunAction(commands=commands, explanation=explanation)):
            print(f"[Run] {explanation} ({len(commands)} command(s))", file=sys.stderr)
        case ActionEvent(action=CompleteAction(explanation=explanation)):
            print(f"[Complete] {explanation or 'Done.'}", file=sys.stderr)
        case ActionEvent(action=ErrorAction(explanation=explanation)):
            print(f"[Error] {explanation or 'Unknown error'}", file=sys.stderr)
        case CommandStart(run_index=index, command=command):
            print(f"[Cmd {index}] $ {command}", file=sys.stderr)
        case CommandFinished(result=result):
            if result.skipped:
                print("  skipped by user", file=sys.stderr)
            else:
                print(f"  exit {result.exit_code}", file=sys.stderr)
        case Result(
            outcome=outcome, turns=turns, commands_run=commands,
            total_tokens=tokens, total_cost=cost, detail=detail, log_dir=log_dir,
        ):
            print(file=sys.stderr)
            parts = [f"Outcome: {outcome.value}", f"Turns: {turns}", f"Commands: {commands}"]
            if tokens:
                parts.append(f"Tokens: {tokens:,}")
            parts.append(f"Cost: ${cost:.6f}")
            print(" | ".join(parts), file=sys.stderr)
            if detail:
                print(detail, file=sys.stderr)
            if log_dir is not None:
                print(f"Logs: {log_dir}", file=sys.stderr)
