"""Per-goal session state with append-only JSONL persistence."""

from __future__ import annotations

import json
import re
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

from shellagent.providers.cost import CostTracker
from shellagent.types.config import RateTable
from shellagent.types.messages import Result
from shellagent.types.providers import ChatMessage, UsageStats
from shellagent.types.session import CommandResult

SYSTEM_PROMPT_CORE = """\
You are a cautious Linux shell expert. Your sole task is to reach the user's \
goal by proposing **safe, deterministic** shell commands that exist in the \
provided command list. After each tool-run you will be shown the command \
outputs and may propose more commands, or declare success.
"""

SYSTEM_PROMPT_FORMAT = """\
Always answer with **valid JSON** following this schema *exactly*:
{
  "action": "run" | "complete" | "error",
  "commands": ["...", "..."],
  "explanation": "short human-readable comment"
}
"commands" is required only when action is "run". No additional keys, no \
prose outside JSON.
Each string in the commands list is a one-line bash command that is executed \
independently of the others: no working directory, environment or shell \
variable carries over between commands. Avoid destructive actions unless the \
user explicitly asked for them and you have created a backup first.
"""

CATALOG_PREFIX = "Available commands: "

TRANSCRIPT_NAME = "transcript.jsonl"
_SLUG_WORDS = 5


def slugify(text: str, max_words: int = _SLUG_WORDS) -> str:
    """Build a directory-safe slug from the first words of *text*."""
    words = text.split()[:max_words]
    slug = "-".join(words).lower()
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    slug = re.sub(r"-{2,}", "-", slug)
    return slug.strip("-")


def create_session_dir(logs_root: Path, goal: str, now: datetime | None = None) -> Path:
    """Create and return a fresh ``<timestamp>__<slug>`` directory."""
    stamp = (now or datetime.now()).strftime("%Y-%m-%d_%H-%M-%S")
    base = f"{stamp}__{slugify(goal) or 'goal'}"
    logs_root.mkdir(parents=True, exist_ok=True)
    candidate = logs_root / base
    suffix = 2
    while candidate.exists():
        candidate = logs_root / f"{base}-{suffix}"
        suffix += 1
    candidate.mkdir()
    return candidate


class Session:
    """Conversation and counters for a single goal.

    The message list only ever grows. Every change is mirrored to
    ``transcript.jsonl`` in the session log directory.
    """

    def __init__(self, goal: str, log_dir: Path, rates: RateTable | None = None) -> None:
        self.goal = goal
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._transcript = self.log_dir / TRANSCRIPT_NAME
        self._messages: list[ChatMessage] = []
        self._turn = 1
        self._run_index = 1
        self._commands_run = 0
        self._costs = CostTracker(rates or RateTable())

    @classmethod
    def start(
        cls,
        goal: str,
        catalog_text: str,
        logs_root: str | Path,
        *,
        rates: RateTable | None = None,
        model: str | None = None,
        now: datetime | None = None,
    ) -> Session:
        """Create the log directory and seed the conversation for *goal*."""
        log_dir = create_session_dir(Path(logs_root), goal, now)
        session = cls(goal, log_dir, rates=rates)
        session._append({
            "type": "metadata",
            "data": {
                "goal": goal,
                "model": model,
                "created_at": datetime.now(UTC).isoformat(),
            },
        })
        session._add(ChatMessage(role="system", content=SYSTEM_PROMPT_CORE))
        session._add(ChatMessage(role="system", content=SYSTEM_PROMPT_FORMAT))
        session._add(ChatMessage(role="system", content=CATALOG_PREFIX + catalog_text))
        session._add(ChatMessage(role="user", content=goal))
        return session

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    def append_assistant(self, content: str) -> None:
        """Append the model's raw reply."""
        self._add(ChatMessage(role="assistant", content=content))

    def append_tool_report(self, text: str) -> None:
        """Append one aggregated command report as a user message."""
        self._add(ChatMessage(role="user", content=text))

    def _add(self, msg: ChatMessage) -> None:
        self._messages.append(msg)
        self._append({"type": "message", "data": msg.to_dict()})

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    @property
    def turn(self) -> int:
        return self._turn

    def advance_turn(self) -> int:
        self._turn += 1
        return self._turn

    @property
    def run_index(self) -> int:
        """The index the next command attempt will receive."""
        return self._run_index

    def next_run_index(self) -> int:
        """Claim the current run index. Declined commands consume one too."""
        index = self._run_index
        self._run_index += 1
        return index

    @property
    def commands_run(self) -> int:
        return self._commands_run

    def record_command(self, result: CommandResult) -> None:
        if result.executed:
            self._commands_run += 1
        self._append({
            "type": "command",
            "index": result.index,
            "command": result.command,
            "executed": result.executed,
            "exit_code": result.exit_code,
            "duration": round(result.duration, 4),
            "timed_out": result.timed_out,
        })

    # ------------------------------------------------------------------
    # Cost
    # ------------------------------------------------------------------

    @property
    def total_cost(self) -> Decimal:
        return self._costs.total_cost

    @property
    def total_prompt_tokens(self) -> int:
        return self._costs.snapshot().prompt_tokens

    @property
    def total_completion_tokens(self) -> int:
        return self._costs.snapshot().completion_tokens

    @property
    def total_tokens(self) -> int:
        return self._costs.snapshot().total_tokens

    def record_usage(self, usage: UsageStats) -> Decimal:
        """Bill one turn and return its cost."""
        cost = self._costs.record_usage(usage)
        self._append({
            "type": "turn",
            "turn": self._turn,
            "prompt_tokens": usage.prompt_tokens,
            "cached_prompt_tokens": usage.cached_prompt_tokens,
            "completion_tokens": usage.completion_tokens,
            "cost": cost,
            "total_cost": self.total_cost,
            "timestamp": datetime.now(UTC).isoformat(),
        })
        return cost

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    def write_snapshot(self, turn: int, kind: str, body: dict[str, Any] | None) -> Path:
        """Write ``turn_<n>_<kind>.json`` (kind is ``request`` or ``response``)."""
        path = self.log_dir / f"turn_{turn}_{kind}.json"
        path.write_text(json.dumps(body, indent=2, ensure_ascii=False, default=str) + "\n",
                        encoding="utf-8")
        return path

    def artifact_paths(self, run_index: int) -> tuple[Path, Path]:
        """Return the stdout/stderr artifact paths for a command."""
        return (
            self.log_dir / f"cmd_{run_index}.out",
            self.log_dir / f"cmd_{run_index}.err",
        )

    def log_event(self, event: str, **data: Any) -> None:
        self._append({
            "type": "event",
            "event": event,
            "data": data,
            "timestamp": datetime.now(UTC).isoformat(),
        })

    def record_result(self, result: Result) -> None:
        self._append({
            "type": "outcome",
            "outcome": result.outcome.value,
            "turns": result.turns,
            "commands_run": result.commands_run,
            "total_cost": result.total_cost,
            "detail": result.detail,
            "timestamp": datetime.now(UTC).isoformat(),
        })

    def _append(self, entry: dict[str, Any]) -> None:
        """Append an entry to the JSONL transcript."""
        with open(self._transcript, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, default=str, ensure_ascii=False) + "\n")
