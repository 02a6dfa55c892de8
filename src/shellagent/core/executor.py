"""Batch command execution, artifacts and the tool report."""

from __future__ import annotations

import logging
import re
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass

from shellagent.core.session import Session
from shellagent.permissions.approval import CommandConfirmer
from shellagent.tools.bash import BashRunner
from shellagent.types.config import DEFAULT_REPORT_TAIL_BYTES
from shellagent.types.messages import CommandFinished, CommandStart
from shellagent.types.session import CommandResult

logger = logging.getLogger(__name__)

EMPTY_STREAM = "<empty>"
SKIPPED_MARKER = "# skipped by user"
NO_COMMANDS_REPORT = "# No commands were provided; nothing was executed."

_TRAILING_CR = re.compile(r"\r$", re.MULTILINE)


@dataclass(frozen=True, slots=True)
class BatchReport:
    """Tool report text plus the per-command results it was built from."""

    text: str
    results: tuple[CommandResult, ...]


class CommandExecutor:
    """Runs the commands of a ``run`` action one after another.

    Parameters
    ----------
    runner:
        Executes a single command line.
    confirmer:
        Safety gate. When set, every command must be approved before it
        runs; when *None* the gate is disabled.
    report_tail_bytes:
        Maximum bytes of each stream quoted in the report.
    """

    def __init__(
        self,
        runner: BashRunner | None = None,
        confirmer: CommandConfirmer | None = None,
        report_tail_bytes: int = DEFAULT_REPORT_TAIL_BYTES,
    ) -> None:
        self._runner = runner or BashRunner()
        self._confirmer = confirmer
        self._report_tail_bytes = report_tail_bytes

    @property
    def gate_enabled(self) -> bool:
        return self._confirmer is not None

    async def execute(
        self, session: Session, commands: Sequence[str],
    ) -> AsyncIterator[CommandStart | CommandFinished]:
        """Process *commands* in order, yielding a start and finish event each."""
        for command in commands:
            run_index = session.next_run_index()
            yield CommandStart(run_index=run_index, command=command)

            if self._confirmer is not None:
                approved = await self._confirmer.confirm(run_index, command)
                if not approved:
                    logger.info("Command #%d declined", run_index)
                    result = CommandResult(index=run_index, command=command, executed=False)
                    session.record_command(result)
                    yield CommandFinished(result=result)
                    continue

            output = await self._runner.run(command)
            stdout_path, stderr_path = session.artifact_paths(run_index)
            stdout_path.write_bytes(output.stdout)
            stderr_path.write_bytes(output.stderr)

            result = CommandResult(
                index=run_index,
                command=command,
                executed=True,
                exit_code=output.exit_code,
                stdout=output.stdout,
                stderr=output.stderr,
                duration=output.duration,
                timed_out=output.timed_out,
            )
            logger.debug("Command #%d exited %d", run_index, output.exit_code)
            session.record_command(result)
            yield CommandFinished(result=result, stdout_path=stdout_path, stderr_path=stderr_path)

    async def stream_batch(
        self, session: Session, commands: Sequence[str], results: list[CommandResult],
    ) -> AsyncIterator[CommandStart | CommandFinished]:
        """Same events as :meth:`execute`; each finished result is appended to *results*."""
        async for event in self.execute(session, commands):
            if isinstance(event, CommandFinished):
                results.append(event.result)
            yield event

    async def run_batch(self, session: Session, commands: Sequence[str]) -> BatchReport:
        """Execute *commands* and return the assembled report."""
        results: list[CommandResult] = []
        async for _ in self.stream_batch(session, commands, results):
            pass
        return BatchReport(text=self.build_report(results), results=tuple(results))

    def build_report(self, results: Sequence[CommandResult]) -> str:
        return build_tool_report(results, self._report_tail_bytes)


def build_tool_report(
    results: Sequence[CommandResult], tail_bytes: int = DEFAULT_REPORT_TAIL_BYTES,
) -> str:
    """Concatenate per-command segments into one report, in order."""
    if not results:
        return NO_COMMANDS_REPORT

    parts: list[str] = []
    for result in results:
        parts.append(f"# CMD {result.index}: {result.command}")
        if not result.executed:
            parts.append(SKIPPED_MARKER)
            continue
        parts.append(f"# EXIT: {result.exit_code}")
        parts.append("--- STDOUT ---")
        parts.append(_stream_tail(result.stdout, tail_bytes))
        parts.append("--- STDERR ---")
        parts.append(_stream_tail(result.stderr, tail_bytes))
    return "\n".join(parts) + "\n"


def _stream_tail(data: bytes | None, tail_bytes: int) -> str:
    if not data:
        return EMPTY_STREAM
    if tail_bytes > 0 and len(data) > tail_bytes:
        data = data[-tail_bytes:]
    text = _TRAILING_CR.sub("", data.decode("utf-8", errors="replace"))
    return text.rstrip("\n")
