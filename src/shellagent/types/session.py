"""Session outcome and command result types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SessionOutcome(Enum):
    """Terminal state of one goal session."""

    SUCCESS = "success"
    REPORTED_FAILURE = "reported_failure"
    PROTOCOL_VIOLATION = "protocol_violation"
    TRANSPORT_FAILURE = "transport_failure"
    API_ERROR = "api_error"
    EMPTY_CONTENT = "empty_content"
    UNKNOWN_ACTION = "unknown_action"
    MAX_TURNS_EXCEEDED = "max_turns_exceeded"

    @property
    def aborted(self) -> bool:
        """True for protocol and infrastructure failures."""
        return self in _ABORTED

    @property
    def succeeded(self) -> bool:
        return self is SessionOutcome.SUCCESS


_ABORTED = frozenset({
    SessionOutcome.PROTOCOL_VIOLATION,
    SessionOutcome.TRANSPORT_FAILURE,
    SessionOutcome.API_ERROR,
    SessionOutcome.EMPTY_CONTENT,
    SessionOutcome.UNKNOWN_ACTION,
})


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of one command attempt.

    ``executed`` is False when the operator declined the command; the exit
    code and both streams are then ``None``.
    """

    index: int
    command: str
    executed: bool
    exit_code: int | None = None
    stdout: bytes | None = None
    stderr: bytes | None = None
    duration: float = 0.0
    timed_out: bool = False

    @property
    def skipped(self) -> bool:
        return not self.executed
