"""The session loop: model call, action decoding and command execution per turn."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from shellagent.core.actions import ProtocolViolation, UnknownAction, decode_action
from shellagent.core.executor import CommandExecutor
from shellagent.core.session import Session
from shellagent.providers.base import EmptyContent, ModelCallError, TransportFailure
from shellagent.types.actions import CompleteAction, ErrorAction, RunAction
from shellagent.types.config import DEFAULT_MAX_TURNS
from shellagent.types.messages import (
    ActionEvent,
    Message,
    Result,
    SystemEvent,
    TurnStart,
    TurnUsage,
)
from shellagent.types.providers import ModelClient, UsageStats
from shellagent.types.session import CommandResult, SessionOutcome

logger = logging.getLogger(__name__)


class AgentLoop:
    """The per-session turn loop.

    Each turn: model call -> decode action -> run commands -> report back.
    ``complete``, ``error``, any call or decode failure, or reaching
    ``max_turns`` after a ``run`` turn ends the session. Model failures are
    never retried.
    """

    def __init__(
        self,
        client: ModelClient,
        executor: CommandExecutor,
        max_turns: int = DEFAULT_MAX_TURNS,
    ) -> None:
        if max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        self._client = client
        self._executor = executor
        self._max_turns = max_turns

    @property
    def max_turns(self) -> int:
        return self._max_turns

    async def run(self, session: Session) -> AsyncIterator[Message]:
        """Drive *session* to a terminal state. The last event is a Result."""
        yield SystemEvent(type="session_start", data={
            "goal": session.goal,
            "model": self._client.model_id,
            "log_dir": str(session.log_dir),
            "max_turns": self._max_turns,
        })

        while True:
            turn = session.turn
            yield TurnStart(turn=turn, max_turns=self._max_turns)

            # Awaiting model
            messages = session.messages
            session.write_snapshot(turn, "request", self._client.build_request(messages))
            try:
                reply = await self._client.call(messages)
            except EmptyContent as exc:
                session.write_snapshot(turn, "response", exc.response)
                if exc.usage is not None:
                    yield self._bill(session, exc.usage)
                yield self._finish(session, SessionOutcome.EMPTY_CONTENT, str(exc))
                return
            except ModelCallError as exc:
                if exc.response is not None:
                    session.write_snapshot(turn, "response", exc.response)
                outcome = (
                    SessionOutcome.TRANSPORT_FAILURE
                    if isinstance(exc, TransportFailure)
                    else SessionOutcome.API_ERROR
                )
                yield self._finish(session, outcome, str(exc))
                return

            session.write_snapshot(turn, "response", reply.response)
            yield self._bill(session, reply.usage)

            # Interpreting action
            try:
                action = decode_action(reply.content)
            except UnknownAction as exc:
                session.log_event("unknown_action", action=exc.action, content=exc.content)
                yield self._finish(session, SessionOutcome.UNKNOWN_ACTION, str(exc))
                return
            except ProtocolViolation as exc:
                session.log_event("protocol_violation", error=str(exc), content=exc.content)
                yield self._finish(session, SessionOutcome.PROTOCOL_VIOLATION, str(exc))
                return

            session.append_assistant(reply.content)
            yield ActionEvent(turn=turn, action=action)

            match action:
                case CompleteAction(explanation=explanation):
                    yield self._finish(session, SessionOutcome.SUCCESS, explanation or "Done.")
                    return
                case ErrorAction(explanation=explanation):
                    yield self._finish(
                        session, SessionOutcome.REPORTED_FAILURE,
                        explanation or "Unknown error",
                    )
                    return
                case RunAction(commands=commands):
                    # Executing commands
                    results: list[CommandResult] = []
                    async for event in self._executor.stream_batch(session, commands, results):
                        yield event
                    session.append_tool_report(self._executor.build_report(results))

            if turn >= self._max_turns:
                yield self._finish(
                    session, SessionOutcome.MAX_TURNS_EXCEEDED,
                    f"Reached max turns ({self._max_turns}) without success.",
                )
                return
            session.advance_turn()

    def _bill(self, session: Session, usage: UsageStats) -> TurnUsage:
        cost = session.record_usage(usage)
        return TurnUsage(
            turn=session.turn, usage=usage, cost=cost, total_cost=session.total_cost,
        )

    def _finish(self, session: Session, outcome: SessionOutcome, detail: str) -> Result:
        if outcome.aborted:
            logger.warning("Session aborted (%s): %s", outcome.value, detail)
        else:
            logger.info("Session finished (%s) after %d turn(s)", outcome.value, session.turn)
        result = Result(
            outcome=outcome,
            goal=session.goal,
            turns=session.turn,
            commands_run=session.commands_run,
            total_tokens=session.total_tokens,
            total_cost=session.total_cost,
            detail=detail,
            log_dir=session.log_dir,
        )
        session.record_result(result)
        return result
