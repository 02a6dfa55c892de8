"""Engine: wires config, model client, executor and session into running goals."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from pathlib import Path

from shellagent.core.catalog import list_available_commands
from shellagent.core.config import require_api_key
from shellagent.core.executor import CommandExecutor
from shellagent.core.loop import AgentLoop
from shellagent.core.session import Session
from shellagent.permissions.approval import CommandConfirmer, StdinConfirmer
from shellagent.tools.bash import BashRunner
from shellagent.types.config import AgentConfig
from shellagent.types.messages import Message, Result
from shellagent.types.providers import ModelClient

logger = logging.getLogger(__name__)

EventCallback = Callable[[Message], None]
GoalPrompt = Callable[[], Awaitable[str | None]]


def create_client(config: AgentConfig) -> ModelClient:
    """Build the OpenAI client described by *config*.

    Raises :class:`~shellagent.core.config.CredentialMissing` without a key.
    """
    from shellagent.providers.openai import OpenAIChatClient

    return OpenAIChatClient(
        api_key=require_api_key(config),
        model=config.model,
        temperature=config.temperature,
        base_url=config.base_url,
    )


def create_executor(
    config: AgentConfig, confirmer: CommandConfirmer | None = None,
) -> CommandExecutor:
    """Executor for *config*; the confirmer is only consulted in safe mode."""
    gate = (confirmer or StdinConfirmer()) if config.safe_mode else None
    runner = BashRunner(cwd=config.cwd, timeout=config.command_timeout)
    return CommandExecutor(
        runner=runner, confirmer=gate, report_tail_bytes=config.report_tail_bytes,
    )


async def stream_session(
    goal: str,
    config: AgentConfig,
    *,
    client: ModelClient | None = None,
    confirmer: CommandConfirmer | None = None,
    catalog: str | None = None,
) -> AsyncIterator[Message]:
    """Run one goal to completion, yielding loop events.

    Args:
        goal: The user's goal in natural language.
        config: Immutable run configuration.
        client: Model client; built from *config* when omitted and closed
            once the session ends.
        confirmer: Safety gate prompt, used only when ``config.safe_mode``.
        catalog: Space separated command list; enumerated when omitted.
    """
    owns_client = client is None
    if client is None:
        client = create_client(config)
    try:
        if catalog is None:
            catalog = await asyncio.to_thread(list_available_commands, config.catalog_limit)

        session = Session.start(
            goal,
            catalog,
            Path(config.logs_dir),
            rates=config.rates,
            model=client.model_id,
        )
        logger.info("Session logs in %s", session.log_dir)

        loop = AgentLoop(client, create_executor(config, confirmer), max_turns=config.max_turns)
        async for msg in loop.run(session):
            yield msg
    finally:
        if owns_client:
            await client.close()


async def run_session(
    goal: str,
    config: AgentConfig,
    *,
    client: ModelClient | None = None,
    confirmer: CommandConfirmer | None = None,
    catalog: str | None = None,
    on_event: EventCallback | None = None,
) -> Result:
    """Run one goal and return its :class:`Result`."""
    result: Result | None = None
    async for msg in stream_session(
        goal, config, client=client, confirmer=confirmer, catalog=catalog,
    ):
        if on_event is not None:
            on_event(msg)
        if isinstance(msg, Result):
            result = msg
    if result is None:
        raise RuntimeError("session ended without a result")
    return result


class GoalLoop:
    """Runs one independent session per goal.

    The initial goal runs first; further goals come from *ask_goal* until it
    returns an empty goal or ``None``. A failed session does not stop the
    loop. With ``once=True`` only one goal is run, asked for when no
    initial goal is given.
    """

    def __init__(
        self,
        config: AgentConfig,
        *,
        ask_goal: GoalPrompt | None = None,
        client: ModelClient | None = None,
        confirmer: CommandConfirmer | None = None,
        catalog: str | None = None,
        on_event: EventCallback | None = None,
        once: bool = False,
    ) -> None:
        self._config = config
        self._ask_goal = ask_goal
        self._client = client
        self._confirmer = confirmer
        self._catalog = catalog
        self._on_event = on_event
        self._once = once

    async def run(self, initial_goal: str | None = None) -> list[Result]:
        results: list[Result] = []
        owns_client = self._client is None
        client: ModelClient | None = self._client
        catalog = self._catalog
        try:
            goal = (initial_goal or "").strip()
            if not goal:
                goal = await self._next_goal()
            while goal:
                if client is None:
                    client = create_client(self._config)
                if catalog is None:
                    catalog = await asyncio.to_thread(
                        list_available_commands, self._config.catalog_limit,
                    )
                result = await run_session(
                    goal,
                    self._config,
                    client=client,
                    confirmer=self._confirmer,
                    catalog=catalog,
                    on_event=self._on_event,
                )
                results.append(result)
                if self._once:
                    break
                goal = await self._next_goal()
        finally:
            if owns_client and client is not None:
                await client.close()
        return results

    async def _next_goal(self) -> str:
        if self._ask_goal is None:
            return ""
        goal = await self._ask_goal()
        return (goal or "").strip()
