"""Tests for session wiring and the goal loop."""

from __future__ import annotations

import dataclasses
from pathlib import Path

import pytest

from shellagent.core import engine
from shellagent.core.config import CredentialMissing
from shellagent.core.engine import GoalLoop, create_executor, run_session, stream_session
from shellagent.providers.base import TransportFailure
from shellagent.types.config import AgentConfig
from shellagent.types.messages import Message, Result, SystemEvent
from shellagent.types.session import SessionOutcome
from tests.conftest import MockModelClient, MockReply, ScriptedConfirmer, reply_json


@pytest.fixture(autouse=True)
def quiet_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))


def _goal_prompt(*goals: str | None):
    remaining = list(goals)

    async def ask() -> str | None:
        return remaining.pop(0) if remaining else None

    return ask


class TestRunSession:
    @pytest.mark.asyncio
    async def test_runs_to_result(self, agent_config: AgentConfig, tmp_path: Path):
        client = MockModelClient([
            MockReply(content=reply_json("run", ["echo hi > out.txt"])),
            MockReply(content=reply_json("complete", explanation="written")),
        ])
        events: list[Message] = []
        result = await run_session(
            "write a file", agent_config, client=client, catalog="echo", on_event=events.append,
        )
        assert result.outcome is SessionOutcome.SUCCESS
        assert (tmp_path / "out.txt").read_text() == "hi\n"
        assert events[-1] is result
        assert result.log_dir is not None
        assert result.log_dir.parent == Path(agent_config.logs_dir)
        assert result.log_dir.name.endswith("__write-a-file")

    @pytest.mark.asyncio
    async def test_catalog_in_system_prompt(self, agent_config: AgentConfig):
        client = MockModelClient([MockReply(content=reply_json("complete"))])
        await run_session("g", agent_config, client=client, catalog="ls grep")
        assert client.calls[0][2].content == "Available commands: ls grep"

    @pytest.mark.asyncio
    async def test_catalog_enumerated_when_missing(self, agent_config, monkeypatch):
        monkeypatch.setattr(engine, "list_available_commands", lambda limit: f"limit={limit}")
        client = MockModelClient([MockReply(content=reply_json("complete"))])
        await run_session("g", agent_config, client=client)
        assert client.calls[0][2].content.endswith(f"limit={agent_config.catalog_limit}")

    @pytest.mark.asyncio
    async def test_stream_starts_with_system_event(self, agent_config: AgentConfig):
        client = MockModelClient([MockReply(content=reply_json("complete"))])
        events = [e async for e in stream_session("g", agent_config, client=client, catalog="")]
        assert isinstance(events[0], SystemEvent)
        assert events[0].data["model"] == "mock-model"

    @pytest.mark.asyncio
    async def test_missing_credentials(self, agent_config: AgentConfig):
        config = dataclasses.replace(agent_config, api_key=None)
        with pytest.raises(CredentialMissing):
            await run_session("g", config, catalog="")


class TestCreateExecutor:
    def test_safe_mode_uses_confirmer(self, agent_config: AgentConfig):
        confirmer = ScriptedConfirmer([])
        safe = dataclasses.replace(agent_config, safe_mode=True)
        assert create_executor(safe, confirmer).gate_enabled

    def test_unsafe_mode_skips_gate(self, agent_config: AgentConfig):
        assert not create_executor(agent_config, ScriptedConfirmer([])).gate_enabled

    @pytest.mark.asyncio
    async def test_safe_mode_declines(self, agent_config: AgentConfig, tmp_path: Path):
        safe = dataclasses.replace(agent_config, safe_mode=True)
        confirmer = ScriptedConfirmer([False])
        client = MockModelClient([
            MockReply(content=reply_json("run", ["touch declined.txt"])),
            MockReply(content=reply_json("complete")),
        ])
        result = await run_session("g", safe, client=client, confirmer=confirmer, catalog="")
        assert confirmer.prompts == [(1, "touch declined.txt")]
        assert not (tmp_path / "declined.txt").exists()
        assert result.commands_run == 0


class TestGoalLoop:
    @pytest.mark.asyncio
    async def test_runs_each_goal_independently(self, agent_config: AgentConfig):
        client = MockModelClient([
            MockReply(content=reply_json("run", ["true"])),
            MockReply(content=reply_json("complete")),
            MockReply(content=reply_json("complete")),
        ])
        loop = GoalLoop(agent_config, ask_goal=_goal_prompt("second goal", ""),
                        client=client, catalog="")
        results = await loop.run("first goal")
        assert [r.goal for r in results] == ["first goal", "second goal"]
        # Second session starts from a fresh conversation
        assert len(client.calls[2]) == 4
        assert results[0].log_dir != results[1].log_dir

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_loop(self, agent_config: AgentConfig):
        client = MockModelClient([
            MockReply(error=TransportFailure("down")),
            MockReply(content=reply_json("complete")),
        ])
        loop = GoalLoop(agent_config, ask_goal=_goal_prompt("retry", None),
                        client=client, catalog="")
        results = await loop.run("first")
        assert [r.outcome for r in results] == [
            SessionOutcome.TRANSPORT_FAILURE, SessionOutcome.SUCCESS,
        ]

    @pytest.mark.asyncio
    async def test_once(self, agent_config: AgentConfig):
        client = MockModelClient([MockReply(content=reply_json("complete"))])
        asked: list[bool] = []

        async def ask() -> str:
            asked.append(True)
            return "never"

        results = await GoalLoop(
            agent_config, ask_goal=ask, client=client, catalog="", once=True,
        ).run("only")
        assert len(results) == 1
        assert asked == []

    @pytest.mark.asyncio
    async def test_prompts_when_no_initial_goal(self, agent_config: AgentConfig):
        client = MockModelClient([MockReply(content=reply_json("complete"))])
        loop = GoalLoop(agent_config, ask_goal=_goal_prompt("  asked  ", ""),
                        client=client, catalog="")
        results = await loop.run()
        assert [r.goal for r in results] == ["asked"]

    @pytest.mark.asyncio
    async def test_blank_answer_quits(self, agent_config: AgentConfig):
        client = MockModelClient([])
        results = await GoalLoop(agent_config, ask_goal=_goal_prompt("   "),
                                 client=client, catalog="").run()
        assert results == []
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_owned_client_is_closed(self, agent_config, monkeypatch):
        client = MockModelClient([MockReply(content=reply_json("complete"))])
        monkeypatch.setattr(engine, "create_client", lambda config: client)
        results = await GoalLoop(agent_config, catalog="", once=True).run("g")
        assert isinstance(results[0], Result)
        assert client.closed

    @pytest.mark.asyncio
    async def test_injected_client_left_open(self, agent_config: AgentConfig):
        client = MockModelClient([MockReply(content=reply_json("complete"))])
        await GoalLoop(agent_config, client=client, catalog="", once=True).run("g")
        assert not client.closed

    @pytest.mark.asyncio
    async def test_run_session_closes_client_it_built(self, agent_config, monkeypatch):
        client = MockModelClient([MockReply(content=reply_json("complete"))])
        monkeypatch.setattr(engine, "create_client", lambda config: client)
        result = await run_session("show disk usage", agent_config, catalog="ls")
        assert result.outcome is SessionOutcome.SUCCESS
        assert client.closed

    @pytest.mark.asyncio
    async def test_run_session_closes_client_after_failure(self, agent_config, monkeypatch):
        client = MockModelClient([MockReply(error=TransportFailure("down"))])
        monkeypatch.setattr(engine, "create_client", lambda config: client)
        result = await run_session("g", agent_config, catalog="ls")
        assert result.outcome is SessionOutcome.TRANSPORT_FAILURE
        assert client.closed

    @pytest.mark.asyncio
    async def test_run_session_leaves_injected_client_open(self, agent_config: AgentConfig):
        client = MockModelClient([MockReply(content=reply_json("complete"))])
        await run_session("g", agent_config, client=client, catalog="ls")
        assert not client.closed
