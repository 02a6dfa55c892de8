"""Test fixtures including MockModelClient for deterministic testing."""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from shellagent.providers.base import BaseModelClient
from shellagent.types.config import AgentConfig
from shellagent.types.providers import ChatMessage, ModelReply, UsageStats


def reply_json(action: str, commands: list[str] | None = None, explanation: str = "") -> str:
    """Build an assistant reply in the agent's JSON protocol."""
    body: dict[str, Any] = {"action": action, "explanation": explanation}
    if commands is not None:
        body["commands"] = commands
    return json.dumps(body)


@dataclass
class MockReply:
    """A scripted turn for MockModelClient.

    Either ``content`` is returned as the assistant text, or ``error`` is
    raised from ``call()``.
    """

    content: str = ""
    usage: UsageStats = UsageStats(prompt_tokens=100, completion_tokens=20)
    error: Exception | None = None


class MockModelClient(BaseModelClient):
    """A deterministic model client for testing.

    Usage:
        client = MockModelClient(replies=[
            MockReply(content=reply_json("run", ["echo hi"])),
            MockReply(content=reply_json("complete", explanation="done")),
        ])
    """

    def __init__(
        self,
        replies: list[MockReply],
        model: str = "mock-model",
        temperature: float | None = 1.0,
    ) -> None:
        super().__init__(model, temperature)
        self._replies = list(replies)
        self._index = 0
        self.calls: list[list[ChatMessage]] = []
        self.closed = False

    async def call(self, messages: Sequence[ChatMessage]) -> ModelReply:
        self.calls.append(list(messages))
        if self._index >= len(self._replies):
            raise AssertionError("MockModelClient ran out of scripted replies")
        reply = self._replies[self._index]
        self._index += 1
        if reply.error is not None:
            raise reply.error
        request = self.build_request(messages)
        response = {
            "choices": [{"message": {"role": "assistant", "content": reply.content}}],
            "usage": {
                "prompt_tokens": reply.usage.prompt_tokens,
                "completion_tokens": reply.usage.completion_tokens,
                "prompt_tokens_details": {"cached_tokens": reply.usage.cached_prompt_tokens},
            },
        }
        return ModelReply(
            content=reply.content, usage=reply.usage, request=request, response=response,
        )

    async def close(self) -> None:
        self.closed = True


class ScriptedConfirmer:
    """Answers confirmations from a list, recording every prompt."""

    def __init__(self, answers: list[bool]) -> None:
        self._answers = list(answers)
        self.prompts: list[tuple[int, str]] = []

    async def confirm(self, run_index: int, command: str) -> bool:
        self.prompts.append((run_index, command))
        return self._answers.pop(0) if self._answers else False


@pytest.fixture
def logs_root(tmp_path: Path) -> Path:
    return tmp_path / "logs"


@pytest.fixture
def agent_config(tmp_path: Path) -> AgentConfig:
    """Unsafe-mode config writing logs under tmp_path."""
    return AgentConfig(
        model="mock-model",
        max_turns=5,
        safe_mode=False,
        logs_dir=str(tmp_path / "logs"),
        cwd=str(tmp_path),
        api_key="sk-test",
    )
