"""Model client protocol and chat wire types."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, runtime_checkable

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """One entry of the conversation sent to the model."""

    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True, slots=True)
class UsageStats:
    """Token usage reported by the model endpoint for one call."""

    prompt_tokens: int = 0
    cached_prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass(frozen=True, slots=True)
class ModelReply:
    """Successful model call: assistant text plus usage.

    ``request`` and ``response`` hold the exact JSON bodies exchanged so the
    session can snapshot them.
    """

    content: str
    usage: UsageStats
    request: dict[str, Any] = field(default_factory=dict)
    response: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class ModelClient(Protocol):
    """Protocol every model client must implement."""

    @property
    def model_id(self) -> str:
        """The model identifier being used."""
        ...

    def build_request(self, messages: Sequence[ChatMessage]) -> dict[str, Any]:
        """Return the request body that :meth:`call` would send."""
        ...

    async def call(self, messages: Sequence[ChatMessage]) -> ModelReply:
        """Send the full conversation and return the assistant reply.

        Raises a :class:`~shellagent.providers.base.ModelCallError` subclass
        on failure. Never retries.
        """
        ...

    async def close(self) -> None:
        """Release the underlying connection pool."""
        ...
