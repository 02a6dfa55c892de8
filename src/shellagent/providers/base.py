"""Base model client and the failure types a model call can raise."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from shellagent.types.providers import ChatMessage, ModelReply, UsageStats

logger = logging.getLogger(__name__)

# Models that only accept the server-side default temperature.
TEMPERATURE_ENFORCED_PREFIXES: tuple[str, ...] = ("o1", "o3", "o4")


def enforces_default_temperature(model: str) -> bool:
    """Return True when requests for *model* must omit ``temperature``."""
    model_lower = model.lower()
    return any(model_lower.startswith(p) for p in TEMPERATURE_ENFORCED_PREFIXES)


class ModelCallError(Exception):
    """Base class for a failed model call. Never retried.

    ``response`` holds the decoded response body when one was received.
    """

    def __init__(self, message: str, *, response: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.response = response


class TransportFailure(ModelCallError):
    """No response was obtained (connection refused, DNS, timeout...)."""


class APIError(ModelCallError):
    """The endpoint answered with an error object."""

    def __init__(
        self,
        *,
        code: str | None = None,
        message: str | None = None,
        param: str | None = None,
        status_code: int | None = None,
        response: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.param = param
        self.status_code = status_code
        label = f"API error ({status_code})" if status_code else "API error (payload)"
        super().__init__(
            f"{label}: code: {code or 'n/a'}, message: {message or 'n/a'}, "
            f"param: {param or 'n/a'}",
            response=response,
        )

    @classmethod
    def from_error_object(
        cls,
        error: Any,
        *,
        status_code: int | None = None,
        response: dict[str, Any] | None = None,
    ) -> APIError:
        """Build from an ``{"code", "message", "param"}`` error object."""
        if not isinstance(error, dict):
            return cls(message=str(error) if error else None, status_code=status_code,
                       response=response)
        return cls(
            code=_opt_str(error.get("code")),
            message=_opt_str(error.get("message")),
            param=_opt_str(error.get("param")),
            status_code=status_code,
            response=response,
        )


class EmptyContent(ModelCallError):
    """The response parsed but carried no assistant text.

    The usage the response reported is kept so the turn can still be billed.
    """

    def __init__(
        self,
        message: str = "Empty content from API",
        *,
        usage: UsageStats | None = None,
        response: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, response=response)
        self.usage = usage


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


class BaseModelClient(ABC):
    """Shared behaviour for model clients.

    Parameters
    ----------
    model:
        Model identifier sent with every request.
    temperature:
        Sampling temperature; dropped from the request for models that
        enforce their own default.
    """

    def __init__(self, model: str, temperature: float | None = None) -> None:
        self._model = model
        self._temperature = temperature

    @property
    def model_id(self) -> str:
        return self._model

    @property
    def sends_temperature(self) -> bool:
        return self._temperature is not None and not enforces_default_temperature(self._model)

    def build_request(self, messages: Sequence[ChatMessage]) -> dict[str, Any]:
        """Build the chat completion request body."""
        body: dict[str, Any] = {"model": self._model}
        if self.sends_temperature:
            body["temperature"] = self._temperature
        body["messages"] = [m.to_dict() for m in messages]
        return body

    @abstractmethod
    async def call(self, messages: Sequence[ChatMessage]) -> ModelReply:
        ...

    async def close(self) -> None:
        return None

    # ------------------------------------------------------------------
    # Envelope parsing
    # ------------------------------------------------------------------

    @staticmethod
    def parse_usage(body: dict[str, Any]) -> UsageStats:
        """Read token usage from a chat completion body. Missing counts are 0."""
        usage = body.get("usage")
        if not isinstance(usage, dict):
            return UsageStats()
        details = usage.get("prompt_tokens_details")
        cached = details.get("cached_tokens") if isinstance(details, dict) else 0
        return UsageStats(
            prompt_tokens=_as_count(usage.get("prompt_tokens")),
            cached_prompt_tokens=_as_count(cached),
            completion_tokens=_as_count(usage.get("completion_tokens")),
        )

    @classmethod
    def parse_reply(cls, request: dict[str, Any], body: dict[str, Any]) -> ModelReply:
        """Turn a successful-status response body into a :class:`ModelReply`.

        An embedded ``error`` object wins over everything else.
        """
        if "error" in body and body["error"] is not None:
            raise APIError.from_error_object(body["error"], response=body)

        usage = cls.parse_usage(body)
        content: Any = None
        choices = body.get("choices")
        if isinstance(choices, list) and choices:
            first = choices[0]
            if isinstance(first, dict):
                message = first.get("message")
                if isinstance(message, dict):
                    content = message.get("content")

        if not isinstance(content, str) or not content:
            raise EmptyContent(usage=usage, response=body)

        return ModelReply(content=content, usage=usage, request=request, response=body)


def _as_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return max(0, value)
