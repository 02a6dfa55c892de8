"""OpenAI chat completions client.

Talks to ``/v1/chat/completions`` (or any OpenAI-compatible endpoint given a
custom ``base_url``) through the official ``openai`` SDK. The raw JSON
envelope is kept so error objects embedded in a successful response are
detected and every exchange can be snapshotted to disk.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from shellagent.providers.base import APIError, BaseModelClient, TransportFailure
from shellagent.types.config import DEFAULT_MODEL
from shellagent.types.providers import ChatMessage, ModelReply

logger = logging.getLogger(__name__)


class OpenAIChatClient(BaseModelClient):
    """Model client for OpenAI-compatible chat completion APIs.

    Automatic retries in the SDK are disabled: a failed call ends the
    session instead of being retried.

    Parameters
    ----------
    api_key:
        OpenAI API key. When *None* the SDK falls back to the
        ``OPENAI_API_KEY`` environment variable.
    model:
        Model ID to use for completions (default ``"gpt-5"``).
    temperature:
        Sampling temperature, omitted for models that enforce a default.
    base_url:
        Optional custom base URL for OpenAI-compatible endpoints.
    timeout:
        Request timeout in seconds; *None* keeps the SDK default.
    http_client:
        Optional pre-built ``httpx.AsyncClient`` (proxies, test transports).
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        temperature: float | None = 1.0,
        base_url: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(model, temperature)
        try:
            from openai import AsyncOpenAI
        except ImportError as exc:
            raise ImportError(
                "The 'openai' package is required for OpenAIChatClient. "
                "Install it with: pip install openai"
            ) from exc

        kwargs: dict[str, Any] = {"max_retries": 0}
        if api_key is not None:
            kwargs["api_key"] = api_key
        if base_url is not None:
            kwargs["base_url"] = base_url
        if timeout is not None:
            kwargs["timeout"] = timeout
        if http_client is not None:
            kwargs["http_client"] = http_client

        self._client = AsyncOpenAI(**kwargs)

    async def call(self, messages: Sequence[ChatMessage]) -> ModelReply:
        """Send the conversation and return the assistant reply.

        Raises
        ------
        TransportFailure
            No response was obtained.
        APIError
            The response carried an error object, whatever its status code.
        EmptyContent
            The response carried no assistant message text.
        """
        import openai

        request = self.build_request(messages)
        logger.debug(
            "Chat request: model=%s messages=%d temperature=%s",
            self._model, len(messages), request.get("temperature", "<default>"),
        )

        try:
            raw = await self._client.chat.completions.with_raw_response.create(**request)
        except openai.APIConnectionError as exc:
            logger.error("Transport failure calling %s: %s", self._model, exc)
            raise TransportFailure(f"Network error: {exc}") from exc
        except openai.APIStatusError as exc:
            error, body = _status_error_parts(exc)
            logger.error("API error %s from %s", exc.status_code, self._model)
            raise APIError.from_error_object(
                error, status_code=exc.status_code, response=body,
            ) from exc

        response = raw.http_response
        try:
            body = response.json()
        except ValueError as exc:
            raise APIError(
                code="invalid_response",
                message=f"Response body is not valid JSON: {exc}",
                status_code=response.status_code,
            ) from exc
        if not isinstance(body, dict):
            raise APIError(
                code="invalid_response",
                message="Response body is not a JSON object",
                status_code=response.status_code,
            )

        reply = self.parse_reply(request, body)
        logger.debug(
            "Chat reply: prompt=%d cached=%d completion=%d",
            reply.usage.prompt_tokens,
            reply.usage.cached_prompt_tokens,
            reply.usage.completion_tokens,
        )
        return reply

    async def close(self) -> None:
        await self._client.close()


def _status_error_parts(exc: Any) -> tuple[Any, dict[str, Any] | None]:
    """Return ``(error_object, full_body)`` for an SDK status error."""
    body: dict[str, Any] | None = None
    try:
        parsed = exc.response.json()
    except (ValueError, RuntimeError):
        parsed = None
    if isinstance(parsed, dict):
        body = parsed

    if body is not None and "error" in body:
        return body["error"], body
    if isinstance(exc.body, dict):
        return exc.body, body
    return {"message": str(exc.body or exc.message)}, body
