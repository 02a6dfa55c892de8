"""Decoding of assistant replies into typed actions."""

from __future__ import annotations

import json
from typing import Any

from shellagent.types.actions import Action, CompleteAction, ErrorAction, RunAction

KNOWN_ACTIONS = ("run", "complete", "error")


class ActionDecodeError(Exception):
    """The assistant reply could not be turned into an action."""

    def __init__(self, message: str, content: str) -> None:
        super().__init__(message)
        self.content = content


class ProtocolViolation(ActionDecodeError):
    """Malformed JSON, missing ``action`` or a schema mismatch."""


class UnknownAction(ActionDecodeError):
    """Well-formed reply whose ``action`` is not one we understand."""

    def __init__(self, action: str, content: str) -> None:
        super().__init__(f"Unknown action '{action}'", content)
        self.action = action


def decode_action(content: str) -> Action:
    """Decode the assistant message *content* into an :data:`Action`.

    The content must itself be a JSON object of the form
    ``{"action": "run"|"complete"|"error", "commands": [...], "explanation": "..."}``.
    Extra keys are ignored. ``commands`` is required for ``run`` and may be
    empty.
    """
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ProtocolViolation(f"Reply is not valid JSON: {exc}", content) from exc

    if not isinstance(payload, dict):
        raise ProtocolViolation("Reply is not a JSON object", content)

    action = payload.get("action")
    if not isinstance(action, str):
        raise ProtocolViolation("Reply has no string 'action' field", content)

    explanation = _explanation(payload, content)

    match action:
        case "run":
            return RunAction(commands=_commands(payload, content), explanation=explanation)
        case "complete":
            return CompleteAction(explanation=explanation)
        case "error":
            return ErrorAction(explanation=explanation)
        case _:
            raise UnknownAction(action, content)


def _explanation(payload: dict[str, Any], content: str) -> str:
    explanation = payload.get("explanation", "")
    if explanation is None:
        return ""
    if not isinstance(explanation, str):
        raise ProtocolViolation("'explanation' must be a string", content)
    return explanation


def _commands(payload: dict[str, Any], content: str) -> tuple[str, ...]:
    if "commands" not in payload:
        raise ProtocolViolation("'run' action requires a 'commands' list", content)
    commands = payload["commands"]
    if not isinstance(commands, list):
        raise ProtocolViolation("'commands' must be a list", content)
    if not all(isinstance(c, str) for c in commands):
        raise ProtocolViolation("Every entry of 'commands' must be a string", content)
    return tuple(commands)
