"""Type definitions for shellagent."""

from shellagent.types.actions import Action, CompleteAction, ErrorAction, RunAction
from shellagent.types.config import AgentConfig, RateTable
from shellagent.types.messages import (
    ActionEvent,
    CommandFinished,
    CommandStart,
    Message,
    Result,
    SystemEvent,
    TurnStart,
    TurnUsage,
)
from shellagent.types.providers import ChatMessage, ModelClient, ModelReply, UsageStats
from shellagent.types.session import CommandResult, SessionOutcome

__all__ = [
    "Action",
    "ActionEvent",
    "AgentConfig",
    "ChatMessage",
    "CommandFinished",
    "CommandResult",
    "CommandStart",
    "CompleteAction",
    "ErrorAction",
    "Message",
    "ModelClient",
    "ModelReply",
    "RateTable",
    "Result",
    "RunAction",
    "SessionOutcome",
    "SystemEvent",
    "TurnStart",
    "TurnUsage",
    "UsageStats",
]
