"""shellagent -- reach a goal by running model-proposed shell commands.

Usage:
    import asyncio
    import shellagent

    config = shellagent.load_config()
    result = asyncio.run(shellagent.run_session("show disk usage", config))
    print(result.outcome, result.total_cost)
"""

from shellagent.core.config import ConfigError, CredentialMissing, load_config
from shellagent.core.engine import GoalLoop, run_session, stream_session
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
from shellagent.types.session import CommandResult, SessionOutcome

__version__ = "0.1.0"

__all__ = [
    # Core API
    "GoalLoop",
    "run_session",
    "stream_session",
    "load_config",
    "ConfigError",
    "CredentialMissing",
    # Events
    "ActionEvent",
    "CommandFinished",
    "CommandStart",
    "Message",
    "Result",
    "SystemEvent",
    "TurnStart",
    "TurnUsage",
    # Types
    "Action",
    "AgentConfig",
    "CommandResult",
    "CompleteAction",
    "ErrorAction",
    "RateTable",
    "RunAction",
    "SessionOutcome",
]
