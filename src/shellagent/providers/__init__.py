"""Model clients and cost accounting for shellagent.

Public surface
--------------
- :class:`BaseModelClient`   : request building and envelope parsing
- :class:`OpenAIChatClient`  : OpenAI / compatible client (openai SDK)
- :class:`ModelCallError`    : base of TransportFailure, APIError, EmptyContent
- :func:`estimate_cost`      : per-turn cost from usage and rates
- :class:`CostTracker`       : running session cost
"""

from __future__ import annotations

from shellagent.providers.base import (
    APIError,
    BaseModelClient,
    EmptyContent,
    ModelCallError,
    TransportFailure,
    enforces_default_temperature,
)
from shellagent.providers.cost import CostTracker, accumulate, estimate_cost
from shellagent.providers.openai import OpenAIChatClient

__all__ = [
    "APIError",
    "BaseModelClient",
    "CostTracker",
    "EmptyContent",
    "ModelCallError",
    "OpenAIChatClient",
    "TransportFailure",
    "accumulate",
    "enforces_default_temperature",
    "estimate_cost",
]
