"""Configuration types for shellagent."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

DEFAULT_MODEL = "gpt-5"
DEFAULT_MAX_TURNS = 50
DEFAULT_CATALOG_LIMIT = 12_000
DEFAULT_REPORT_TAIL_BYTES = 200_000


@dataclass(frozen=True, slots=True)
class RateTable:
    """Price per 1000 tokens, fixed for the process lifetime."""

    cost_per_k_non_cached: Decimal = Decimal("0.00125")
    cost_per_k_cached: Decimal = Decimal("0.000125")
    cost_per_k_output: Decimal = Decimal("0.01")


@dataclass(frozen=True, slots=True)
class AgentConfig:
    """Immutable runtime configuration, built once at startup."""

    model: str = DEFAULT_MODEL
    temperature: float = 1.0
    max_turns: int = DEFAULT_MAX_TURNS
    safe_mode: bool = True  # Confirm every command before running it
    rates: RateTable = field(default_factory=RateTable)
    catalog_limit: int = DEFAULT_CATALOG_LIMIT
    logs_dir: str = "logs"
    report_tail_bytes: int = DEFAULT_REPORT_TAIL_BYTES
    command_timeout: float | None = None
    cwd: str | None = None
    api_key: str | None = None
    base_url: str | None = None
