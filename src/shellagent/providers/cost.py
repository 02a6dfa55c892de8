"""Cost accounting: turns token usage into a monetary estimate."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from shellagent.types.config import RateTable
from shellagent.types.providers import UsageStats

COST_PRECISION = Decimal("0.000001")
_PER_K = Decimal(1000)


def normalize_usage(usage: UsageStats) -> UsageStats:
    """Return *usage* with an impossible cached count clamped to 0.

    Some servers report more cached tokens than prompt tokens; those counts
    are ignored rather than producing a negative non-cached figure.
    """
    if usage.cached_prompt_tokens > usage.prompt_tokens or usage.cached_prompt_tokens < 0:
        return UsageStats(
            prompt_tokens=usage.prompt_tokens,
            cached_prompt_tokens=0,
            completion_tokens=usage.completion_tokens,
        )
    return usage


def estimate_cost(usage: UsageStats, rates: RateTable) -> Decimal:
    """Estimate the cost of one call, rounded to six decimal places."""
    usage = normalize_usage(usage)
    non_cached = usage.prompt_tokens - usage.cached_prompt_tokens
    raw = (
        non_cached * rates.cost_per_k_non_cached
        + usage.cached_prompt_tokens * rates.cost_per_k_cached
        + usage.completion_tokens * rates.cost_per_k_output
    ) / _PER_K
    return raw.quantize(COST_PRECISION, rounding=ROUND_HALF_UP)


def accumulate(total: Decimal, turn_cost: Decimal) -> Decimal:
    """Add one turn's cost to a running session total."""
    return (total + turn_cost).quantize(COST_PRECISION, rounding=ROUND_HALF_UP)


@dataclass(slots=True)
class CostSnapshot:
    """Running cost state of a session."""

    turns_billed: int = 0
    prompt_tokens: int = 0
    cached_prompt_tokens: int = 0
    completion_tokens: int = 0
    total_cost: Decimal = Decimal("0")

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class CostTracker:
    """Accumulates per-turn costs for one session.

    The total is only ever accumulated from per-turn figures, never
    recomputed from the summed token counts.
    """

    def __init__(self, rates: RateTable) -> None:
        self._rates = rates
        self._snapshot = CostSnapshot()

    @property
    def rates(self) -> RateTable:
        return self._rates

    @property
    def total_cost(self) -> Decimal:
        return self._snapshot.total_cost

    def record_usage(self, usage: UsageStats) -> Decimal:
        """Record one turn's usage and return that turn's cost."""
        usage = normalize_usage(usage)
        turn_cost = estimate_cost(usage, self._rates)
        snap = self._snapshot
        snap.turns_billed += 1
        snap.prompt_tokens += usage.prompt_tokens
        snap.cached_prompt_tokens += usage.cached_prompt_tokens
        snap.completion_tokens += usage.completion_tokens
        snap.total_cost = accumulate(snap.total_cost, turn_cost)
        return turn_cost

    def snapshot(self) -> CostSnapshot:
        """Return a copy of the current state."""
        snap = self._snapshot
        return CostSnapshot(
            turns_billed=snap.turns_billed,
            prompt_tokens=snap.prompt_tokens,
            cached_prompt_tokens=snap.cached_prompt_tokens,
            completion_tokens=snap.completion_tokens,
            total_cost=snap.total_cost,
        )
