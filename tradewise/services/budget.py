"""Daily spend tracking for completion calls.

The ledger is an immutable value; the pure helpers take a ledger and return a
new one. :class:`BudgetGate` owns the current ledger for a caller and is the
only place it is replaced, always synchronously so that a read and the
following write can never interleave with another task.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Optional

from tradewise.domain.errors import DailyLimitExceeded

logger = logging.getLogger(__name__)

COST_QUANTUM = Decimal("0.000001")
DISPLAY_QUANTUM = Decimal("0.001")
ZERO = Decimal("0")


def to_decimal(value: object) -> Decimal:
    """Convert ints, floats and strings to Decimal without binary noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class ModelTier:
    name: str
    model: str
    cost_per_1k: Decimal


MODEL_TIERS: dict[str, ModelTier] = {
    "fast": ModelTier("fast", "gpt-3.5-turbo", Decimal("0.002")),
    "standard": ModelTier("standard", "gpt-4-turbo-preview", Decimal("0.01")),
    "premium": ModelTier("premium", "gpt-4", Decimal("0.03")),
}
DEFAULT_TIER = "fast"


def get_tier(name: Optional[str]) -> ModelTier:
    """Return a tier by name (``fast``/``standard``/``premium``) or model id."""
    key = (name or DEFAULT_TIER).strip()
    if key in MODEL_TIERS:
        return MODEL_TIERS[key]
    for tier in MODEL_TIERS.values():
        if tier.model == key:
            return tier
    raise ValueError(f"Unknown model tier '{name}'")


@dataclass(frozen=True)
class SpendLedger:
    """Spend for one calendar day.

    - daily_total: accumulated cost since ``reset_date``
    - daily_limit: ceiling a preflight estimate may not cross
    - reset_date: the local date the total belongs to
    """

    daily_total: Decimal
    daily_limit: Decimal
    reset_date: date

    def __post_init__(self) -> None:
        total = to_decimal(self.daily_total)
        limit = to_decimal(self.daily_limit)
        if total < 0:
            raise ValueError("daily_total cannot be negative")
        if limit < 0:
            raise ValueError("daily_limit cannot be negative")
        object.__setattr__(self, "daily_total", total)
        object.__setattr__(self, "daily_limit", limit)


def estimate_cost(tokens: int, tier: ModelTier) -> Decimal:
    return Decimal(max(int(tokens), 0)) / Decimal(1000) * tier.cost_per_1k


def rollover(ledger: SpendLedger, today: date) -> SpendLedger:
    if ledger.reset_date == today:
        return ledger
    return replace(ledger, daily_total=ZERO, reset_date=today)


def preflight(
    ledger: SpendLedger,
    estimated_tokens: int,
    tier: ModelTier,
    *,
    today: date,
) -> tuple[bool, SpendLedger]:
    """Return whether the estimated call fits under the limit, plus the rolled-over ledger."""
    current = rollover(ledger, today)
    projected = current.daily_total + estimate_cost(estimated_tokens, tier)
    return projected <= current.daily_limit, current


def commit(
    ledger: SpendLedger,
    actual_tokens: int,
    tier: ModelTier,
    *,
    today: date,
) -> SpendLedger:
    """Add the real cost of a finished call to the ledger."""
    current = rollover(ledger, today)
    total = current.daily_total + estimate_cost(actual_tokens, tier)
    return replace(
        current, daily_total=total.quantize(COST_QUANTUM, rounding=ROUND_HALF_UP)
    )


def format_cost(value: Decimal) -> str:
    return str(to_decimal(value).quantize(DISPLAY_QUANTUM, rounding=ROUND_HALF_UP))


class BudgetGate:
    """Holds a caller-owned ledger and guards completion calls with it.

    Args:
        ledger: Starting ledger, usually built from persisted settings.
        on_change: Called with the new ledger after every replacement.
        clock: Returns today's local date; injectable for tests.
    """

    def __init__(
        self,
        ledger: SpendLedger,
        *,
        on_change: Optional[Callable[[SpendLedger], None]] = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self._ledger = ledger
        self._on_change = on_change
        self._clock = clock

    @property
    def ledger(self) -> SpendLedger:
        current = rollover(self._ledger, self._clock())
        if current is not self._ledger:
            self._replace(current)
        return self._ledger

    def check(self, estimated_tokens: int, tier: ModelTier) -> Decimal:
        """Raise :class:`DailyLimitExceeded` unless the call fits; return the estimate."""
        allowed, current = preflight(
            self._ledger, estimated_tokens, tier, today=self._clock()
        )
        if current is not self._ledger:
            self._replace(current)
        estimated = estimate_cost(estimated_tokens, tier)
        if not allowed:
            logger.warning(
                "[budget] Daily limit reached: total=%s estimate=%s limit=%s",
                format_cost(current.daily_total),
                format_cost(estimated),
                format_cost(current.daily_limit),
            )
            raise DailyLimitExceeded(
                f"Daily limit of {format_cost(current.daily_limit)} would be exceeded"
            )
        return estimated

    def commit(self, actual_tokens: int, tier: ModelTier) -> Decimal:
        updated = commit(self._ledger, actual_tokens, tier, today=self._clock())
        self._replace(updated)
        logger.info(
            "[budget] Committed %s tokens on %s, daily total %s",
            actual_tokens,
            tier.model,
            format_cost(updated.daily_total),
        )
        return updated.daily_total

    def remaining(self) -> Decimal:
        current = self.ledger
        return max(current.daily_limit - current.daily_total, ZERO)

    def _replace(self, ledger: SpendLedger) -> None:
        self._ledger = ledger
        if self._on_change is not None:
            self._on_change(ledger)


__all__ = [
    "BudgetGate",
    "COST_QUANTUM",
    "DEFAULT_TIER",
    "MODEL_TIERS",
    "ModelTier",
    "SpendLedger",
    "commit",
    "estimate_cost",
    "format_cost",
    "get_tier",
    "preflight",
    "rollover",
    "to_decimal",
]
