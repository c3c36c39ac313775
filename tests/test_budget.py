from datetime import date, timedelta
from decimal import Decimal

import pytest

from tradewise.domain.errors import DailyLimitExceeded
from tradewise.services.budget import (
    MODEL_TIERS,
    BudgetGate,
    SpendLedger,
    commit,
    estimate_cost,
    format_cost,
    get_tier,
    preflight,
    rollover,
)

TODAY = date(2025, 3, 14)

FAST = MODEL_TIERS["fast"]


def _ledger(total="0", limit="5", day=TODAY):
    return SpendLedger(daily_total=Decimal(total), daily_limit=Decimal(limit), reset_date=day)


def test_estimate_uses_tier_price():
    assert estimate_cost(1000, FAST) == Decimal("0.002")
    assert estimate_cost(500, MODEL_TIERS["premium"]) == Decimal("0.015")
    assert estimate_cost(-10, FAST) == Decimal("0")


def test_get_tier_accepts_names_and_model_ids():
    assert get_tier("standard").model == "gpt-4-turbo-preview"
    assert get_tier("gpt-4").name == "premium"
    assert get_tier(None).name == "fast"
    with pytest.raises(ValueError):
        get_tier("davinci")


def test_ledger_rejects_negative_values():
    with pytest.raises(ValueError):
        _ledger(total="-1")
    with pytest.raises(ValueError):
        _ledger(limit="-0.5")


def test_ledger_coerces_floats_without_binary_noise():
    ledger = SpendLedger(daily_total=0.1, daily_limit=5, reset_date=TODAY)
    assert ledger.daily_total == Decimal("0.1")


def test_preflight_refuses_call_crossing_the_limit():
    allowed, current = preflight(_ledger("4.999", "5.0"), 1000, FAST, today=TODAY)
    assert allowed is False
    assert current.daily_total == Decimal("4.999")


def test_preflight_allows_call_landing_on_the_limit():
    allowed, _ = preflight(_ledger("4.998", "5.0"), 1000, FAST, today=TODAY)
    assert allowed is True


def test_commit_is_monotonic_within_a_day():
    ledger = _ledger()
    totals = []
    for tokens in (120, 0, 987, 45):
        ledger = commit(ledger, tokens, FAST, today=TODAY)
        totals.append(ledger.daily_total)
    assert totals == sorted(totals)
    assert totals[-1] == Decimal("0.002304")


def test_rollover_resets_on_a_new_day():
    tomorrow = TODAY + timedelta(days=1)
    rolled = rollover(_ledger("3.2"), tomorrow)
    assert rolled.daily_total == Decimal("0")
    assert rolled.reset_date == tomorrow
    assert rolled.daily_limit == Decimal("5")


def test_commit_after_midnight_starts_from_zero():
    tomorrow = TODAY + timedelta(days=1)
    ledger = commit(_ledger("4.5"), 1000, FAST, today=tomorrow)
    assert ledger.daily_total == Decimal("0.002")
    assert ledger.reset_date == tomorrow


def test_format_cost_shows_three_decimals():
    assert format_cost(Decimal("0.0015")) == "0.002"
    assert format_cost(Decimal("5")) == "5.000"


def test_gate_raises_when_limit_would_be_exceeded():
    gate = BudgetGate(_ledger("4.999", "5.0"), clock=lambda: TODAY)
    with pytest.raises(DailyLimitExceeded):
        gate.check(1000, FAST)
    assert gate.ledger.daily_total == Decimal("4.999")


def test_gate_commit_notifies_and_tracks_remaining():
    seen = []
    gate = BudgetGate(_ledger(), on_change=seen.append, clock=lambda: TODAY)
    assert gate.check(1000, FAST) == Decimal("0.002")
    assert gate.commit(1500, FAST) == Decimal("0.003")
    assert [l.daily_total for l in seen] == [Decimal("0.003")]
    assert gate.remaining() == Decimal("4.997")


def test_gate_rolls_over_when_the_clock_moves():
    days = iter([TODAY, TODAY + timedelta(days=1)])
    current = {"day": next(days)}
    seen = []
    gate = BudgetGate(_ledger("2"), on_change=seen.append, clock=lambda: current["day"])
    assert gate.ledger.daily_total == Decimal("2")
    current["day"] = next(days)
    assert gate.ledger.daily_total == Decimal("0")
    assert seen[-1].reset_date == TODAY + timedelta(days=1)


def test_reset_date_prior_to_today_is_reset_before_preflight():
    stale = _ledger("4.999", "5.0", day=date(2025, 3, 1))
    allowed, current = preflight(stale, 1000, FAST, today=TODAY)
    assert allowed is True
    assert current.daily_total == Decimal("0")
