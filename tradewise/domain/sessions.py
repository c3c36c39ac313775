"""Forex trading sessions, expressed in Paris local hours."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

PARIS_TZ = ZoneInfo("Europe/Paris")


@dataclass(frozen=True)
class TradingSession:
    name: str
    start: int
    end: int
    pairs: tuple[str, ...]
    description: str
    volatility: str

    def is_active(self, hour: int) -> bool:
        # Sessions such as Sydney run across midnight.
        if self.start < self.end:
            return self.start <= hour < self.end
        return hour >= self.start or hour < self.end


TRADING_SESSIONS: dict[str, TradingSession] = {
    "Sydney": TradingSession(
        name="Sydney",
        start=22,
        end=7,
        pairs=("AUD/USD", "NZD/USD", "AUD/JPY", "EUR/AUD", "GBP/AUD"),
        description="Session océanique avec focus sur l'AUD et le NZD",
        volatility="low",
    ),
    "Tokyo": TradingSession(
        name="Tokyo",
        start=0,
        end=9,
        pairs=("USD/JPY", "EUR/JPY", "GBP/JPY", "AUD/JPY", "CHF/JPY"),
        description="Session asiatique dominée par le Yen",
        volatility="medium",
    ),
    "Londres": TradingSession(
        name="Londres",
        start=8,
        end=17,
        pairs=("GBP/USD", "EUR/GBP", "EUR/USD", "GBP/JPY", "EUR/CHF"),
        description="Session européenne la plus volatile",
        volatility="high",
    ),
    "New York": TradingSession(
        name="New York",
        start=13,
        end=22,
        pairs=("EUR/USD", "USD/CAD", "USD/CHF", "GBP/USD", "USD/JPY"),
        description="Session américaine avec forte liquidité",
        volatility="high",
    ),
}


def active_sessions(now: Optional[datetime] = None) -> list[TradingSession]:
    """Return the sessions open at ``now`` (defaults to the current Paris time).

    Naive datetimes are taken as Paris local time.
    """
    if now is None:
        now = datetime.now(PARIS_TZ)
    elif now.tzinfo is not None:
        now = now.astimezone(PARIS_TZ)
    return [s for s in TRADING_SESSIONS.values() if s.is_active(now.hour)]


def session_pairs(name: str) -> tuple[str, ...]:
    session = TRADING_SESSIONS.get(name)
    return session.pairs if session else ()


def pair_keyword(pair: str) -> str:
    """``EUR/USD`` -> ``eurusd``, the form pairs take in headlines."""
    return pair.lower().replace("/", "")


__all__ = [
    "PARIS_TZ",
    "TRADING_SESSIONS",
    "TradingSession",
    "active_sessions",
    "pair_keyword",
    "session_pairs",
]
