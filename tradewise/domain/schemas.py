"""Declarative result schemas for each JSON analysis feature.

Each feature describes one element of its answer as a pydantic model: enums
as ``Literal`` members, numeric ranges as ``ge``/``le``, string caps as
``max_length`` and list sizes as ``min_length``/``max_length``. A
:class:`FeatureSchema` adds where that element lives in the parsed payload.
The response resolver validates every element against the model and drops
the ones that fail.

Schemas are authoritative per feature: ``stance`` in the central bank
monitor and ``sentiment`` elsewhere use different value sets on purpose.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

MAJOR_PAIRS = ("EUR/USD", "GBP/USD", "USD/JPY", "AUD/USD", "USD/CHF", "USD/CAD")
VOLATILITY_PAIRS = ("EUR/USD", "GBP/USD", "USD/JPY")

ShortText = Annotated[str, Field(max_length=50)]
Level = Literal["high", "medium", "low"]
FrenchLevel = Literal["haute", "moyenne", "basse"]
Sentiment = Literal["bullish", "bearish", "neutral"]


class _Item(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")


class SentimentItem(_Item):
    pair: Literal["EUR/USD", "GBP/USD", "USD/JPY", "AUD/USD", "USD/CHF", "USD/CAD"]
    sentiment: Sentiment
    score: float = Field(..., ge=-100, le=100)
    confidence: float = Field(..., ge=0, le=100)
    reasoning: str = Field(..., max_length=300)


class VolatilityItem(_Item):
    pair: Literal["EUR/USD", "GBP/USD", "USD/JPY"]
    volatility: Level
    score: float = Field(..., ge=0, le=100)
    triggers: list[ShortText] = Field(..., min_length=2, max_length=3)
    prediction: str = Field(..., max_length=100)


class CentralBankItem(_Item):
    name: Literal["BCE", "FED", "BOE"]
    stance: Literal["Hawkish", "Dovish", "Neutre"]
    summary: str = Field(..., max_length=200)
    trend: Literal["up", "down", "stable"]


class CommodityItem(_Item):
    symbol: Literal["XAU", "XAG", "OIL", "COPPER"]
    name: Literal["Or", "Argent", "Pétrole", "Cuivre"]
    sentiment: Sentiment
    impact: Level
    price: str = Field(..., max_length=50)
    trend: str = Field(..., max_length=50)
    catalysts: list[str] = Field(..., min_length=2, max_length=3)
    risks: list[str] = Field(..., min_length=2, max_length=3)


class TradingSignalItem(_Item):
    symbol: str = Field(..., min_length=1, max_length=20)
    direction: Literal["buy", "sell"]
    timing: str = Field(..., max_length=50)
    volatility: Level
    duration: str = Field(..., max_length=50)
    analysis: str = Field(..., max_length=300)


class SessionOpportunity(_Item):
    pair: str = Field(..., max_length=20)
    type: Literal["breakout", "range", "trend"]
    description: str = Field(..., max_length=200)


class SessionItem(_Item):
    pairs: list[str] = Field(..., max_length=10)
    activity: FrenchLevel
    volatility: FrenchLevel
    opportunities: list[SessionOpportunity] = Field(..., max_length=5)


class PairItem(_Item):
    sentiment: Sentiment
    volatility: FrenchLevel
    activity: FrenchLevel
    catalysts: list[str] = Field(..., min_length=1, max_length=3)
    risks: list[str] = Field(..., min_length=1, max_length=3)


@dataclass(frozen=True)
class FeatureSchema:
    """Where the elements sit in the payload and how each one must look.

    - root_key: top-level key holding the elements
    - item_model: pydantic model every element must satisfy
    - single: the root holds one object instead of an array
    - max_items: keep at most this many valid elements
    """

    root_key: str
    item_model: Type[BaseModel]
    single: bool = False
    max_items: Optional[int] = None


SENTIMENT_SCHEMA = FeatureSchema("analysis", SentimentItem)
VOLATILITY_SCHEMA = FeatureSchema("analysis", VolatilityItem)
CENTRAL_BANK_SCHEMA = FeatureSchema("banks", CentralBankItem)
COMMODITIES_SCHEMA = FeatureSchema("commodities", CommodityItem, max_items=4)
TRADING_SIGNALS_SCHEMA = FeatureSchema("signals", TradingSignalItem)
SESSION_SCHEMA = FeatureSchema("analysis", SessionItem, single=True)
PAIR_SCHEMA = FeatureSchema("analysis", PairItem, single=True)


__all__ = [
    "CENTRAL_BANK_SCHEMA",
    "COMMODITIES_SCHEMA",
    "CentralBankItem",
    "CommodityItem",
    "FeatureSchema",
    "MAJOR_PAIRS",
    "PAIR_SCHEMA",
    "PairItem",
    "SENTIMENT_SCHEMA",
    "SESSION_SCHEMA",
    "SentimentItem",
    "SessionItem",
    "SessionOpportunity",
    "TRADING_SIGNALS_SCHEMA",
    "TradingSignalItem",
    "VOLATILITY_PAIRS",
    "VOLATILITY_SCHEMA",
    "VolatilityItem",
]
