"""Registry of analysis features.

A feature ties together its prompt template, the context fields it needs,
the response format it asks for and, for JSON features, the schema its
answer must satisfy.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from tradewise.domain.errors import NoRelevantData, UnknownFeature
from tradewise.domain.schemas import (
    CENTRAL_BANK_SCHEMA,
    COMMODITIES_SCHEMA,
    PAIR_SCHEMA,
    SENTIMENT_SCHEMA,
    SESSION_SCHEMA,
    TRADING_SIGNALS_SCHEMA,
    VOLATILITY_PAIRS,
    VOLATILITY_SCHEMA,
    FeatureSchema,
)
from tradewise.domain.sessions import pair_keyword, session_pairs
from tradewise.prompts.prompts import Prompts
from tradewise.services.context_builder import ContextBundle, ContextField, assemble

DEFAULT_MAX_TOKENS = 1000
TEXT_ERROR_MARKERS = ("erreur", "Erreur")


def _session_keywords(other: Mapping[str, Any]) -> tuple[str, ...]:
    pairs = session_pairs(str(other.get("session") or ""))
    return tuple(pair_keyword(p) for p in pairs)


def _pair_keywords(other: Mapping[str, Any]) -> tuple[str, ...]:
    pair = str(other.get("pair") or "").strip()
    if not pair:
        return ()
    return (pair_keyword(pair), pair.lower())


@dataclass(frozen=True)
class FeatureSpec:
    """One analysis feature.

    ``prompt_key`` names the user-overridable template in settings; features
    without one always use ``template``. ``keyword_fn`` derives extra news
    keywords from the ``other`` inputs (session or pair features); when it
    yields nothing the feature cannot run.
    """

    id: str
    template: str
    fields: tuple[ContextField, ...]
    response_format: str = "text"
    schema: Optional[FeatureSchema] = None
    prompt_key: Optional[str] = None
    error_markers: tuple[str, ...] = ()
    max_tokens: int = DEFAULT_MAX_TOKENS
    keyword_fn: Optional[Callable[[Mapping[str, Any]], tuple[str, ...]]] = None

    @property
    def expects_json(self) -> bool:
        return self.response_format == "json"

    def resolve_template(self, prompts: Optional[Mapping[str, str]] = None) -> str:
        if self.prompt_key and prompts and prompts.get(self.prompt_key):
            return prompts[self.prompt_key]
        return self.template

    def build_context(self, raw_inputs: Mapping[str, Any]) -> ContextBundle:
        extra: tuple[str, ...] = ()
        if self.keyword_fn is not None:
            extra = self.keyword_fn(raw_inputs.get("other") or {})
            if not extra:
                raise NoRelevantData(f"No relevance keywords for feature '{self.id}'")
        return assemble(self.fields, raw_inputs, extra_keywords=extra)


_MARKET = ContextField("marketContext", "quotes", max_length=600)

FEATURES: dict[str, FeatureSpec] = {
    "fundamental_analysis": FeatureSpec(
        id="fundamental_analysis",
        template=Prompts.FUNDAMENTAL_ANALYSIS,
        prompt_key="fundamental_analysis",
        fields=(
            ContextField(
                "newsContext", "news", max_length=3000, limit=10,
                required=True, style="detailed",
            ),
        ),
        error_markers=TEXT_ERROR_MARKERS,
    ),
    "trading_signals": FeatureSpec(
        id="trading_signals",
        template=Prompts.TRADING_SIGNALS,
        prompt_key="trading_signals",
        response_format="json",
        schema=TRADING_SIGNALS_SCHEMA,
        fields=(
            _MARKET,
            ContextField(
                "newsContext", "news", max_length=500, limit=5,
                required=True, style="bullet",
            ),
        ),
    ),
    "ai_insights": FeatureSpec(
        id="ai_insights",
        template=Prompts.AI_INSIGHTS,
        prompt_key="ai_insights",
        fields=(
            _MARKET,
            ContextField("newsContext", "news", max_length=500, limit=3, style="bullet"),
            ContextField("question", "other", max_length=500, required=True),
        ),
    ),
    "mascot": FeatureSpec(
        id="mascot",
        template=Prompts.MASCOT,
        prompt_key="mascot",
        fields=(
            ContextField(
                "newsContext", "news", max_length=500, limit=5,
                required=True, style="bullet",
            ),
            ContextField("calendarContext", "calendar", max_length=500, limit=5),
        ),
        max_tokens=300,
    ),
    "sentiment": FeatureSpec(
        id="sentiment",
        template=Prompts.SENTIMENT,
        response_format="json",
        schema=SENTIMENT_SCHEMA,
        fields=(
            _MARKET,
            ContextField(
                "newsContext", "news", max_length=500, limit=10,
                required=True, style="bullet",
            ),
        ),
    ),
    "volatility": FeatureSpec(
        id="volatility",
        template=Prompts.VOLATILITY,
        response_format="json",
        schema=VOLATILITY_SCHEMA,
        fields=(
            ContextField(
                "marketContext", "quotes", max_length=300, symbols=VOLATILITY_PAIRS
            ),
            ContextField(
                "newsContext", "news", max_length=500, limit=3, required=True,
                keywords=(
                    "eur", "usd", "gbp", "jpy",
                    "volatility", "volatilité", "movement", "mouvement",
                ),
            ),
        ),
    ),
    "central_bank": FeatureSpec(
        id="central_bank",
        template=Prompts.CENTRAL_BANK,
        response_format="json",
        schema=CENTRAL_BANK_SCHEMA,
        fields=(
            ContextField(
                "newsContext", "news", max_length=500, limit=5, required=True,
                title_keywords=("bce", "ecb", "fed", "boe"),
                keywords=("banque centrale", "central bank", "rate", "inflation"),
            ),
        ),
    ),
    "commodities": FeatureSpec(
        id="commodities",
        template=Prompts.COMMODITIES,
        response_format="json",
        schema=COMMODITIES_SCHEMA,
        fields=(
            ContextField(
                "newsContext", "news", max_length=500, limit=5, required=True,
                keywords=(
                    "gold", "oil", "silver", "copper", "commodity", "commodities",
                    "metals", "energy", "pétrole", "argent", "cuivre",
                ),
            ),
        ),
    ),
    "session": FeatureSpec(
        id="session",
        template=Prompts.SESSION,
        response_format="json",
        schema=SESSION_SCHEMA,
        fields=(
            ContextField("session", "other", max_length=20, required=True),
            ContextField("newsContext", "news", max_length=500, limit=3, required=True),
        ),
        keyword_fn=_session_keywords,
    ),
    "pair": FeatureSpec(
        id="pair",
        template=Prompts.PAIR,
        response_format="json",
        schema=PAIR_SCHEMA,
        fields=(
            ContextField("pair", "other", max_length=20, required=True),
            ContextField("newsContext", "news", max_length=500, limit=3, required=True),
        ),
        keyword_fn=_pair_keywords,
    ),
}


def get_feature(feature_id: str) -> FeatureSpec:
    try:
        return FEATURES[feature_id]
    except KeyError:
        raise UnknownFeature(f"Unknown feature '{feature_id}'") from None


__all__ = [
    "DEFAULT_MAX_TOKENS",
    "FEATURES",
    "FeatureSpec",
    "TEXT_ERROR_MARKERS",
    "get_feature",
]
