"""Assemble bounded prompt context from collaborator data."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence

import pandas as pd
from pydantic import ValidationError

from tradewise.domain.errors import NoRelevantData
from tradewise.domain.models import CalendarEvent, NewsItem, Quote

logger = logging.getLogger(__name__)

ContextBundle = dict[str, str]

TRUNCATION_MARK = "..."


@dataclass(frozen=True)
class ContextField:
    """How one placeholder value is built.

    - name: placeholder name in the template
    - source: ``news``, ``quotes``, ``calendar`` or ``other``
    - keywords: lowercase terms matched against title + content
    - title_keywords: lowercase terms matched against the title only
    - symbols: quote symbols to keep (all when empty)
    - limit: keep at most this many items after filtering and ordering
    - max_length: hard cap on the joined value
    - required: raise :class:`NoRelevantData` when nothing is kept
    - style: news line format, ``title``, ``bullet`` or ``detailed``
    """

    name: str
    source: str
    max_length: int
    keywords: tuple[str, ...] = ()
    title_keywords: tuple[str, ...] = ()
    symbols: tuple[str, ...] = ()
    limit: Optional[int] = None
    required: bool = False
    style: str = "title"


def truncate(text: str, max_length: int) -> str:
    """Cut ``text`` so that the result never exceeds ``max_length``."""
    if max_length <= 0:
        return ""
    if len(text) <= max_length:
        return text
    if max_length <= len(TRUNCATION_MARK):
        return text[:max_length]
    return text[: max_length - len(TRUNCATION_MARK)].rstrip() + TRUNCATION_MARK


def _coerce(items: Optional[Iterable[Any]], model):
    """Return ``items`` as ``model`` instances; records that do not fit are skipped."""
    if not items:
        return []
    kept = []
    for item in items:
        if isinstance(item, model):
            kept.append(item)
            continue
        try:
            kept.append(model.model_validate(item))
        except ValidationError as exc:
            logger.warning(
                "[context_builder] Skipping %s record: %d error(s)", model.__name__, exc.error_count()
            )
    return kept


def _news_matches(item: NewsItem, field: ContextField, extra_keywords: Sequence[str]) -> bool:
    keywords = tuple(field.keywords) + tuple(extra_keywords)
    if not keywords and not field.title_keywords:
        return True
    title = item.title.lower()
    if any(k in title for k in field.title_keywords):
        return True
    haystack = (item.title + " " + item.content).lower()
    return any(k in haystack for k in keywords)


def order_by_recency(news: Sequence[NewsItem]) -> list[NewsItem]:
    """Most recent first; items with unparseable dates keep their order at the end."""
    if not news:
        return []
    stamps = pd.to_datetime(
        pd.Series([n.pub_date or None for n in news], dtype="object"),
        errors="coerce",
        utc=True,
        format="mixed",
    )
    frame = pd.DataFrame({"stamp": stamps, "pos": range(len(news))})
    frame = frame.sort_values(
        by=["stamp", "pos"], ascending=[False, True], na_position="last", kind="stable"
    )
    return [news[i] for i in frame["pos"].tolist()]


def format_news_line(item: NewsItem, style: str) -> str:
    if style == "bullet":
        return f"- {item.display_title}"
    if style == "detailed":
        stamp = pd.to_datetime(item.pub_date or None, errors="coerce", utc=True)
        date_str = "" if pd.isna(stamp) else stamp.date().isoformat()
        return (
            f"- {item.display_title}\n"
            f"  Source: {item.author or 'ForexLive'}\n"
            f"  Date: {date_str}\n"
            f"  Contenu: {item.display_content}"
        )
    return item.display_title


def format_quote_line(quote: Quote) -> str:
    sign = "+" if quote.change_percent > 0 else ""
    return f"{quote.symbol}: {quote.price} ({sign}{quote.change_percent:.2f}%)"


def format_calendar_line(event: CalendarEvent) -> str:
    parts = [event.date, event.time, event.currency, f"[{event.impact}]", event.event]
    return " ".join(p for p in parts if p)


def build_field(
    field: ContextField,
    raw_inputs: Mapping[str, Any],
    *,
    extra_keywords: Sequence[str] = (),
) -> tuple[str, int]:
    """Return the truncated value for ``field`` and how many items went into it."""
    lines: list[str]
    if field.source == "news":
        news = [
            n for n in _coerce(raw_inputs.get("news"), NewsItem)
            if _news_matches(n, field, extra_keywords)
        ]
        news = order_by_recency(news)[: field.limit]
        separator = "\n\n" if field.style == "detailed" else "\n"
        lines = [format_news_line(n, field.style) for n in news]
        return truncate(separator.join(lines), field.max_length), len(lines)

    if field.source == "quotes":
        quotes = _coerce(raw_inputs.get("quotes"), Quote)
        if field.symbols:
            quotes = [q for q in quotes if q.symbol in field.symbols]
        lines = [format_quote_line(q) for q in quotes[: field.limit]]
    elif field.source == "calendar":
        events = _coerce(raw_inputs.get("calendar"), CalendarEvent)
        order = {"high": 0, "medium": 1, "low": 2}
        events = sorted(events, key=lambda e: order.get(e.impact, 3))
        lines = [format_calendar_line(e) for e in events[: field.limit]]
    elif field.source == "other":
        value = (raw_inputs.get("other") or {}).get(field.name)
        text = "" if value is None else str(value).strip()
        lines = [text] if text else []
    else:
        raise ValueError(f"Unknown context source '{field.source}'")

    return truncate("\n".join(lines), field.max_length), len(lines)


def assemble(
    fields: Sequence[ContextField],
    raw_inputs: Mapping[str, Any],
    *,
    extra_keywords: Sequence[str] = (),
) -> ContextBundle:
    """Build the context bundle for one request.

    Raises:
        NoRelevantData: a required field kept no item.
    """
    bundle: ContextBundle = {}
    for field in fields:
        value, count = build_field(field, raw_inputs, extra_keywords=extra_keywords)
        if field.required and count == 0:
            raise NoRelevantData(f"No relevant {field.source} for '{field.name}'")
        bundle[field.name] = value
    return bundle


__all__ = [
    "ContextBundle",
    "ContextField",
    "assemble",
    "build_field",
    "format_calendar_line",
    "format_news_line",
    "format_quote_line",
    "order_by_recency",
    "truncate",
]
