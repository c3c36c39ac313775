"""Default collaborator feeds: RSS news, forex quotes and calendar events.

Every fetch degrades to cached or static fallback data on failure; none of
them raise for transport problems.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Iterable, Optional, Sequence

import feedparser
import httpx
import pandas as pd

from tradewise.data.translator import Translator, translate_news
from tradewise.domain.models import CalendarEvent, NewsItem, Quote
from tradewise.domain.schemas import MAJOR_PAIRS

logger = logging.getLogger(__name__)

RSS_FEEDS: Sequence[str] = (
    "https://www.forexlive.com/feed",
    "https://www.forexlive.com/feed/news",
    "https://www.forexlive.com/feed/technicalanalysis",
    "https://www.forexlive.com/feed/centralbank",
)
NEWS_LIMIT = 10
CONTENT_MAX_CHARS = 200
FETCH_TIMEOUT_SECONDS = 15.0

FALLBACK_QUOTES: tuple[Quote, ...] = (
    Quote(symbol="EUR/USD", price=1.0925, change=0.0015, change_percent=0.14),
    Quote(symbol="GBP/USD", price=1.2650, change=-0.0025, change_percent=-0.20),
    Quote(symbol="USD/JPY", price=148.75, change=0.45, change_percent=0.30),
    Quote(symbol="AUD/USD", price=0.6580, change=-0.0012, change_percent=-0.18),
    Quote(symbol="USD/CHF", price=0.8790, change=0.0008, change_percent=0.09),
    Quote(symbol="USD/CAD", price=1.3480, change=0.0020, change_percent=0.15),
)

_TAG_PATTERN = re.compile(r"<[^>]*>")
_CDATA_PATTERN = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.DOTALL)


def _fallback_calendar(today: Optional[date] = None) -> list[CalendarEvent]:
    day = today or date.today()
    return [
        CalendarEvent(date=day.isoformat(), time="14:30", currency="USD", impact="high",
                      event="Non-Farm Payrolls"),
        CalendarEvent(date=day.isoformat(), time="10:00", currency="EUR", impact="medium",
                      event="ZEW Economic Sentiment"),
        CalendarEvent(date=(day + timedelta(days=1)).isoformat(), time="13:00",
                      currency="GBP", impact="high", event="BoE Interest Rate Decision"),
    ]


def clean_text(text: str) -> str:
    text = _CDATA_PATTERN.sub(r"\1", text or "")
    text = _TAG_PATTERN.sub("", text)
    return re.sub(r"\s+", " ", text).strip()


def truncate_content(text: str, max_chars: int = CONTENT_MAX_CHARS) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars].strip() + "..."


def parse_feed(payload: str) -> list[NewsItem]:
    """Parse one RSS document into news items; entries without title or link are skipped."""
    parsed = feedparser.parse(payload)
    items: list[NewsItem] = []
    for entry in parsed.entries:
        title = clean_text(getattr(entry, "title", "") or "")
        link = getattr(entry, "link", "") or ""
        if not title or not link:
            continue
        tags = getattr(entry, "tags", None) or []
        category = clean_text(tags[0].get("term", "")) if tags else ""
        items.append(
            NewsItem(
                title=title,
                link=link,
                pub_date=getattr(entry, "published", "") or getattr(entry, "updated", "") or "",
                content=truncate_content(clean_text(getattr(entry, "summary", "") or "")),
                category=category or "News",
                author=clean_text(getattr(entry, "author", "") or "") or None,
            )
        )
    return items


def dedupe_news(items: Iterable[NewsItem]) -> list[NewsItem]:
    seen: set[str] = set()
    unique: list[NewsItem] = []
    for item in items:
        key = f"{item.title.lower()}-{item.content[:50].lower()}"
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


def fetch_news(
    feeds: Sequence[str] = RSS_FEEDS,
    *,
    limit: int = NEWS_LIMIT,
    client: Optional[httpx.Client] = None,
) -> list[NewsItem]:
    """Fetch all feeds, dedupe, and return the ``limit`` most recent items."""
    owns_client = client is None
    http = client or httpx.Client(timeout=FETCH_TIMEOUT_SECONDS, follow_redirects=True)
    collected: list[NewsItem] = []
    try:
        for url in feeds:
            try:
                response = http.get(url)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                logger.warning("[collector] Feed %s failed: %s", url, exc)
                continue
            collected.extend(parse_feed(response.text))
    finally:
        if owns_client:
            http.close()

    unique = dedupe_news(collected)
    stamps = pd.to_datetime(
        pd.Series([n.pub_date or None for n in unique], dtype="object"),
        errors="coerce",
        utc=True,
        format="mixed",
    )
    order = stamps.sort_values(ascending=False, na_position="last", kind="stable").index
    return [unique[i] for i in order][:limit]


def yahoo_ticker(pair: str) -> str:
    """``EUR/USD`` -> ``EURUSD=X``."""
    return pair.replace("/", "") + "=X"


def _quote_from_history(pair: str, history: pd.DataFrame) -> Optional[Quote]:
    if history is None or history.empty or "Close" not in history:
        return None
    closes = history["Close"].dropna()
    if closes.empty:
        return None
    last = float(closes.iloc[-1])
    prev = float(closes.iloc[-2]) if len(closes) > 1 else last
    change = last - prev
    change_percent = (change / prev * 100.0) if prev else 0.0
    return Quote(symbol=pair, price=round(last, 5), change=change, change_percent=change_percent)


def fetch_quotes(pairs: Sequence[str] = MAJOR_PAIRS, *, demo: bool = False) -> list[Quote]:
    """Return daily quotes from Yahoo Finance, or the static fallback set."""
    if demo:
        return [q for q in FALLBACK_QUOTES if q.symbol in pairs]

    import yfinance as yf  # imported here to avoid the dependency for other helpers

    quotes: list[Quote] = []
    try:
        for pair in pairs:
            history = yf.Ticker(yahoo_ticker(pair)).history(period="5d")
            quote = _quote_from_history(pair, history)
            if quote is not None:
                quotes.append(quote)
    except Exception as exc:  # yfinance surfaces transport problems as assorted errors
        logger.warning("[collector] Quote fetch failed, using fallback: %s", exc)
        quotes = []

    if len(quotes) != len(pairs):
        fetched = {q.symbol for q in quotes}
        quotes.extend(q for q in FALLBACK_QUOTES if q.symbol in pairs and q.symbol not in fetched)
    return quotes


def fetch_calendar(today: Optional[date] = None) -> list[CalendarEvent]:
    """Return the static calendar sample for the coming days."""
    return _fallback_calendar(today)


@dataclass
class MarketSnapshot:
    """Latest collaborator data held between polling cycles."""

    news: list[NewsItem] = field(default_factory=list)
    quotes: list[Quote] = field(default_factory=list)
    calendar: list[CalendarEvent] = field(default_factory=list)

    def to_raw_inputs(self, **other: Any) -> dict[str, Any]:
        return {
            "news": list(self.news),
            "quotes": list(self.quotes),
            "calendar": list(self.calendar),
            "other": {k: v for k, v in other.items() if v is not None},
        }


def collect_snapshot(
    *,
    demo: bool = False,
    previous: Optional[MarketSnapshot] = None,
    translate: bool = True,
    translator: Optional[Translator] = None,
) -> MarketSnapshot:
    """Refresh every feed; keep the previous news when a refresh comes back empty.

    Fresh headlines are translated to French unless ``translate`` is off;
    pass a long-lived ``translator`` to keep its cache between refreshes.
    """
    news = fetch_news()
    if news and translate:
        news = translate_news(news, translator=translator)
    elif not news and previous is not None:
        news = previous.news
    return MarketSnapshot(
        news=news,
        quotes=fetch_quotes(demo=demo),
        calendar=fetch_calendar(),
    )


__all__ = [
    "FALLBACK_QUOTES",
    "MarketSnapshot",
    "RSS_FEEDS",
    "clean_text",
    "collect_snapshot",
    "dedupe_news",
    "fetch_calendar",
    "fetch_news",
    "fetch_quotes",
    "parse_feed",
    "yahoo_ticker",
]
