"""English to French translation of news headlines through MyMemory.

Translations are cached per text and requests are spaced by a fixed delay.
Any failure returns the source text unchanged.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Callable, Iterable, Optional

import httpx

from tradewise.domain.models import NewsItem

logger = logging.getLogger(__name__)

MYMEMORY_URL = "https://api.mymemory.translated.net/get"
LANG_PAIR = "en|fr"
RATE_LIMIT_SECONDS = 1.0
TRANSLATE_TIMEOUT_SECONDS = 10.0

FRENCH_WORDS = frozenset({"le", "la", "les", "un", "une", "des", "et", "ou", "donc"})
_FRENCH_CHARS = re.compile(r"[éèêëàâäôöûüçîïÉÈÊËÀÂÄÔÖÛÜÇÎÏ]")
_HAS_LETTER = re.compile(r"[a-zA-Z]")
_URL = re.compile(r"^https?://")


def should_translate(text: str) -> bool:
    """Skip empty, numeric, URL or already-French text."""
    if not text or not text.strip() or len(text) < 3:
        return False
    if not _HAS_LETTER.search(text):
        return False
    if _FRENCH_CHARS.search(text):
        return False
    if _URL.match(text):
        return False
    words = text.lower().split()
    french = sum(1 for w in words if w in FRENCH_WORDS)
    return french / len(words) <= 0.3


class Translator:
    """Cached, rate-limited client for the MyMemory ``get`` endpoint.

    Args:
        client: httpx client to reuse; one is created (and owned) otherwise.
        delay_seconds: pause after each network request.
        sleep: injectable for tests.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        *,
        delay_seconds: float = RATE_LIMIT_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=TRANSLATE_TIMEOUT_SECONDS)
        self._delay = delay_seconds
        self._sleep = sleep
        self.cache: dict[str, str] = {}

    def translate(self, text: str) -> str:
        if not should_translate(text):
            return text
        if text in self.cache:
            return self.cache[text]

        try:
            response = self._client.get(MYMEMORY_URL, params={"q": text, "langpair": LANG_PAIR})
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("[translator] Translation failed, keeping source text: %s", exc)
            return text
        finally:
            if self._delay:
                self._sleep(self._delay)

        if not isinstance(data, dict):
            data = {}
        translated = str((data.get("responseData") or {}).get("translatedText") or "").strip()
        if data.get("responseStatus") != 200 or not translated:
            logger.warning("[translator] Unusable response for %r", text[:50])
            return text
        if translated.lower() == text.lower():
            return text
        self.cache[text] = translated
        return translated

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


def translate_news(
    items: Iterable[NewsItem],
    *,
    translator: Optional[Translator] = None,
    client: Optional[httpx.Client] = None,
) -> list[NewsItem]:
    """Return copies of ``items`` with ``translated_title``/``translated_content`` filled."""
    owned = translator is None
    engine = translator or Translator(client)
    try:
        translated: list[NewsItem] = []
        for item in items:
            title = engine.translate(item.title)
            content = engine.translate(item.content) if item.content else item.content
            translated.append(
                item.model_copy(
                    update={
                        "translated_title": title if title != item.title else None,
                        "translated_content": content if content != item.content else None,
                    }
                )
            )
        return translated
    finally:
        if owned:
            engine.close()


__all__ = ["Translator", "should_translate", "translate_news"]
