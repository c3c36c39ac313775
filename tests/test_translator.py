import httpx
import pytest

from tradewise.data import collector
from tradewise.data.translator import LANG_PAIR, Translator, should_translate, translate_news
from tradewise.domain.models import NewsItem

FRENCH = {
    "Gold hits record as dollar slips": "L'or atteint un record alors que le dollar recule",
    "Bullion and silver rallied": "Les métaux précieux ont progressé",
}


def mymemory(calls, status=200, response_status=200):
    def handler(request):
        calls.append(request)
        text = request.url.params["q"]
        payload = {
            "responseData": {"translatedText": FRENCH.get(text, text)},
            "responseStatus": response_status,
        }
        return httpx.Response(status, json=payload)

    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.mark.parametrize(
    "text",
    ["", "ok", "1.0925 / 148.75", "https://www.forexlive.com/news", "Prévision de la BCE",
     "le dollar et la livre"],
)
def test_text_that_is_not_translated(text):
    assert not should_translate(text)


def test_english_headline_is_translated():
    assert should_translate("Gold hits record as dollar slips")


def test_translation_is_requested_and_cached():
    calls, delays = [], []
    translator = Translator(mymemory(calls), sleep=delays.append)

    first = translator.translate("Gold hits record as dollar slips")
    second = translator.translate("Gold hits record as dollar slips")

    assert first == second == FRENCH["Gold hits record as dollar slips"]
    assert len(calls) == 1
    assert calls[0].url.params["langpair"] == LANG_PAIR
    assert delays == [1.0]


def test_skipped_text_never_reaches_the_network():
    calls = []
    translator = Translator(mymemory(calls), delay_seconds=0)
    assert translator.translate("Prévision de la BCE") == "Prévision de la BCE"
    assert calls == []


@pytest.mark.parametrize("status,response_status", [(500, 200), (200, 403)])
def test_failures_fall_back_to_source_text(status, response_status):
    calls = []
    translator = Translator(mymemory(calls, status, response_status), delay_seconds=0)

    text = "Gold hits record as dollar slips"
    assert translator.translate(text) == text
    assert translator.cache == {}


def test_unchanged_translation_is_not_cached():
    calls = []
    translator = Translator(mymemory(calls), delay_seconds=0)
    translator.translate("USD/JPY breaks resistance")
    translator.translate("USD/JPY breaks resistance")
    assert len(calls) == 2
    assert translator.cache == {}


def test_translate_news_fills_translated_fields():
    items = [
        NewsItem(title="Gold hits record as dollar slips", content="Bullion and silver rallied"),
        NewsItem(title="USD/JPY breaks resistance", content=""),
    ]
    translator = Translator(mymemory([]), delay_seconds=0)

    translated = translate_news(items, translator=translator)

    assert translated[0].translated_title == FRENCH[items[0].title]
    assert translated[0].translated_content == FRENCH[items[0].content]
    assert translated[1].translated_title is None
    assert translated[1].translated_content is None
    # originals are left untouched
    assert items[0].translated_title is None


def test_translate_news_leaves_a_borrowed_client_open():
    calls = []
    client = mymemory(calls)
    translated = translate_news([NewsItem(title="Prévision de la BCE")], client=client)
    assert translated[0].translated_title is None
    assert calls == []
    assert not client.is_closed


def test_snapshot_translates_fresh_news(monkeypatch):
    monkeypatch.setattr(
        collector, "fetch_news", lambda: [NewsItem(title="Gold hits record as dollar slips")]
    )
    translator = Translator(mymemory([]), delay_seconds=0)

    snapshot = collector.collect_snapshot(demo=True, translator=translator)

    assert snapshot.news[0].translated_title == FRENCH["Gold hits record as dollar slips"]


def test_snapshot_can_skip_translation(monkeypatch):
    calls = []
    monkeypatch.setattr(
        collector, "fetch_news", lambda: [NewsItem(title="Gold hits record as dollar slips")]
    )
    translator = Translator(mymemory(calls), delay_seconds=0)

    snapshot = collector.collect_snapshot(demo=True, translate=False, translator=translator)

    assert snapshot.news[0].translated_title is None
    assert calls == []
