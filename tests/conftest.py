import pytest

from tradewise.domain.models import CalendarEvent, NewsItem, Quote
from tradewise.openai_integration import Completion


class FakeCompletionClient:
    """Records requests and answers with a canned completion."""

    def __init__(self, text: str = "", total_tokens: int = 0):
        self.text = text
        self.total_tokens = total_tokens
        self.requests = []

    async def complete(self, request):
        self.requests.append(request)
        return Completion(text=self.text, total_tokens=self.total_tokens, model=request.model)


@pytest.fixture
def news_items():
    return [
        NewsItem(
            title="ECB holds rates, Lagarde signals patience",
            content="The central bank kept its deposit rate unchanged.",
            pub_date="Fri, 14 Mar 2025 10:00:00 GMT",
            author="Adam Button",
        ),
        NewsItem(
            title="EURUSD climbs above 1.09 after German data",
            content="The euro extended gains in the European session.",
            pub_date="Fri, 14 Mar 2025 12:30:00 GMT",
        ),
        NewsItem(
            title="Gold hits record as dollar slips",
            content="Bullion and silver rallied while oil was flat.",
            pub_date="Fri, 14 Mar 2025 08:15:00 GMT",
        ),
    ]


@pytest.fixture
def quotes():
    return [
        Quote(symbol="EUR/USD", price=1.0925, change=0.0015, change_percent=0.14),
        Quote(symbol="GBP/USD", price=1.265, change=-0.0025, change_percent=-0.2),
        Quote(symbol="USD/JPY", price=148.75, change=0.45, change_percent=0.3),
        Quote(symbol="USD/CAD", price=1.348, change=0.002, change_percent=0.15),
    ]


@pytest.fixture
def calendar():
    return [
        CalendarEvent(date="2025-03-14", time="10:00", currency="EUR", impact="medium",
                      event="ZEW Economic Sentiment"),
        CalendarEvent(date="2025-03-14", time="14:30", currency="USD", impact="high",
                      event="Non-Farm Payrolls"),
    ]


@pytest.fixture
def raw_inputs(news_items, quotes, calendar):
    return {
        "news": news_items,
        "quotes": quotes,
        "calendar": calendar,
        "other": {},
    }


@pytest.fixture
def fake_client():
    return FakeCompletionClient()
