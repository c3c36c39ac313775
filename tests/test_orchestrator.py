import json
from datetime import date
from decimal import Decimal

import pytest

from tradewise.config import Settings
from tradewise.domain.errors import ErrorKind
from tradewise.domain.models import NewsItem
from tradewise.orchestrator import analyze_all, run_analysis
from tradewise.prompts.prompts import JSON_INSTRUCTION_SUFFIX
from tradewise.services.budget import BudgetGate, SpendLedger

TODAY = date(2025, 3, 14)

SENTIMENT_REPLY = json.dumps(
    {
        "analysis": [
            {"pair": "EUR/USD", "sentiment": "bullish", "score": 55, "confidence": 70,
             "reasoning": "BCE ferme"},
            {"pair": "EUR/GBP", "sentiment": "bearish", "score": -20, "confidence": 40,
             "reasoning": "hors liste"},
        ]
    }
)


@pytest.fixture
def settings():
    return Settings(api_key="sk-test", last_reset_date=TODAY)


@pytest.fixture
def gate():
    ledger = SpendLedger(daily_total=Decimal("0"), daily_limit=Decimal("5"), reset_date=TODAY)
    return BudgetGate(ledger, clock=lambda: TODAY)


async def test_json_feature_end_to_end(raw_inputs, settings, gate, fake_client):
    fake_client.text = SENTIMENT_REPLY
    fake_client.total_tokens = 500

    outcome = await run_analysis(
        "sentiment", raw_inputs, settings=settings, gate=gate, client=fake_client
    )

    assert outcome.ok
    assert [item.pair for item in outcome.result.items] == ["EUR/USD"]
    assert len(outcome.result.violations) == 1
    request = fake_client.requests[0]
    assert request.model == "gpt-3.5-turbo"
    assert request.response_format == "json"
    assert request.instructions.endswith(JSON_INSTRUCTION_SUFFIX)
    assert "EUR/USD: 1.0925 (+0.14%)" in request.instructions
    assert gate.ledger.daily_total == Decimal("0.001")


async def test_text_feature_end_to_end(raw_inputs, settings, gate, fake_client):
    fake_client.text = "Le NFP de 14h30 domine : prudence sur l'USD."
    fake_client.total_tokens = 120

    outcome = await run_analysis("mascot", raw_inputs, settings=settings, gate=gate, client=fake_client)

    assert outcome.ok
    assert outcome.result.text.startswith("Le NFP")
    assert fake_client.requests[0].max_tokens == 300
    assert fake_client.requests[0].response_format == "text"
    assert "Non-Farm Payrolls" in fake_client.requests[0].instructions


async def test_custom_prompt_from_settings_is_used(raw_inputs, gate, fake_client):
    settings = Settings(
        api_key="sk-test",
        last_reset_date=TODAY,
        prompts={"ai_insights": "Q={question} | {newsContext}"},
    )
    fake_client.text = "Attendre."
    inputs = dict(raw_inputs, other={"question": "EUR/USD ?"})

    outcome = await run_analysis("ai_insights", inputs, settings=settings, gate=gate, client=fake_client)

    assert outcome.ok
    assert fake_client.requests[0].instructions.startswith("Q=EUR/USD ? | - ")


async def test_missing_credential_short_circuits(raw_inputs, gate, fake_client):
    outcome = await run_analysis(
        "sentiment", raw_inputs, settings=Settings(), gate=gate, client=fake_client
    )
    assert outcome.error is ErrorKind.MISSING_CREDENTIAL
    assert fake_client.requests == []


async def test_no_relevant_news_never_reaches_the_client(settings, gate, fake_client):
    inputs = {
        "news": [NewsItem(title="Gold climbs on safe haven demand",
                          content="Bullion traders eye geopolitical tension")],
        "quotes": [],
        "calendar": [],
    }
    outcome = await run_analysis("central_bank", inputs, settings=settings, gate=gate, client=fake_client)

    assert not outcome.ok
    assert outcome.error is ErrorKind.NO_RELEVANT_DATA
    assert fake_client.requests == []
    assert gate.ledger.daily_total == Decimal("0")


async def test_daily_limit_blocks_the_call(raw_inputs, settings, fake_client):
    ledger = SpendLedger(daily_total=Decimal("4.999"), daily_limit=Decimal("5.0"), reset_date=TODAY)
    gate = BudgetGate(ledger, clock=lambda: TODAY)

    outcome = await run_analysis("sentiment", raw_inputs, settings=settings, gate=gate, client=fake_client)

    assert outcome.error is ErrorKind.DAILY_LIMIT_EXCEEDED
    assert fake_client.requests == []
    assert gate.ledger.daily_total == Decimal("4.999")


async def test_spend_is_committed_even_when_resolution_fails(raw_inputs, settings, gate, fake_client):
    fake_client.text = "Désolé, je ne peux pas répondre."
    fake_client.total_tokens = 1000

    outcome = await run_analysis("sentiment", raw_inputs, settings=settings, gate=gate, client=fake_client)

    assert outcome.error is ErrorKind.NO_JSON_FOUND
    assert gate.ledger.daily_total == Decimal("0.002")


async def test_empty_completion_is_reported(raw_inputs, settings, gate, fake_client):
    fake_client.total_tokens = 10
    outcome = await run_analysis("mascot", raw_inputs, settings=settings, gate=gate, client=fake_client)
    assert outcome.error is ErrorKind.EMPTY_COMPLETION
    assert outcome.to_dict()["error"] == "empty_completion"


async def test_unknown_feature(raw_inputs, settings, gate, fake_client):
    outcome = await run_analysis("horoscope", raw_inputs, settings=settings, gate=gate, client=fake_client)
    assert outcome.error is ErrorKind.UNKNOWN_FEATURE


async def test_analyze_all_keeps_outcomes_independent(raw_inputs, settings, gate, fake_client):
    fake_client.text = SENTIMENT_REPLY
    fake_client.total_tokens = 100

    outcomes = await analyze_all(
        ["sentiment", "central_bank", "ai_insights"],
        raw_inputs,
        settings=settings,
        gate=gate,
        client=fake_client,
    )

    assert outcomes["sentiment"].ok
    # central bank news is present but the canned reply has no "banks" key
    assert outcomes["central_bank"].error is ErrorKind.NO_VALID_RESULTS
    # no question supplied
    assert outcomes["ai_insights"].error is ErrorKind.NO_RELEVANT_DATA
    assert len(fake_client.requests) == 2
    assert gate.ledger.daily_total == Decimal("0.0004")


async def test_insight_mentioning_erreur_is_not_flagged(raw_inputs, settings, gate, fake_client):
    fake_client.text = "L'erreur serait d'acheter l'EUR/USD avant le NFP ; attendre."
    inputs = dict(raw_inputs, other={"question": "Faut-il acheter l'EUR/USD ?"})

    outcome = await run_analysis("ai_insights", inputs, settings=settings, gate=gate, client=fake_client)

    assert outcome.ok
    assert outcome.result.text.startswith("L'erreur")


async def test_fundamental_analysis_still_flags_errors(raw_inputs, settings, gate, fake_client):
    fake_client.text = "Erreur : données indisponibles."
    outcome = await run_analysis(
        "fundamental_analysis", raw_inputs, settings=settings, gate=gate, client=fake_client
    )
    assert outcome.error is ErrorKind.FLAGGED_RESPONSE


async def test_malformed_records_become_outcomes(settings, gate, fake_client):
    inputs = {
        "news": [
            {"title": None, "content": "ECB rate"},
            {"title": "Fed's Powell: rate cuts not imminent", "content": "inflation sticky"},
        ],
        "quotes": [{"symbol": "EUR/USD"}],
    }
    fake_client.text = json.dumps(
        {"banks": [{"name": "FED", "stance": "Hawkish", "summary": "Pas de baisse", "trend": "stable"}]}
    )

    outcomes = await analyze_all(
        ["central_bank", "sentiment"], inputs, settings=settings, gate=gate, client=fake_client
    )

    assert outcomes["central_bank"].ok
    assert outcomes["central_bank"].result.items[0].name == "FED"
    # sentiment gets the banks reply, which has no "analysis" root
    assert outcomes["sentiment"].error is ErrorKind.NO_VALID_RESULTS

    outcome = await run_analysis(
        "central_bank",
        {"news": [{"title": None, "content": "ECB rate"}]},
        settings=settings,
        gate=gate,
        client=fake_client,
    )
    assert outcome.error is ErrorKind.NO_RELEVANT_DATA
