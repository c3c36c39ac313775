import pytest

from tradewise.features import FEATURES
from tradewise.prompts.prompts import (
    DEFAULT_PROMPTS,
    JSON_INSTRUCTION_SUFFIX,
    PLACEHOLDER_PATTERN,
    Prompts,
    compile_prompt,
    placeholders,
)


def test_placeholders_ignore_json_examples():
    assert placeholders(Prompts.SENTIMENT) == {"marketContext", "newsContext"}
    assert placeholders(Prompts.AI_INSIGHTS) == {"question", "newsContext", "marketContext"}
    assert placeholders(Prompts.CENTRAL_BANK) == {"newsContext"}


def test_compile_substitutes_every_occurrence():
    template = "{a} and {a} then {b}"
    assert compile_prompt(template, {"a": "x", "b": "y"}) == "x and x then y"


def test_missing_values_become_empty():
    assert compile_prompt("News: {newsContext}|", {}) == "News: |"


def test_compile_is_deterministic(raw_inputs):
    feature = FEATURES["sentiment"]
    bundle = feature.build_context(raw_inputs)
    first = compile_prompt(feature.template, bundle, expects_json=True)
    second = compile_prompt(feature.template, dict(bundle), expects_json=True)
    assert first == second


def test_values_are_not_expanded_again():
    compiled = compile_prompt("Q: {question} N: {newsContext}", {
        "question": "what about {newsContext}?",
        "newsContext": "ECB",
    })
    assert compiled == "Q: what about {newsContext}? N: ECB"


@pytest.mark.parametrize("feature_id", sorted(FEATURES))
def test_no_template_placeholder_survives(feature_id):
    template = FEATURES[feature_id].template
    bundle = {name: f"value-{name}" for name in placeholders(template)}
    compiled = compile_prompt(template, bundle)
    assert PLACEHOLDER_PATTERN.search(compiled) is None
    for name in placeholders(template):
        assert f"value-{name}" in compiled


def test_json_features_get_the_instruction_suffix():
    compiled = compile_prompt(Prompts.CENTRAL_BANK, {"newsContext": "Fed"}, expects_json=True)
    assert compiled.endswith(JSON_INSTRUCTION_SUFFIX)
    assert not compile_prompt(Prompts.MASCOT, {}).endswith(JSON_INSTRUCTION_SUFFIX)


def test_user_overrides_replace_default_templates():
    feature = FEATURES["mascot"]
    custom = dict(DEFAULT_PROMPTS, mascot="Résumé: {newsContext}")
    assert feature.resolve_template(custom) == "Résumé: {newsContext}"
    assert feature.resolve_template({}) == Prompts.MASCOT
    # features without a settings key ignore overrides
    assert FEATURES["sentiment"].resolve_template({"sentiment": "x"}) == Prompts.SENTIMENT
