"""Turn raw completion text into validated feature results.

JSON features go through three linear stages:

1. direct ``json.loads`` of the raw text;
2. on failure, :func:`repair` runs :data:`REPAIR_STEPS` in order and the
   result is parsed once more;
3. every element under the schema's root key is validated on its own and
   the failing ones are dropped.

Narrative features skip all of that and only reject empty or flagged text.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from pydantic import BaseModel, ValidationError

from tradewise.domain.errors import (
    EmptyCompletion,
    FlaggedResponse,
    MalformedJson,
    NoJsonFound,
    NoValidResults,
)
from tradewise.domain.schemas import FeatureSchema

logger = logging.getLogger(__name__)

_WHITESPACE_CONTROL = re.compile(r"[\t\n\r\f\v]")
_CONTROL_CHARS = re.compile(r"[\u0000-\u001F\u007F-\u009F]")
_ZERO_WIDTH = re.compile(r"[\u200B-\u200D\uFEFF]")
_LINE_SEPARATORS = re.compile(r"[\u2028\u2029]")
_ESCAPED_BREAKS = re.compile(r"\\(\\|[rnt])")
_WHITESPACE_RUN = re.compile(r"\s+")
_KEY_SPACING = re.compile(r'([{,])\s*"([^"]+)"\s*:')
_VALUE_SPACING = re.compile(r':\s*"([^"]+)"\s*([,}])')
_TRAILING_COMMA = re.compile(r",\s*([\]}])")
# a backslash, plus the escape it starts when that escape is valid JSON
_ESCAPE = re.compile(r'\\(["\\/bfnrt]|u[0-9a-fA-F]{4})?')


@dataclass(frozen=True)
class SchemaViolation:
    index: int
    errors: tuple[str, ...]


@dataclass
class ValidatedResult:
    """Outcome of one successful resolution.

    ``items`` holds validated elements for JSON features; ``text`` holds the
    narrative for text features.
    """

    feature: str
    items: list[BaseModel] = field(default_factory=list)
    violations: list[SchemaViolation] = field(default_factory=list)
    text: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"feature": self.feature}
        if self.text is not None:
            payload["text"] = self.text
        else:
            payload["items"] = [item.model_dump() for item in self.items]
            payload["dropped"] = len(self.violations)
        return payload


def extract_json_span(text: str) -> str:
    """Slice from the first ``{`` to the last ``}``."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise NoJsonFound("No JSON object found in completion")
    return text[start : end + 1]


def whitespace_controls_to_space(text: str) -> str:
    return _WHITESPACE_CONTROL.sub(" ", text)


def strip_control_chars(text: str) -> str:
    return _CONTROL_CHARS.sub("", text)


def strip_zero_width(text: str) -> str:
    return _ZERO_WIDTH.sub("", text)


def strip_line_separators(text: str) -> str:
    return _LINE_SEPARATORS.sub("", text)


def escaped_breaks_to_space(text: str) -> str:
    # an escaped backslash is matched as a pair and kept
    return _ESCAPED_BREAKS.sub(lambda m: m.group(0) if m.group(1) == "\\" else " ", text)


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RUN.sub(" ", text)


def tidy_key_spacing(text: str) -> str:
    return _KEY_SPACING.sub(r'\1"\2":', text)


def tidy_value_spacing(text: str) -> str:
    return _VALUE_SPACING.sub(r':"\1"\2', text)


def drop_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA.sub(r"\1", text)


def drop_broken_escapes(text: str) -> str:
    """Drop backslashes that do not start a valid JSON escape; keep the valid ones."""
    return _ESCAPE.sub(lambda m: m.group(0) if m.group(1) else "", text)


def strip_outer(text: str) -> str:
    return text.strip()


REPAIR_STEPS: tuple[Callable[[str], str], ...] = (
    extract_json_span,
    whitespace_controls_to_space,
    strip_control_chars,
    strip_zero_width,
    strip_line_separators,
    escaped_breaks_to_space,
    collapse_whitespace,
    tidy_key_spacing,
    tidy_value_spacing,
    drop_trailing_commas,
    drop_broken_escapes,
    strip_outer,
)


def repair(raw: str) -> str:
    """Run every repair step once, in order."""
    text = raw or ""
    for step in REPAIR_STEPS:
        text = step(text)
    return text


def parse_json(raw: str) -> Any:
    """Parse ``raw`` directly, falling back to one repaired attempt."""
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as first_error:
        repaired = repair(raw)
        try:
            payload = json.loads(repaired)
        except ValueError as second_error:
            logger.error(
                "[resolver] JSON repair failed: direct=%s repaired=%s",
                first_error,
                second_error,
            )
            raise MalformedJson("Completion is not valid JSON after repair") from second_error
        logger.info("[resolver] Recovered JSON after repair (%d chars)", len(repaired))
        return payload


def validate_payload(payload: Any, schema: FeatureSchema, *, feature: str = "") -> ValidatedResult:
    """Validate each element under ``schema.root_key``; drop the failures."""
    root = payload.get(schema.root_key) if isinstance(payload, dict) else None
    if schema.single and isinstance(root, dict):
        elements: Sequence[Any] = [root]
    elif isinstance(root, list):
        elements = root
    else:
        raise NoValidResults(f"Missing '{schema.root_key}' in completion")

    items: list[BaseModel] = []
    violations: list[SchemaViolation] = []
    for index, element in enumerate(elements):
        try:
            items.append(schema.item_model.model_validate(element))
        except ValidationError as exc:
            errors = tuple(
                f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
                for err in exc.errors()
            )
            violations.append(SchemaViolation(index=index, errors=errors))

    if violations:
        logger.warning(
            "[resolver] %s: dropped %d of %d elements",
            feature or schema.root_key,
            len(violations),
            len(elements),
        )
    if not items:
        raise NoValidResults(f"No valid element under '{schema.root_key}'")

    if schema.max_items is not None:
        items = items[: schema.max_items]
    return ValidatedResult(feature=feature, items=items, violations=violations)


def resolve(raw: str, schema: FeatureSchema, *, feature: str = "") -> ValidatedResult:
    """Parse, repair if needed, and validate a JSON completion."""
    if not raw or not raw.strip():
        raise EmptyCompletion("Completion returned no content")
    payload = parse_json(raw)
    return validate_payload(payload, schema, feature=feature)


def resolve_text(
    raw: str, *, error_markers: Sequence[str] = (), feature: str = ""
) -> ValidatedResult:
    """Accept a narrative completion unless it is empty or carries an error marker."""
    if not raw or not raw.strip():
        raise EmptyCompletion("Completion returned no content")
    for marker in error_markers:
        if marker in raw:
            raise FlaggedResponse(f"Completion contains error marker '{marker}'")
    return ValidatedResult(feature=feature, text=raw)


__all__ = [
    "REPAIR_STEPS",
    "SchemaViolation",
    "ValidatedResult",
    "extract_json_span",
    "parse_json",
    "repair",
    "resolve",
    "resolve_text",
    "validate_payload",
]
