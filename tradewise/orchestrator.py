import argparse
import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from tradewise.config import Settings, apply_env
from tradewise.data.collector import collect_snapshot
from tradewise.data.settings_store import LedgerPersister, load_settings
from tradewise.domain.errors import AnalysisError, ErrorKind, MissingCredential
from tradewise.domain.sessions import active_sessions
from tradewise.features import FEATURES, get_feature
from tradewise.openai_integration import (
    CompletionClient,
    CompletionRequest,
    OpenAICompletionClient,
)
from tradewise.prompts.prompts import compile_prompt
from tradewise.services.budget import MODEL_TIERS, BudgetGate, format_cost
from tradewise.services.resolver import ValidatedResult, resolve, resolve_text

logger = logging.getLogger(__name__)


@dataclass
class AnalysisOutcome:
    """Tagged result of one analysis request: ``result`` when ok, ``error`` otherwise."""

    feature: str
    ok: bool
    result: Optional[ValidatedResult] = None
    error: Optional[ErrorKind] = None
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"feature": self.feature, "ok": self.ok}
        if self.ok and self.result is not None:
            payload.update(self.result.to_dict())
        else:
            payload["error"] = self.error.value if self.error else None
            payload["message"] = self.message
        return payload


async def run_analysis(
    feature_id: str,
    raw_inputs: Mapping[str, Any],
    *,
    settings: Settings,
    gate: BudgetGate,
    client: Optional[CompletionClient],
) -> AnalysisOutcome:
    """Run one feature end to end and return a tagged outcome.

    Order: credential check, context assembly, prompt compilation, budget
    preflight, completion call, spend commit, response resolution. Any
    :class:`AnalysisError` along the way becomes a failed outcome; nothing
    after the failing step runs.
    """
    try:
        feature = get_feature(feature_id)
        if not settings.api_key or client is None:
            raise MissingCredential("OpenAI API key is not configured")

        bundle = feature.build_context(raw_inputs)
        prompt = compile_prompt(
            feature.resolve_template(settings.prompts),
            bundle,
            expects_json=feature.expects_json,
        )

        tier = settings.tier()
        gate.check(feature.max_tokens, tier)

        logger.info(
            "[orchestrator] %s: sending %d chars to %s", feature.id, len(prompt), tier.model
        )
        completion = await client.complete(
            CompletionRequest(
                model=tier.model,
                instructions=prompt,
                max_tokens=feature.max_tokens,
                response_format=feature.response_format,
            )
        )
        gate.commit(completion.total_tokens, tier)

        if feature.expects_json:
            result = resolve(completion.text, feature.schema, feature=feature.id)
        else:
            result = resolve_text(
                completion.text, error_markers=feature.error_markers, feature=feature.id
            )
    except AnalysisError as exc:
        logger.warning("[orchestrator] %s failed: %s (%s)", feature_id, exc.message, exc.kind.value)
        return AnalysisOutcome(
            feature=feature_id, ok=False, error=exc.kind, message=exc.message
        )

    return AnalysisOutcome(feature=feature_id, ok=True, result=result)


async def analyze_all(
    feature_ids: Sequence[str],
    raw_inputs: Mapping[str, Any],
    *,
    settings: Settings,
    gate: BudgetGate,
    client: Optional[CompletionClient],
) -> dict[str, AnalysisOutcome]:
    """Run several features concurrently; each chain stays sequential on its own."""
    outcomes = await asyncio.gather(
        *(
            run_analysis(fid, raw_inputs, settings=settings, gate=gate, client=client)
            for fid in feature_ids
        )
    )
    return {outcome.feature: outcome for outcome in outcomes}


def default_session() -> Optional[str]:
    sessions = active_sessions()
    return sessions[0].name if sessions else None


def main(argv=None):
    """CLI entry to run analyses against live (or fallback) data.

    Examples:
      - python -m tradewise.orchestrator --feature sentiment
      - python -m tradewise.orchestrator --feature ai_insights --question "EUR/USD ?"
      - python -m tradewise.orchestrator --all
    """
    parser = argparse.ArgumentParser(description="Run AI market analyses")
    parser.add_argument("--feature", choices=sorted(FEATURES), default="sentiment")
    parser.add_argument("--all", action="store_true", help="Run every feature concurrently")
    parser.add_argument("--question", help="Question for ai_insights")
    parser.add_argument("--session", help="Session name for the session feature")
    parser.add_argument("--pair", default="EUR/USD", help="Pair for the pair feature")
    parser.add_argument("--model-tier", dest="model_tier", choices=sorted(MODEL_TIERS))
    parser.add_argument("--db-path", dest="db_path", help="SQLite path for settings")
    parser.add_argument("--demo", action="store_true", help="Use fallback quotes")
    parser.add_argument(
        "--no-translate", dest="no_translate", action="store_true", help="Keep headlines in English"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    stored = load_settings(args.db_path)
    settings = apply_env(stored)
    if args.model_tier:
        settings = settings.model_copy(update={"model_tier": args.model_tier})

    persister = LedgerPersister(stored, args.db_path)
    gate = BudgetGate(settings.ledger(), on_change=persister)

    snapshot = collect_snapshot(
        demo=settings.demo_mode or args.demo, translate=not args.no_translate
    )
    print(
        f"[orchestrator] Collected news={len(snapshot.news)} quotes={len(snapshot.quotes)} "
        f"events={len(snapshot.calendar)}"
    )
    raw_inputs = snapshot.to_raw_inputs(
        question=args.question,
        session=args.session or default_session(),
        pair=args.pair,
    )
    feature_ids = sorted(FEATURES) if args.all else [args.feature]

    async def _run() -> dict[str, AnalysisOutcome]:
        client = OpenAICompletionClient(settings.api_key) if settings.api_key else None
        try:
            return await analyze_all(
                feature_ids, raw_inputs, settings=settings, gate=gate, client=client
            )
        finally:
            if client is not None:
                await client.aclose()

    outcomes = asyncio.run(_run())
    for outcome in outcomes.values():
        print(json.dumps(outcome.to_dict(), ensure_ascii=False, indent=2, default=str))

    ledger = gate.ledger
    print(
        f"[orchestrator] Daily spend {format_cost(ledger.daily_total)} / "
        f"{format_cost(ledger.daily_limit)} ({ledger.reset_date.isoformat()})"
    )


if __name__ == "__main__":
    main()
