import argparse
import asyncio
import logging
import os
import sys
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence


# Ensure package import works when executed as a script
if __package__ is None or __package__ == "":
    sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tradewise.config import Settings, apply_env
from tradewise.data.collector import MarketSnapshot, collect_snapshot
from tradewise.data.settings_store import LedgerPersister, load_settings
from tradewise.data.translator import Translator
from tradewise.features import FEATURES
from tradewise.openai_integration import OpenAICompletionClient
from tradewise.orchestrator import analyze_all, default_session
from tradewise.services.budget import BudgetGate, format_cost


@dataclass
class PollConfig:
    interval_seconds: int
    features: tuple[str, ...]
    demo: bool
    translate: bool = True
    db_path: Optional[str] = None


def _parse_features(value: str) -> tuple[str, ...]:
    names = tuple(v.strip() for v in (value or "").split(",") if v.strip())
    unknown = [n for n in names if n not in FEATURES]
    if unknown:
        print(f"[schedule_runner] Ignoring unknown features: {', '.join(unknown)}")
    return tuple(n for n in names if n in FEATURES)


def _sleep_until(target: datetime):
    while True:
        now = datetime.now()
        seconds = (target - now).total_seconds()
        if seconds <= 0:
            return
        # Sleep in chunks to allow Ctrl+C responsiveness
        time.sleep(min(seconds, 60))


def _run_job(name: str, func):
    print(
        f"[schedule_runner] Running job: {name} at {datetime.now().isoformat(timespec='seconds')}"
    )
    try:
        result = func()
        print(f"[schedule_runner] Job '{name}' completed")
        return result
    except Exception as exc:
        print(f"[schedule_runner] Job '{name}' failed: {exc}")
        return None


def refresh_snapshot(
    previous: Optional[MarketSnapshot],
    *,
    demo: bool,
    translator: Optional[Translator] = None,
) -> MarketSnapshot:
    snapshot = collect_snapshot(
        demo=demo, previous=previous, translate=translator is not None, translator=translator
    )
    print(
        f"[schedule_runner] Snapshot news={len(snapshot.news)} quotes={len(snapshot.quotes)} "
        f"events={len(snapshot.calendar)}"
    )
    return snapshot


def run_features(
    snapshot: MarketSnapshot,
    features: Sequence[str],
    *,
    settings: Settings,
    gate: BudgetGate,
) -> None:
    if not features:
        return
    raw_inputs = snapshot.to_raw_inputs(session=default_session())

    async def _run():
        client = OpenAICompletionClient(settings.api_key) if settings.api_key else None
        try:
            return await analyze_all(
                features, raw_inputs, settings=settings, gate=gate, client=client
            )
        finally:
            if client is not None:
                await client.aclose()

    outcomes = asyncio.run(_run())
    for feature_id, outcome in outcomes.items():
        if outcome.ok:
            count = len(outcome.result.items) if outcome.result is not None else 0
            print(f"[schedule_runner] {feature_id}: ok ({count} items)")
        else:
            print(f"[schedule_runner] {feature_id}: {outcome.error.value} {outcome.message}")
    ledger = gate.ledger
    print(
        f"[schedule_runner] Daily spend {format_cost(ledger.daily_total)} / "
        f"{format_cost(ledger.daily_limit)}"
    )


def _load_config(args, settings: Settings) -> PollConfig:
    interval = args.interval or int(os.getenv("REFRESH_INTERVAL", "0") or 0)
    return PollConfig(
        interval_seconds=max(interval or settings.refresh_interval, 5),
        features=_parse_features(args.features or os.getenv("POLL_FEATURES", "")),
        demo=settings.demo_mode or args.demo,
        translate=not args.no_translate,
        db_path=args.db_path,
    )


def main(argv=None):
    parser = argparse.ArgumentParser(description="Refresh market data on a fixed interval")
    parser.add_argument("--interval", type=int, help="Seconds between refreshes")
    parser.add_argument(
        "--features",
        help="Comma-separated features to analyze after each refresh (default: none)",
    )
    parser.add_argument("--db-path", dest="db_path", help="SQLite path for settings")
    parser.add_argument("--demo", action="store_true", help="Use fallback quotes")
    parser.add_argument(
        "--no-translate", dest="no_translate", action="store_true", help="Keep headlines in English"
    )
    parser.add_argument("--once", action="store_true", help="Run a single cycle and exit")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    stored = load_settings(args.db_path)
    settings = apply_env(stored)
    gate = BudgetGate(settings.ledger(), on_change=LedgerPersister(stored, args.db_path))
    cfg = _load_config(args, settings)
    print(
        f"[schedule_runner] Starting with interval={cfg.interval_seconds}s "
        f"features={','.join(cfg.features) or '-'} demo={cfg.demo}"
    )

    translator = Translator() if cfg.translate else None
    snapshot: Optional[MarketSnapshot] = None
    try:
        while True:
            next_run = datetime.now() + timedelta(seconds=cfg.interval_seconds)
            refreshed = _run_job(
                "refresh_snapshot",
                lambda: refresh_snapshot(snapshot, demo=cfg.demo, translator=translator),
            )
            if refreshed is not None:
                snapshot = refreshed
            if snapshot is not None and cfg.features:
                _run_job(
                    "run_features",
                    lambda: run_features(snapshot, cfg.features, settings=settings, gate=gate),
                )
            if args.once:
                return
            print(f"[schedule_runner] Next run at {next_run.isoformat(timespec='seconds')}")
            _sleep_until(next_run)
    finally:
        if translator is not None:
            translator.close()


if __name__ == "__main__":
    main()
