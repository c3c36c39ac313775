"""Load and persist the settings record."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from tradewise.config import Settings
from tradewise.data.db import bootstrap_db, get_connection
from tradewise.services.budget import SpendLedger

logger = logging.getLogger(__name__)


def load_settings(path: Optional[str] = None) -> Settings:
    """Return stored settings merged over defaults (defaults when nothing is stored)."""
    bootstrap_db(path)
    conn = get_connection(path)
    try:
        row = conn.execute("SELECT payload FROM settings WHERE id = 1").fetchone()
    finally:
        conn.close()

    if row is None:
        return Settings()
    try:
        payload = json.loads(row["payload"])
    except ValueError:
        logger.warning("[settings_store] Stored settings are not valid JSON, using defaults")
        return Settings()
    if not isinstance(payload, dict):
        return Settings()
    return Settings.from_stored(payload)


def save_settings(settings: Settings, path: Optional[str] = None) -> None:
    """Rewrite the settings record."""
    payload = json.dumps(settings.to_record(), ensure_ascii=False)
    updated_at = datetime.now(timezone.utc).isoformat(timespec="seconds")
    bootstrap_db(path)
    conn = get_connection(path)
    try:
        conn.execute(
            """
            INSERT INTO settings(id, payload, updated_at) VALUES (1, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                payload=excluded.payload,
                updated_at=excluded.updated_at
            """,
            (payload, updated_at),
        )
        conn.commit()
    finally:
        conn.close()


def update_settings(path: Optional[str] = None, **changes) -> Settings:
    """Apply ``changes`` to the stored settings and persist the result."""
    current = load_settings(path)
    data = current.to_record()
    data.update(changes)
    updated = Settings.from_stored(data)
    save_settings(updated, path)
    return updated


class LedgerPersister:
    """``BudgetGate`` change hook that writes the ledger back into settings."""

    def __init__(self, settings: Settings, path: Optional[str] = None) -> None:
        self.settings = settings
        self.path = path

    def __call__(self, ledger: SpendLedger) -> None:
        self.settings = self.settings.with_ledger(ledger)
        save_settings(self.settings, self.path)


__all__ = ["LedgerPersister", "load_settings", "save_settings", "update_settings"]
