"""User settings and environment configuration."""

from __future__ import annotations

import os
from datetime import date
from decimal import Decimal
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from tradewise.prompts.prompts import DEFAULT_PROMPTS
from tradewise.services.budget import DEFAULT_TIER, ModelTier, SpendLedger, get_tier

load_dotenv()  # nosec: loads .env into process env if present


class Settings(BaseModel):
    """The single persisted settings record.

    ``api_costs`` and ``last_reset_date`` are the stored form of the spend
    ledger; use :meth:`ledger` and :meth:`with_ledger` to move between them.
    """

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    api_key: str = ""
    refresh_interval: int = Field(60, ge=5)
    demo_mode: bool = True
    api_costs: Decimal = Field(Decimal("0"), ge=0)
    daily_limit: Decimal = Field(Decimal("5"), ge=0)
    last_reset_date: date = Field(default_factory=date.today)
    model_tier: str = DEFAULT_TIER
    prompts: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_PROMPTS))

    @field_validator("prompts", mode="before")
    @classmethod
    def _merge_default_prompts(cls, value: Any) -> dict[str, str]:
        merged = dict(DEFAULT_PROMPTS)
        if isinstance(value, Mapping):
            merged.update({k: v for k, v in value.items() if isinstance(v, str) and v})
        return merged

    @field_validator("model_tier")
    @classmethod
    def _known_tier(cls, value: str) -> str:
        return get_tier(value).name

    @classmethod
    def from_stored(cls, payload: Optional[Mapping[str, Any]]) -> "Settings":
        """Build settings from a stored record; bad or unknown keys fall back to defaults."""
        data = dict(payload or {})
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            bad_keys = {str(err["loc"][0]) for err in exc.errors() if err.get("loc")}
            for key in bad_keys:
                data.pop(key, None)
            return cls.model_validate(data)

    def tier(self) -> ModelTier:
        return get_tier(self.model_tier)

    def ledger(self) -> SpendLedger:
        return SpendLedger(
            daily_total=self.api_costs,
            daily_limit=self.daily_limit,
            reset_date=self.last_reset_date,
        )

    def with_ledger(self, ledger: SpendLedger) -> "Settings":
        return self.model_copy(
            update={
                "api_costs": ledger.daily_total,
                "last_reset_date": ledger.reset_date,
            }
        )

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


def apply_env(settings: Settings) -> Settings:
    """Overlay environment values on stored settings.

    Env Vars:
        OPENAI_API_KEY (used when no key is stored)
        TRADEWISE_MODEL_TIER (optional tier override)
        TRADEWISE_DAILY_LIMIT (optional daily limit override)
    """
    update: dict[str, Any] = {}
    env_key = os.getenv("OPENAI_API_KEY")
    if env_key and not settings.api_key:
        update["api_key"] = env_key
    tier = os.getenv("TRADEWISE_MODEL_TIER")
    if tier:
        update["model_tier"] = get_tier(tier).name
    limit = os.getenv("TRADEWISE_DAILY_LIMIT")
    if limit:
        update["daily_limit"] = Decimal(limit)
    return settings.model_copy(update=update) if update else settings


__all__ = ["Settings", "apply_env"]
