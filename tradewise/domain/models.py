"""Collaborator records consumed by the analysis pipeline."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field


class NewsItem(BaseModel):
    title: str
    content: str = ""
    pub_date: str = ""
    category: str = "News"
    author: Optional[str] = None
    link: str = ""
    translated_title: Optional[str] = None
    translated_content: Optional[str] = None

    @property
    def display_title(self) -> str:
        return self.translated_title or self.title

    @property
    def display_content(self) -> str:
        return self.translated_content or self.content


class Quote(BaseModel):
    symbol: str
    price: float = Field(..., ge=0.0)
    change: float = 0.0
    change_percent: float = 0.0


class CalendarEvent(BaseModel):
    date: str
    time: str = ""
    currency: str = ""
    impact: Literal["high", "medium", "low"] = "low"
    event: str
    actual: Optional[str] = None
    forecast: Optional[str] = None
    previous: Optional[str] = None
