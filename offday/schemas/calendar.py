# ruff: noqa: TC003
from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel


class CalendarDay(BaseModel):
    """One cell of the month grid."""

    day: date
    in_month: bool
    granted: float
    used: float
    sessions: list[str]
    chips: list[str]
    highlight: Literal["granted", "used", "both"] | None


class CalendarResponse(BaseModel):
    """Monday-first six-week grid around a month."""

    personnel: str
    month: str
    weeks: list[list[CalendarDay]]
