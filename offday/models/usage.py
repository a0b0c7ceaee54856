# ruff: noqa: TC003
from __future__ import annotations

from datetime import date
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from offday.models.base import TimestampMixin


class UsageRecord(TimestampMixin, table=True):
    """A usage event drawing one or more grants.

    ``allocations_json`` is the ordered list of ``{"grant_id", "amount_tenths"}``
    pairs; their amounts always sum to ``duration_tenths``. The list is
    replaced wholesale on every change so the JSON column is flagged dirty.
    """

    __tablename__ = "off_used"

    use_id: str = Field(primary_key=True, max_length=32)
    personnel: str = Field(index=True, max_length=255)
    intended_date: date = Field(index=True)
    session: str = Field(max_length=20)
    duration_tenths: int
    allocations_json: list[dict[str, Any]] = Field(default_factory=list, sa_type=sa.JSON)
    comments: str = Field(default="", sa_type=sa.Text)
