# ruff: noqa: TC003
from __future__ import annotations

from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from offday.models.base import _now_utc


class AuditLog(SQLModel, table=True):
    """Immutable record of every audited mutation."""

    __tablename__ = "edit_log"
    __table_args__ = (sa.Index("ix_edit_log_record", "record_type", "record_id"),)

    log_id: str = Field(primary_key=True, max_length=32)
    action: str = Field(max_length=50, index=True)
    personnel: str = Field(index=True, max_length=255)
    record_type: str = Field(max_length=50)
    record_id: str = Field(sa_type=sa.Text)
    summary: str = Field(default="", sa_type=sa.Text)
    before_json: Any | None = Field(default=None, sa_type=sa.JSON)
    after_json: Any | None = Field(default=None, sa_type=sa.JSON)
    edited_by: str = Field(default="", max_length=255)
    created_at: datetime = Field(
        default_factory=_now_utc,
        index=True,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )
