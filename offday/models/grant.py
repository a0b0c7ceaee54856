# ruff: noqa: TC003
from __future__ import annotations

from datetime import date

import sqlalchemy as sa
from sqlmodel import Field

from offday.models.base import TimestampMixin
from offday.models.enums import GrantStatus


class GrantRecord(TimestampMixin, table=True):
    """A granted off-day credit that usage events draw from.

    Amounts are stored in tenths of a day. ``remaining_tenths`` is always
    ``duration_tenths - used_tenths`` and ``status`` follows from both.
    """

    __tablename__ = "off_granted"
    __table_args__ = (
        sa.CheckConstraint("used_tenths >= 0", name="ck_granted_used_non_negative"),
        sa.CheckConstraint("used_tenths <= duration_tenths", name="ck_granted_used_within_duration"),
    )

    id: str = Field(primary_key=True, max_length=32)
    personnel: str = Field(index=True, max_length=255)
    granted_date: date
    duration_type: str = Field(max_length=20)
    duration_tenths: int
    reason_type: str = Field(max_length=20)
    weekend_ops_duty_date: date | None = None
    reason_details: str = Field(default="", sa_type=sa.Text)
    provided_by: str = Field(default="", max_length=255)
    used_tenths: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    remaining_tenths: int
    status: str = Field(
        default=GrantStatus.UNUSED, max_length=20, sa_column_kwargs={"server_default": "Unused"}
    )
