from __future__ import annotations

from sqlmodel import Field

from offday.models.base import TimestampMixin


class Personnel(TimestampMixin, table=True):
    """A roster member that grants, usages and audit entries are filed under."""

    __tablename__ = "personnel"

    name: str = Field(primary_key=True, max_length=255)
