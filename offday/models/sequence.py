from __future__ import annotations

from sqlmodel import Field, SQLModel


class RecordSequence(SQLModel, table=True):
    """Monotonic counter backing the G-/U-/L- identifiers."""

    __tablename__ = "record_sequence"

    name: str = Field(primary_key=True, max_length=20)
    last_value: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
