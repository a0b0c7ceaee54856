# ruff: noqa: TC003
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CreatePersonnelRequest(BaseModel):
    """Request body for adding a roster member."""

    name: str = Field(max_length=255)


class PersonnelResponse(BaseModel):
    """Response schema for a roster member."""

    name: str
    created_at: datetime


class PersonnelListResponse(BaseModel):
    """All roster members in insertion order."""

    items: list[PersonnelResponse]
    total: int
