# ruff: noqa: TC003
from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class UsagePayload(BaseModel):
    """Form fields for recording a usage event.

    ``grant_ids`` is the caller's ordered selection; allocation walks it in
    exactly this order.
    """

    intended_date: str | None = None
    session: str = ""
    grant_ids: list[str] = Field(default_factory=list)
    comments: str | None = None


class EditUsagePayload(BaseModel):
    """Form fields for editing a usage event.

    ``additional_grant_ids`` is only consulted when the new session needs
    more than the record currently holds.
    """

    intended_date: str | None = None
    session: str = ""
    comments: str | None = None
    additional_grant_ids: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class AllocationResponse(BaseModel):
    """Amount of a usage drawn from one grant."""

    grant_id: str
    amount: float


class UsageResponse(BaseModel):
    """Response schema for a single usage record."""

    use_id: str
    personnel: str
    intended_date: date
    session: str
    duration: float
    allocations: list[AllocationResponse]
    off_ids_used: str
    comments: str
    created_at: datetime


class UsageListResponse(BaseModel):
    """All usage records for a personnel ordered by id."""

    items: list[UsageResponse]
    total: int


class UsageMutationResponse(BaseModel):
    """Result of recording or editing a usage event."""

    ok: bool = True
    use_id: str
    message: str
    usage: UsageResponse
