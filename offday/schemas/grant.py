# ruff: noqa: TC001, TC003
from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

from offday.models.enums import GrantStatus

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class GrantPayload(BaseModel):
    """Form fields for adding or fully replacing a grant.

    Fields arrive as the form submits them (``FULL``/``HALF``,
    ``OPS``/``OTHERS``, ``YYYY-MM-DD``) and are validated in order by the
    grant service so each problem gets its own message.
    """

    granted_date: str | None = None
    duration_type: str = ""
    reason_type: str = ""
    weekend_ops_date: str | None = None
    other_details: str | None = None
    provided_by: str | None = None


class DeleteGrantsPayload(BaseModel):
    """Request body for deleting several grants at once."""

    ids: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class GrantResponse(BaseModel):
    """Response schema for a single grant."""

    id: str
    personnel: str
    granted_date: date
    duration_type: str
    duration_value: float
    reason_type: str
    weekend_ops_duty_date: date | None
    reason_details: str
    provided_by: str
    used: float
    remaining: float
    status: GrantStatus
    created_at: datetime


class GrantListResponse(BaseModel):
    """All grants for a personnel ordered by id."""

    items: list[GrantResponse]
    total: int


class GrantMutationResponse(BaseModel):
    """Result of creating or editing a grant."""

    ok: bool = True
    id: str
    message: str
    grant: GrantResponse


class AvailableGrant(BaseModel):
    """A grant that still has balance to draw from."""

    id: str
    remaining: float
    label: str


class AvailableGrantListResponse(BaseModel):
    """Grants with remaining balance ordered by id."""

    items: list[AvailableGrant]
    total: int
