# ruff: noqa: TC003
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class AuditLogEntryResponse(BaseModel):
    """Response schema for a single audit log entry."""

    log_id: str
    created_at: datetime
    action: str
    personnel: str
    record_type: str
    record_id: str
    summary: str
    before_json: Any | None
    after_json: Any | None
    edited_by: str


class AuditLogListResponse(BaseModel):
    """Paginated list of audit log entries."""

    items: list[AuditLogEntryResponse]
    total: int
