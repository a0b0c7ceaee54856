# ruff: noqa: B008
from __future__ import annotations

from fastapi import APIRouter, Query

from offday.api.deps import PersonnelDep
from offday.db import SessionDep
from offday.schemas.calendar import CalendarResponse
from offday.schemas.report import AuditLogListResponse
from offday.services import calendar as calendar_service
from offday.services import report as report_service

reports_router = APIRouter(prefix="/personnel/{personnel}", tags=["reports"])


@reports_router.get("/audit-log", response_model=AuditLogListResponse)
async def query_audit_log(
    session: SessionDep,
    personnel: PersonnelDep,
    action: str | None = Query(default=None),
    record_id: str | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> AuditLogListResponse:
    """Query audit log entries for the personnel with optional filters."""
    return await report_service.query_audit_log(session, personnel, action, record_id, offset, limit)


@reports_router.get("/calendar", response_model=CalendarResponse)
async def get_calendar(
    session: SessionDep,
    personnel: PersonnelDep,
    month: str | None = Query(default=None, description="Month as YYYY-MM; defaults to the current month"),
) -> CalendarResponse:
    """Month grid of granted and used amounts."""
    return await calendar_service.get_calendar(session, personnel, month)
