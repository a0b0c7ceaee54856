from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from offday.models.audit import AuditLog
from offday.schemas.report import AuditLogEntryResponse, AuditLogListResponse

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


def _build_audit_response(entry: AuditLog) -> AuditLogEntryResponse:
    return AuditLogEntryResponse(
        log_id=entry.log_id,
        created_at=entry.created_at,
        action=entry.action,
        personnel=entry.personnel,
        record_type=entry.record_type,
        record_id=entry.record_id,
        summary=entry.summary,
        before_json=entry.before_json,
        after_json=entry.after_json,
        edited_by=entry.edited_by,
    )


async def query_audit_log(
    session: AsyncSession,
    personnel: str,
    action: str | None = None,
    record_id: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> AuditLogListResponse:
    """Query a personnel's audit entries, newest first.

    Entries sharing a timestamp fall back to log id order, compared by length
    first so that ``L-100000`` follows ``L-99999``.
    """
    filters = [col(AuditLog.personnel) == personnel]
    if action:
        filters.append(col(AuditLog.action) == action.strip().upper())
    if record_id:
        filters.append(col(AuditLog.record_id).contains(record_id.strip(), autoescape=True))

    count_result = await session.execute(select(func.count()).select_from(AuditLog).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(AuditLog)
        .where(*filters)
        .order_by(
            col(AuditLog.created_at).desc(),
            func.length(col(AuditLog.log_id)).desc(),
            col(AuditLog.log_id).desc(),
        )
        .offset(offset)
        .limit(limit)
    )
    entries = result.scalars().all()

    return AuditLogListResponse(
        items=[_build_audit_response(e) for e in entries],
        total=total,
    )
