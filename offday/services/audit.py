from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from offday.config import get_settings
from offday.models.audit import AuditLog
from offday.models.enums import SequenceName
from offday.services.allocation import allocations_from_json, format_allocations
from offday.services.duration import format_duration, from_tenths
from offday.services.sequence import next_record_id

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.ext.asyncio import AsyncSession

    from offday.models.enums import AuditAction, AuditRecordType
    from offday.models.grant import GrantRecord
    from offday.models.usage import UsageRecord

logger = logging.getLogger(__name__)

DELETED_MARKER: dict[str, Any] = {"deleted": True}

GRANT_FIELD_LABELS = {
    "date_off_granted": "Date Off Granted",
    "duration_type": "Duration Type",
    "duration_value": "Duration Value",
    "reason_type": "Reason Type",
    "weekend_ops_duty_date": "Weekend Ops Duty Date",
    "reason_details": "Reason Details",
    "provided_by": "Provided By",
    "used_value": "Used Value",
    "remaining_value": "Remaining Value",
    "status": "Status",
}

USAGE_FIELD_LABELS = {
    "date_intended": "Date Intended",
    "session": "Session",
    "duration_used": "Duration Used",
    "off_ids_used": "Off IDs Used",
    "comments": "Comments",
}


def _iso(value: date | datetime | None) -> str:
    return value.isoformat() if value is not None else ""


def grant_snapshot(grant: GrantRecord) -> dict[str, Any]:
    """Flat, JSON-safe view of a grant as it appears in the audit log."""
    return {
        "id": grant.id,
        "date_off_granted": _iso(grant.granted_date),
        "duration_type": grant.duration_type,
        "duration_value": from_tenths(grant.duration_tenths),
        "reason_type": grant.reason_type,
        "weekend_ops_duty_date": _iso(grant.weekend_ops_duty_date),
        "reason_details": grant.reason_details,
        "provided_by": grant.provided_by,
        "used_value": from_tenths(grant.used_tenths),
        "remaining_value": from_tenths(grant.remaining_tenths),
        "status": grant.status,
        "created_at": _iso(grant.created_at),
        "personnel": grant.personnel,
    }


def usage_snapshot(usage: UsageRecord) -> dict[str, Any]:
    """Flat, JSON-safe view of a usage record as it appears in the audit log."""
    return {
        "use_id": usage.use_id,
        "date_intended": _iso(usage.intended_date),
        "session": usage.session,
        "duration_used": from_tenths(usage.duration_tenths),
        "off_ids_used": format_allocations(allocations_from_json(usage.allocations_json)),
        "comments": usage.comments,
        "created_at": _iso(usage.created_at),
        "personnel": usage.personnel,
    }


def truncate_text(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return f"{text[: limit - 3]}..."


def _summary_value(value: object) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return format_duration(value)
    text = str(value).strip()
    return text or "-"


def build_change_summary(
    before: Mapping[str, Any] | None,
    after: Mapping[str, Any] | None,
    field_labels: Mapping[str, str],
) -> str:
    """List only the labelled fields that changed as ``Label: old -> new``."""
    parts: list[str] = []
    for key, label in field_labels.items():
        before_text = _summary_value((before or {}).get(key))
        after_text = _summary_value((after or {}).get(key))
        if before_text == after_text:
            continue
        parts.append(f"{label}: {before_text} -> {after_text}")

    if not parts:
        return "No field changes detected."
    return truncate_text(" | ".join(parts), get_settings().audit_summary_limit)


def _json_safe_snapshot(value: Any) -> Any:
    """Return the snapshot if it serializes, otherwise a truncated textual fallback."""
    if value is None:
        return None
    limit = get_settings().audit_snapshot_limit
    try:
        encoded = json.dumps(value)
    except (TypeError, ValueError):
        logger.warning("Audit snapshot is not JSON serializable; storing text fallback", exc_info=True)
        return {"text": truncate_text(str(value), limit)}
    if len(encoded) > limit:
        return {"text": truncate_text(encoded, limit)}
    return value


async def write_audit_log(
    session: AsyncSession,
    *,
    action: AuditAction,
    personnel: str,
    record_type: AuditRecordType,
    record_id: str,
    summary: str,
    edited_by: str = "",
    before_json: Any | None = None,
    after_json: Any | None = None,
) -> AuditLog:
    """Write an immutable audit log entry within the caller's transaction."""
    entry = AuditLog(
        log_id=await next_record_id(session, SequenceName.LOG),
        action=action.value,
        personnel=personnel,
        record_type=record_type.value,
        record_id=record_id,
        summary=truncate_text(summary, get_settings().audit_summary_limit),
        before_json=_json_safe_snapshot(before_json),
        after_json=_json_safe_snapshot(after_json),
        edited_by=edited_by,
    )
    session.add(entry)
    return entry
