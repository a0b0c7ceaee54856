from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from offday.config import get_settings
from offday.exceptions import BlockedByUsageError, NotFoundError, ValidationError
from offday.models.enums import AuditAction, AuditRecordType, DurationType, GrantStatus, ReasonType, SequenceName
from offday.models.grant import GrantRecord
from offday.schemas.common import OperationResponse
from offday.schemas.grant import (
    AvailableGrant,
    AvailableGrantListResponse,
    GrantListResponse,
    GrantMutationResponse,
    GrantResponse,
)
from offday.services.allocation import compute_status
from offday.services.audit import (
    DELETED_MARKER,
    GRANT_FIELD_LABELS,
    build_change_summary,
    grant_snapshot,
    write_audit_log,
)
from offday.services.duration import (
    FULL_DAY_TENTHS,
    HALF_DAY_TENTHS,
    format_tenths,
    from_tenths,
    is_weekend,
    parse_date_input,
)
from offday.services.sequence import next_record_id, record_id_sort_key

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

    from offday.schemas.auth import EditorContext
    from offday.schemas.grant import GrantPayload

logger = logging.getLogger(__name__)

DEFAULT_OPS_PROVIDER = "Yourself"

_DURATIONS: dict[str, tuple[DurationType, int]] = {
    "FULL": (DurationType.FULL_DAY, FULL_DAY_TENTHS),
    "HALF": (DurationType.HALF_DAY, HALF_DAY_TENTHS),
}


@dataclass
class _GrantFields:
    """Validated grant form values, ready to copy onto a row."""

    granted_date: date
    duration_type: DurationType
    duration_tenths: int
    reason_type: ReasonType
    weekend_ops_duty_date: date | None
    reason_details: str
    provided_by: str


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_grant_response(grant: GrantRecord) -> GrantResponse:
    return GrantResponse(
        id=grant.id,
        personnel=grant.personnel,
        granted_date=grant.granted_date,
        duration_type=grant.duration_type,
        duration_value=from_tenths(grant.duration_tenths),
        reason_type=grant.reason_type,
        weekend_ops_duty_date=grant.weekend_ops_duty_date,
        reason_details=grant.reason_details,
        provided_by=grant.provided_by,
        used=from_tenths(grant.used_tenths),
        remaining=from_tenths(grant.remaining_tenths),
        status=GrantStatus(grant.status),
        created_at=grant.created_at,
    )


def _available_label(grant: GrantRecord) -> str:
    remaining = format_tenths(grant.remaining_tenths)
    if grant.reason_type == ReasonType.OPS:
        duty = grant.weekend_ops_duty_date.isoformat() if grant.weekend_ops_duty_date else "-"
        return f"{grant.id}, {remaining} day, Weekend Ops on ({duty})"
    provider = grant.provided_by or "-"
    details = grant.reason_details or "-"
    return f"{grant.id}, {remaining} day, Off provided by ({provider}) For ({details})"


def _parse_granted_date(payload: GrantPayload) -> date:
    granted_date = parse_date_input(payload.granted_date)
    if granted_date is None:
        raise ValidationError("Invalid date. Use YYYY-MM-DD.")
    return granted_date


def _parse_duration_type(payload: GrantPayload) -> tuple[DurationType, int]:
    key = (payload.duration_type or "").strip().upper()
    if key not in _DURATIONS:
        raise ValidationError("Duration must be FULL or HALF.")
    return _DURATIONS[key]


def _parse_reason(payload: GrantPayload) -> tuple[ReasonType, date | None, str, str]:
    """Validate the reason block and derive details and provider."""
    reason_raw = (payload.reason_type or "").strip().upper()
    provided_by = (payload.provided_by or "").strip()

    if reason_raw == "OPS":
        duty_raw = (payload.weekend_ops_date or "").strip()
        duty_date = parse_date_input(duty_raw) if duty_raw else None
        if duty_date is None:
            raise ValidationError("Please provide the Weekend Ops duty date.")
        if not is_weekend(duty_date):
            raise ValidationError("Weekend Ops duty date must be Saturday or Sunday.")
        return ReasonType.OPS, duty_date, f"Weekend Ops on {duty_date.isoformat()}", provided_by or DEFAULT_OPS_PROVIDER

    if reason_raw == "OTHERS":
        details = (payload.other_details or "").strip()
        if not details:
            raise ValidationError("Please provide comments/details for Others.")
        if not provided_by:
            raise ValidationError('Please fill in "Provided by who".')
        return ReasonType.OTHERS, None, details, provided_by

    raise ValidationError("Reason must be OPS or OTHERS.")


def _parse_grant_fields(payload: GrantPayload) -> _GrantFields:
    granted_date = _parse_granted_date(payload)
    duration_type, duration_tenths = _parse_duration_type(payload)
    reason_type, duty_date, details, provided_by = _parse_reason(payload)
    return _GrantFields(
        granted_date=granted_date,
        duration_type=duration_type,
        duration_tenths=duration_tenths,
        reason_type=reason_type,
        weekend_ops_duty_date=duty_date,
        reason_details=details,
        provided_by=provided_by,
    )


def set_grant_used(grant: GrantRecord, used_tenths: int) -> None:
    """Store a new used amount and re-derive remaining and status."""
    grant.used_tenths = used_tenths
    grant.remaining_tenths = grant.duration_tenths - used_tenths
    grant.status = compute_status(grant.used_tenths, grant.remaining_tenths).value


async def load_grants_for_update(
    session: AsyncSession,
    personnel: str,
    grant_ids: Iterable[str],
) -> dict[str, GrantRecord]:
    """Fetch and lock the personnel's grants among ``grant_ids``, keyed by id."""
    ids = list(dict.fromkeys(grant_ids))
    if not ids:
        return {}
    result = await session.execute(
        select(GrantRecord)
        .where(
            col(GrantRecord.personnel) == personnel,
            col(GrantRecord.id).in_(ids),
        )
        .with_for_update()
    )
    return {grant.id: grant for grant in result.scalars().all()}


async def _load_all_grants(session: AsyncSession, personnel: str) -> list[GrantRecord]:
    result = await session.execute(select(GrantRecord).where(col(GrantRecord.personnel) == personnel))
    return sorted(result.scalars().all(), key=lambda g: record_id_sort_key(g.id))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def create_grant(
    session: AsyncSession,
    editor: EditorContext,
    personnel: str,
    payload: GrantPayload,
) -> GrantMutationResponse:
    """Validate a grant form and append a new Unused grant."""
    fields = _parse_grant_fields(payload)

    grant_id = await next_record_id(session, SequenceName.GRANT)
    grant = GrantRecord(
        id=grant_id,
        personnel=personnel,
        granted_date=fields.granted_date,
        duration_type=fields.duration_type.value,
        duration_tenths=fields.duration_tenths,
        reason_type=fields.reason_type.value,
        weekend_ops_duty_date=fields.weekend_ops_duty_date,
        reason_details=fields.reason_details,
        provided_by=fields.provided_by,
        used_tenths=0,
        remaining_tenths=fields.duration_tenths,
        status=GrantStatus.UNUSED.value,
    )
    session.add(grant)
    await session.flush()

    if get_settings().audit_creations:
        await write_audit_log(
            session,
            action=AuditAction.CREATE_GRANT,
            personnel=personnel,
            record_type=AuditRecordType.GRANTED,
            record_id=grant_id,
            summary=f"Added {grant_id} ({fields.duration_type.value} {format_tenths(fields.duration_tenths)}).",
            edited_by=editor.editor,
            after_json=grant_snapshot(grant),
        )

    await session.commit()
    await session.refresh(grant)

    return GrantMutationResponse(
        id=grant_id,
        message=(
            f"Added {fields.duration_type.value} ({format_tenths(fields.duration_tenths)}) "
            f"off day as {grant_id} for {personnel}."
        ),
        grant=_build_grant_response(grant),
    )


async def list_grants(session: AsyncSession, personnel: str) -> GrantListResponse:
    """Every grant of a personnel ordered by id."""
    grants = await _load_all_grants(session, personnel)
    return GrantListResponse(items=[_build_grant_response(g) for g in grants], total=len(grants))


async def list_available_grants(session: AsyncSession, personnel: str) -> AvailableGrantListResponse:
    """Grants that still have remaining balance, with a picker label."""
    grants = [g for g in await _load_all_grants(session, personnel) if g.remaining_tenths > 0]
    return AvailableGrantListResponse(
        items=[
            AvailableGrant(id=g.id, remaining=from_tenths(g.remaining_tenths), label=_available_label(g))
            for g in grants
        ],
        total=len(grants),
    )


async def edit_grant(
    session: AsyncSession,
    editor: EditorContext,
    personnel: str,
    grant_id: str,
    payload: GrantPayload,
) -> GrantMutationResponse:
    """Replace a grant's editable fields, keeping its used amount."""
    grant_id = grant_id.strip()
    grants = await load_grants_for_update(session, personnel, [grant_id])
    grant = grants.get(grant_id)
    if grant is None:
        raise NotFoundError(f"OFF ID {grant_id} not found for selected personnel.")

    granted_date = _parse_granted_date(payload)
    duration_type, duration_tenths = _parse_duration_type(payload)
    if duration_tenths < grant.used_tenths:
        raise BlockedByUsageError(
            f"Cannot reduce duration below already used amount ({format_tenths(grant.used_tenths)})."
        )
    reason_type, duty_date, details, provided_by = _parse_reason(payload)

    before = grant_snapshot(grant)

    grant.granted_date = granted_date
    grant.duration_type = duration_type.value
    grant.duration_tenths = duration_tenths
    grant.reason_type = reason_type.value
    grant.weekend_ops_duty_date = duty_date
    grant.reason_details = details
    grant.provided_by = provided_by
    set_grant_used(grant, grant.used_tenths)

    after = grant_snapshot(grant)
    await write_audit_log(
        session,
        action=AuditAction.EDIT_GRANTED,
        personnel=personnel,
        record_type=AuditRecordType.GRANTED,
        record_id=grant_id,
        summary=build_change_summary(before, after, GRANT_FIELD_LABELS),
        edited_by=editor.editor,
        before_json=before,
        after_json=after,
    )

    await session.commit()
    await session.refresh(grant)

    return GrantMutationResponse(id=grant_id, message=f"Updated {grant_id}.", grant=_build_grant_response(grant))


async def delete_grants(
    session: AsyncSession,
    editor: EditorContext,
    personnel: str,
    grant_ids: Iterable[str],
) -> OperationResponse:
    """Delete one or more grants, all or nothing.

    Every id must exist for the personnel and have nothing used; the first
    failing id aborts the whole batch before any row is removed.
    """
    ids = list(dict.fromkeys(i.strip() for i in grant_ids if i and i.strip()))
    if not ids:
        raise ValidationError("Please choose at least one OFF ID.")

    grants = await load_grants_for_update(session, personnel, ids)
    for grant_id in ids:
        grant = grants.get(grant_id)
        if grant is None:
            raise NotFoundError(f"OFF ID {grant_id} not found for selected personnel.")
        if grant.used_tenths > 0:
            raise BlockedByUsageError(
                f"Cannot delete {grant_id}. It already has used amount {format_tenths(grant.used_tenths)}."
            )

    targets = [grants[grant_id] for grant_id in ids]
    snapshots = [grant_snapshot(g) for g in targets]

    if len(targets) == 1:
        target = targets[0]
        summary = (
            f"Deleted {target.id} (Date {target.granted_date.isoformat()}, "
            f"Duration {target.duration_type} {format_tenths(target.duration_tenths)}, "
            f"Reason {target.reason_type})."
        )
        before_json: object = snapshots[0]
        record_id = target.id
    else:
        summary = f"Deleted {len(targets)} Offs (Granted): {', '.join(ids)}."
        before_json = snapshots
        record_id = ", ".join(ids)

    for grant in targets:
        await session.delete(grant)

    await write_audit_log(
        session,
        action=AuditAction.DELETE_GRANTED,
        personnel=personnel,
        record_type=AuditRecordType.GRANTED,
        record_id=record_id,
        summary=summary,
        edited_by=editor.editor,
        before_json=before_json,
        after_json=DELETED_MARKER,
    )
    await session.commit()

    logger.info("Deleted grants %s for %r", ids, personnel)
    if len(targets) == 1:
        return OperationResponse(message=f"Deleted {targets[0].id}.")
    return OperationResponse(message=f"Deleted {len(targets)} Off Granted record(s).")
