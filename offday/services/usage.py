from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from offday.config import get_settings
from offday.exceptions import (
    AllocationShortfallError,
    DanglingAllocationError,
    InsufficientBalanceError,
    NoAllocationsRemainError,
    NotFoundError,
    UnknownOrExhaustedGrantError,
    ValidationError,
)
from offday.models.enums import AuditAction, AuditRecordType, SequenceName, UsageSession
from offday.models.usage import UsageRecord
from offday.schemas.common import OperationResponse
from offday.schemas.usage import (
    AllocationResponse,
    UsageListResponse,
    UsageMutationResponse,
    UsageResponse,
)
from offday.services.allocation import (
    Allocation,
    GrantBalance,
    allocations_from_json,
    allocations_to_json,
    draw,
    format_allocations,
    merge_allocations,
    release_newest_first,
    total,
)
from offday.services.audit import (
    DELETED_MARKER,
    USAGE_FIELD_LABELS,
    build_change_summary,
    usage_snapshot,
    write_audit_log,
)
from offday.services.duration import (
    FULL_DAY_TENTHS,
    HALF_DAY_TENTHS,
    format_tenths,
    from_tenths,
    parse_date_input,
)
from offday.services.grant import load_grants_for_update, set_grant_used
from offday.services.sequence import next_record_id, record_id_sort_key

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

    from offday.models.grant import GrantRecord
    from offday.schemas.auth import EditorContext
    from offday.schemas.usage import EditUsagePayload, UsagePayload

logger = logging.getLogger(__name__)

_SESSIONS: dict[str, UsageSession] = {
    "FULL": UsageSession.FULL_DAY,
    "FULL DAY": UsageSession.FULL_DAY,
    "AM": UsageSession.AM,
    "PM": UsageSession.PM,
}

SESSION_TENTHS: dict[UsageSession, int] = {
    UsageSession.FULL_DAY: FULL_DAY_TENTHS,
    UsageSession.AM: HALF_DAY_TENTHS,
    UsageSession.PM: HALF_DAY_TENTHS,
}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_usage_response(usage: UsageRecord) -> UsageResponse:
    allocations = allocations_from_json(usage.allocations_json)
    return UsageResponse(
        use_id=usage.use_id,
        personnel=usage.personnel,
        intended_date=usage.intended_date,
        session=usage.session,
        duration=from_tenths(usage.duration_tenths),
        allocations=[AllocationResponse(grant_id=a.grant_id, amount=from_tenths(a.amount)) for a in allocations],
        off_ids_used=format_allocations(allocations),
        comments=usage.comments,
        created_at=usage.created_at,
    )


def _parse_session(raw: str | None) -> UsageSession | None:
    return _SESSIONS.get((raw or "").strip().upper())


def _clean_ids(raw_ids: Iterable[str] | None) -> list[str]:
    """Trim, drop blanks and collapse duplicates while keeping first positions."""
    cleaned = (str(i or "").strip() for i in raw_ids or [])
    return list(dict.fromkeys(i for i in cleaned if i))


def _working_copy(grant: GrantRecord) -> GrantBalance:
    return GrantBalance(grant_id=grant.id, duration=grant.duration_tenths, used=grant.used_tenths)


async def _get_usage_or_404(session: AsyncSession, personnel: str, use_id: str) -> UsageRecord:
    result = await session.execute(
        select(UsageRecord)
        .where(
            col(UsageRecord.personnel) == personnel,
            col(UsageRecord.use_id) == use_id,
        )
        .with_for_update()
    )
    usage = result.scalar_one_or_none()
    if usage is None:
        raise NotFoundError(f"Use ID {use_id} not found for selected personnel.")
    return usage


async def _resolve_allocated_grants(
    session: AsyncSession,
    personnel: str,
    use_id: str,
    allocations: Iterable[Allocation],
) -> dict[str, GrantRecord]:
    """Load every grant the allocations reference, failing if any is gone."""
    allocations = list(allocations)
    grants = await load_grants_for_update(session, personnel, (a.grant_id for a in allocations))
    for allocation in allocations:
        if allocation.grant_id not in grants:
            logger.error(
                "Usage %s for %r references missing grant %s",
                use_id,
                personnel,
                allocation.grant_id,
            )
            raise DanglingAllocationError(f"Granted row not found for OFF ID {allocation.grant_id}.")
    return grants


def _released_used(grants: dict[str, GrantRecord], released: Iterable[Allocation]) -> dict[str, int]:
    """New used amount per grant after giving back ``released``."""
    updates: dict[str, int] = {}
    for allocation in released:
        current = updates.get(allocation.grant_id, grants[allocation.grant_id].used_tenths)
        updates[allocation.grant_id] = max(current - allocation.amount, 0)
    return updates


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def create_usage(
    session: AsyncSession,
    editor: EditorContext,
    personnel: str,
    payload: UsagePayload,
) -> UsageMutationResponse:
    """Record a usage event drawing the selected grants in the given order."""
    intended_date = parse_date_input(payload.intended_date)
    if intended_date is None:
        raise ValidationError("Invalid intended date. Use YYYY-MM-DD.")

    usage_session = _parse_session(payload.session)
    if usage_session is None:
        raise ValidationError("Session must be AM, PM, or FULL.")
    needed = SESSION_TENTHS[usage_session]

    selected_ids = _clean_ids(payload.grant_ids)
    if not selected_ids:
        raise ValidationError("Please choose at least one OFF ID.")

    comments = (payload.comments or "").strip()

    grants = await load_grants_for_update(session, personnel, selected_ids)
    selected_total = 0
    for grant_id in selected_ids:
        grant = grants.get(grant_id)
        if grant is None or grant.remaining_tenths <= 0:
            raise UnknownOrExhaustedGrantError(f"OFF ID {grant_id} does not exist or has no remaining balance.")
        selected_total += grant.remaining_tenths

    if selected_total < needed:
        if needed == FULL_DAY_TENTHS and selected_total == HALF_DAY_TENTHS:
            raise InsufficientBalanceError(
                "You selected only 0.5 day. For Full Day OFF, choose another ID to make a total of 1 day."
            )
        raise InsufficientBalanceError(
            f"Selected IDs total {format_tenths(selected_total)} day, but {format_tenths(needed)} day is required."
        )

    balances = [_working_copy(grants[grant_id]) for grant_id in selected_ids]
    result = draw(balances, needed)
    if result.shortfall > 0:
        raise AllocationShortfallError("Unable to allocate enough off balance from selected IDs. Please try again.")

    touched = {a.grant_id for a in result.allocations}
    for balance in balances:
        if balance.grant_id in touched:
            set_grant_used(grants[balance.grant_id], balance.used)

    use_id = await next_record_id(session, SequenceName.USAGE)
    usage = UsageRecord(
        use_id=use_id,
        personnel=personnel,
        intended_date=intended_date,
        session=usage_session.value,
        duration_tenths=needed,
        allocations_json=allocations_to_json(result.allocations),
        comments=comments,
    )
    session.add(usage)
    await session.flush()

    off_ids_used = format_allocations(result.allocations)
    if get_settings().audit_creations:
        await write_audit_log(
            session,
            action=AuditAction.CREATE_USED,
            personnel=personnel,
            record_type=AuditRecordType.USED,
            record_id=use_id,
            summary=(
                f"Recorded {use_id} on {intended_date.isoformat()} ({usage_session.value}) using {off_ids_used}."
            ),
            edited_by=editor.editor,
            after_json=usage_snapshot(usage),
        )

    await session.commit()
    await session.refresh(usage)

    return UsageMutationResponse(
        use_id=use_id,
        message=(
            f"Recorded {usage_session.value} usage ({format_tenths(needed)} day) "
            f"for {personnel} using {off_ids_used}."
        ),
        usage=_build_usage_response(usage),
    )


async def list_usages(session: AsyncSession, personnel: str) -> UsageListResponse:
    """Every usage record of a personnel ordered by id."""
    result = await session.execute(select(UsageRecord).where(col(UsageRecord.personnel) == personnel))
    usages = sorted(result.scalars().all(), key=lambda u: record_id_sort_key(u.use_id))
    return UsageListResponse(items=[_build_usage_response(u) for u in usages], total=len(usages))


async def edit_usage(
    session: AsyncSession,
    editor: EditorContext,
    personnel: str,
    use_id: str,
    payload: EditUsagePayload,
) -> UsageMutationResponse:
    """Change a usage's date, session and comments, rebalancing its allocations.

    Growing the session draws the difference from ``additional_grant_ids``;
    shrinking it releases the newest allocations first.
    """
    use_id = use_id.strip()
    usage = await _get_usage_or_404(session, personnel, use_id)
    before = usage_snapshot(usage)

    intended_date = parse_date_input(payload.intended_date)
    if intended_date is None:
        raise ValidationError("Invalid intended date. Use YYYY-MM-DD.")

    usage_session = _parse_session(payload.session)
    if usage_session is None:
        raise ValidationError("Session must be FULL, AM, or PM.")
    target = SESSION_TENTHS[usage_session]

    comments = (payload.comments or "").strip()
    allocations = allocations_from_json(usage.allocations_json)
    if not allocations:
        raise NoAllocationsRemainError(f"Unable to parse Off IDs Used for {use_id}.")

    delta = target - usage.duration_tenths
    grant_updates: dict[str, int] = {}
    grants: dict[str, GrantRecord] = {}

    if delta > 0:
        additional_ids = _clean_ids(payload.additional_grant_ids)
        if not additional_ids:
            raise InsufficientBalanceError(
                f"Need additional {format_tenths(delta)} day. Please provide more OFF ID(s)."
            )
        grants = await load_grants_for_update(session, personnel, additional_ids)
        # Unknown ids are passed over; exhausted ones are skipped by the draw.
        balances = [_working_copy(grants[i]) for i in additional_ids if i in grants]
        result = draw(balances, delta)
        if result.shortfall > 0:
            raise InsufficientBalanceError(
                f"Additional OFF IDs are insufficient. Still need {format_tenths(result.shortfall)} day."
            )
        touched = {a.grant_id for a in result.allocations}
        grant_updates = {b.grant_id: b.used for b in balances if b.grant_id in touched}
        allocations = merge_allocations(allocations, result.allocations)
    elif delta < 0:
        allocations, released = release_newest_first(allocations, -delta)
        if total(released) < -delta:
            raise AllocationShortfallError(f"Unable to release enough allocation for {use_id}.")
        grants = await _resolve_allocated_grants(session, personnel, use_id, released)
        grant_updates = _released_used(grants, released)

    allocations = [a for a in allocations if a.amount > 0]
    if not allocations:
        raise NoAllocationsRemainError("No OFF IDs remain allocated after edit.")

    for grant_id, used in grant_updates.items():
        set_grant_used(grants[grant_id], used)

    usage.intended_date = intended_date
    usage.session = usage_session.value
    usage.duration_tenths = target
    usage.allocations_json = allocations_to_json(allocations)
    usage.comments = comments

    after = usage_snapshot(usage)
    await write_audit_log(
        session,
        action=AuditAction.EDIT_USED,
        personnel=personnel,
        record_type=AuditRecordType.USED,
        record_id=use_id,
        summary=build_change_summary(before, after, USAGE_FIELD_LABELS),
        edited_by=editor.editor,
        before_json=before,
        after_json=after,
    )

    await session.commit()
    await session.refresh(usage)

    return UsageMutationResponse(
        use_id=use_id,
        message=f"Updated {use_id} to {usage_session.value} ({format_tenths(target)} day).",
        usage=_build_usage_response(usage),
    )


async def undo_usage(
    session: AsyncSession,
    editor: EditorContext,
    personnel: str,
    use_id: str,
) -> OperationResponse:
    """Delete a usage record and give its allocations back to their grants."""
    use_id = use_id.strip()
    usage = await _get_usage_or_404(session, personnel, use_id)
    before = usage_snapshot(usage)

    allocations = allocations_from_json(usage.allocations_json)
    grants = await _resolve_allocated_grants(session, personnel, use_id, allocations)

    for grant_id, used in _released_used(grants, allocations).items():
        set_grant_used(grants[grant_id], used)

    await session.delete(usage)

    await write_audit_log(
        session,
        action=AuditAction.UNDO_USED,
        personnel=personnel,
        record_type=AuditRecordType.USED,
        record_id=use_id,
        summary=(
            f"Undid {use_id}. Restored {format_tenths(usage.duration_tenths)} day from: "
            f"{before['off_ids_used']}. Intended date was {before['date_intended']} ({usage.session})."
        ),
        edited_by=editor.editor,
        before_json=before,
        after_json=DELETED_MARKER,
    )
    await session.commit()

    return OperationResponse(message=f"Undid {use_id}. Allocated Off balance has been restored.")
