"""Import CSV exports of the legacy Off Granted / Off Used sheets.

Run with:  python -m offday.importer granted.csv [used.csv]

Rows whose id already exists are skipped. Usages may draw from grants in
the same run or from grants stored by an earlier run. Grant used amounts
follow the imported allocations; a sheet Used Value that disagrees is only
reported.
"""

from __future__ import annotations

import argparse
import asyncio
import csv
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from offday.config import get_settings
from offday.db import dispose_engine, get_session_factory
from offday.models.enums import DurationType, ReasonType, SequenceName, UsageSession
from offday.models.grant import GrantRecord
from offday.models.personnel import Personnel
from offday.models.usage import UsageRecord
from offday.services.allocation import (
    Allocation,
    allocations_from_json,
    allocations_to_json,
    format_allocations,
    parse_allocations,
    total,
)
from offday.services.duration import (
    FULL_DAY_TENTHS,
    format_tenths,
    parse_date_input,
    parse_duration,
    to_tenths,
)
from offday.services.grant import set_grant_used
from offday.services.personnel import normalize_personnel
from offday.services.usage import SESSION_TENTHS
from offday.services.sequence import advance_sequence, parse_record_number

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_SESSIONS = {
    "FULL": UsageSession.FULL_DAY,
    "FULL DAY": UsageSession.FULL_DAY,
    "AM": UsageSession.AM,
    "PM": UsageSession.PM,
}


@dataclass
class ImportResult:
    """Summary of an import run."""

    grants_imported: int = 0
    usages_imported: int = 0
    skipped: int = 0
    warnings: list[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)


# ---------------------------------------------------------------------------
# Row parsing
# ---------------------------------------------------------------------------


def read_rows(path: Path) -> list[dict[str, str]]:
    with path.open(newline="", encoding="utf-8-sig") as handle:
        return [{(k or "").strip(): (v or "").strip() for k, v in row.items()} for row in csv.DictReader(handle)]


def _sheet_date(raw: str) -> date | None:
    text = raw.strip()
    if not text:
        return None
    return parse_date_input(text[:10])


def _sheet_timestamp(raw: str) -> datetime | None:
    text = raw.strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _duration_type(raw: str, tenths: int) -> DurationType:
    text = raw.strip().upper()
    if text in ("FULL", "FULL DAY"):
        return DurationType.FULL_DAY
    if text in ("HALF", "HALF DAY"):
        return DurationType.HALF_DAY
    return DurationType.FULL_DAY if tenths >= FULL_DAY_TENTHS else DurationType.HALF_DAY


def _build_grant(row: dict[str, str], result: ImportResult) -> GrantRecord | None:
    grant_id = row.get("ID", "")
    granted_date = _sheet_date(row.get("Date Off Granted", ""))
    if granted_date is None:
        result.warn(f"Skipping grant {grant_id or '?'}: invalid Date Off Granted.")
        return None

    raw_duration = row.get("Duration Value", "")
    try:
        duration = to_tenths(parse_duration(raw_duration))
    except ValueError:
        result.warn(f"Skipping grant {grant_id}: Duration Value {raw_duration!r} is not a number.")
        return None
    if duration <= 0:
        result.warn(f"Skipping grant {grant_id}: Duration Value must be positive.")
        return None

    reason_raw = row.get("Reason Type", "").upper()
    reason = ReasonType.OPS if reason_raw == "OPS" else ReasonType.OTHERS

    grant = GrantRecord(
        id=grant_id,
        personnel=normalize_personnel(row.get("Personnel")),
        granted_date=granted_date,
        duration_type=_duration_type(row.get("Duration Type", ""), duration).value,
        duration_tenths=duration,
        reason_type=reason.value,
        weekend_ops_duty_date=_sheet_date(row.get("Weekend Ops Duty Date", "")),
        reason_details=row.get("Reason Details", ""),
        provided_by=row.get("Provided By", ""),
        remaining_tenths=duration,
    )
    created_at = _sheet_timestamp(row.get("Created At", ""))
    if created_at is not None:
        grant.created_at = created_at
    set_grant_used(grant, 0)
    return grant


def _build_usage(row: dict[str, str], result: ImportResult) -> UsageRecord | None:
    use_id = row.get("Use ID", "")
    intended_date = _sheet_date(row.get("Date Intended", ""))
    if intended_date is None:
        result.warn(f"Skipping usage {use_id or '?'}: invalid Date Intended.")
        return None

    session = _SESSIONS.get(row.get("Session", "").upper())
    if session is None:
        result.warn(f"Skipping usage {use_id}: unknown Session {row.get('Session')!r}.")
        return None

    raw_duration = row.get("Duration Used", "")
    try:
        duration = to_tenths(parse_duration(raw_duration))
    except ValueError:
        duration = SESSION_TENTHS[session]
        result.warn(
            f"Usage {use_id}: Duration Used {raw_duration!r} is not a number, using {format_tenths(duration)}."
        )

    if duration != SESSION_TENTHS[session]:
        result.warn(
            f"Skipping usage {use_id}: {session.value} needs {format_tenths(SESSION_TENTHS[session])} day, "
            f"not {format_tenths(duration)}."
        )
        return None

    allocations = parse_allocations(row.get("Off IDs Used", ""))
    if not allocations:
        result.warn(f"Skipping usage {use_id}: Off IDs Used could not be parsed.")
        return None
    if total(allocations) != duration:
        result.warn(
            f"Skipping usage {use_id}: allocations {format_allocations(allocations)} "
            f"do not add up to {format_tenths(duration)} day."
        )
        return None

    usage = UsageRecord(
        use_id=use_id,
        personnel=normalize_personnel(row.get("Personnel")),
        intended_date=intended_date,
        session=session.value,
        duration_tenths=duration,
        allocations_json=allocations_to_json(allocations),
        comments=row.get("Comments", ""),
    )
    created_at = _sheet_timestamp(row.get("Created At", ""))
    if created_at is not None:
        usage.created_at = created_at
    return usage


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


def _allocation_problem(
    usage: UsageRecord,
    allocations: list[Allocation],
    grants: dict[str, GrantRecord],
    used_by_grant: dict[str, int],
) -> str | None:
    """Reason the usage cannot be drawn from the known grants, if any."""
    planned: dict[str, int] = defaultdict(int)
    for allocation in allocations:
        grant = grants.get(allocation.grant_id)
        if grant is None or grant.personnel != usage.personnel:
            return f"{allocation.grant_id} is not a grant of {usage.personnel}"
        planned[allocation.grant_id] += allocation.amount
    for grant_id, amount in planned.items():
        if used_by_grant.get(grant_id, 0) + amount > grants[grant_id].duration_tenths:
            return f"it would overdraw {grant_id}"
    return None


async def _existing_ids(session: AsyncSession, column: object) -> set[str]:
    result = await session.execute(select(column))
    return {str(value) for value in result.scalars().all()}


async def _load_stored_grants(session: AsyncSession, grant_ids: Iterable[str]) -> dict[str, GrantRecord]:
    ids = sorted(grant_ids)
    if not ids:
        return {}
    result = await session.execute(select(GrantRecord).where(col(GrantRecord.id).in_(ids)).with_for_update())
    return {grant.id: grant for grant in result.scalars().all()}


async def _ensure_personnel(session: AsyncSession, names: Iterable[str]) -> None:
    result = await session.execute(select(Personnel))
    known = {p.name.lower() for p in result.scalars().all()}
    for name in sorted(set(names)):
        if name.lower() not in known:
            session.add(Personnel(name=name))
            known.add(name.lower())
            logger.info("Registered personnel %r", name)


async def _advance_past(session: AsyncSession, name: SequenceName, ids: Iterable[str]) -> None:
    numbers = [n for n in (parse_record_number(i) for i in ids) if n is not None]
    if numbers:
        await advance_sequence(session, name, max(numbers))


async def import_sheets(
    session: AsyncSession,
    granted_rows: list[dict[str, str]],
    used_rows: list[dict[str, str]] | None = None,
) -> ImportResult:
    """Insert legacy grant and usage rows in one transaction."""
    result = ImportResult()
    existing_grants = await _existing_ids(session, col(GrantRecord.id))
    existing_usages = await _existing_ids(session, col(UsageRecord.use_id))

    grants: dict[str, GrantRecord] = {}
    sheet_used: dict[str, str] = {}
    for row in granted_rows:
        grant_id = row.get("ID", "")
        if not grant_id or grant_id in existing_grants or grant_id in grants:
            result.skipped += 1
            continue
        grant = _build_grant(row, result)
        if grant is None:
            result.skipped += 1
            continue
        grants[grant_id] = grant
        sheet_used[grant_id] = row.get("Used Value", "")

    candidates: list[UsageRecord] = []
    seen_usages: set[str] = set()
    for row in used_rows or []:
        use_id = row.get("Use ID", "")
        if not use_id or use_id in existing_usages or use_id in seen_usages:
            result.skipped += 1
            continue
        usage = _build_usage(row, result)
        if usage is None:
            result.skipped += 1
            continue
        seen_usages.add(use_id)
        candidates.append(usage)

    # Usages may draw from grants stored by an earlier run as well as from this one.
    referenced = {a.grant_id for u in candidates for a in allocations_from_json(u.allocations_json)}
    stored = await _load_stored_grants(session, referenced - grants.keys())
    drawable = {**stored, **grants}
    used_by_grant: dict[str, int] = defaultdict(int, {gid: g.used_tenths for gid, g in stored.items()})

    usages: list[UsageRecord] = []
    for usage in candidates:
        allocations = allocations_from_json(usage.allocations_json)
        problem = _allocation_problem(usage, allocations, drawable, used_by_grant)
        if problem is not None:
            result.warn(f"Skipping usage {usage.use_id}: {problem}.")
            result.skipped += 1
            continue

        for allocation in allocations:
            used_by_grant[allocation.grant_id] += allocation.amount
        usages.append(usage)

    for grant_id, grant in stored.items():
        if used_by_grant[grant_id] != grant.used_tenths:
            set_grant_used(grant, used_by_grant[grant_id])
            logger.info("Grant %s now has %s day used", grant_id, format_tenths(grant.used_tenths))

    for grant_id, grant in grants.items():
        set_grant_used(grant, used_by_grant.get(grant_id, 0))
        raw_used = sheet_used.get(grant_id, "")
        if not raw_used:
            continue
        try:
            recorded = to_tenths(parse_duration(raw_used))
        except ValueError:
            recorded = None
        if recorded != grant.used_tenths:
            result.warn(
                f"Grant {grant_id}: sheet Used Value {raw_used!r} differs from allocations "
                f"({format_tenths(grant.used_tenths)}); using allocations."
            )

    await _ensure_personnel(session, [g.personnel for g in grants.values()] + [u.personnel for u in usages])
    session.add_all(grants.values())
    session.add_all(usages)
    await _advance_past(session, SequenceName.GRANT, grants)
    await _advance_past(session, SequenceName.USAGE, (u.use_id for u in usages))
    await session.commit()

    result.grants_imported = len(grants)
    result.usages_imported = len(usages)
    return result


async def run_import(granted_path: Path, used_path: Path | None) -> ImportResult:
    granted_rows = read_rows(granted_path)
    used_rows = read_rows(used_path) if used_path is not None else []
    session_factory = get_session_factory()
    try:
        async with session_factory() as session:
            return await import_sheets(session, granted_rows, used_rows)
    finally:
        await dispose_engine()


def main(argv: list[str] | None = None) -> None:
    """Entry point for the legacy import."""
    parser = argparse.ArgumentParser(description="Import Off Granted / Off Used CSV exports.")
    parser.add_argument("granted", type=Path, help="CSV export of the Off Granted sheet")
    parser.add_argument("used", type=Path, nargs="?", help="CSV export of the Off Used sheet")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    result = asyncio.run(run_import(args.granted, args.used))
    logger.info(
        "Import complete: grants=%d usages=%d skipped=%d warnings=%d",
        result.grants_imported,
        result.usages_imported,
        result.skipped,
        len(result.warnings),
    )


if __name__ == "__main__":
    main()
