"""Tests for importing the legacy Off Granted / Off Used CSV exports."""

from __future__ import annotations

import csv
import logging
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from offday.importer import import_sheets, read_rows
from offday.models.grant import GrantRecord
from offday.models.personnel import Personnel
from offday.models.usage import UsageRecord

if TYPE_CHECKING:
    from pathlib import Path

    import pytest
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

GRANTED_HEADERS = [
    "ID",
    "Date Off Granted",
    "Duration Type",
    "Duration Value",
    "Reason Type",
    "Weekend Ops Duty Date",
    "Reason Details",
    "Provided By",
    "Used Value",
    "Remaining Value",
    "Status",
    "Created At",
    "Personnel",
]
USED_HEADERS = [
    "Use ID",
    "Date Intended",
    "Session",
    "Duration Used",
    "Off IDs Used",
    "Comments",
    "Created At",
    "Personnel",
]


def _granted(grant_id: str, value: str = "1", used: str = "", personnel: str = "Alice") -> dict[str, str]:
    return {
        "ID": grant_id,
        "Date Off Granted": "2025-01-05",
        "Duration Type": "Full Day" if value == "1" else "Half Day",
        "Duration Value": value,
        "Reason Type": "Ops",
        "Weekend Ops Duty Date": "2025-01-04",
        "Reason Details": "Weekend Ops on 2025-01-04",
        "Provided By": "Yourself",
        "Used Value": used,
        "Remaining Value": "",
        "Status": "",
        "Created At": "2025-01-05T09:00:00",
        "Personnel": personnel,
    }


def _used(use_id: str, off_ids: str, session: str = "AM", duration: str = "0.5") -> dict[str, str]:
    return {
        "Use ID": use_id,
        "Date Intended": "2025-01-06",
        "Session": session,
        "Duration Used": duration,
        "Off IDs Used": off_ids,
        "Comments": "",
        "Created At": "",
        "Personnel": "Alice",
    }


async def _grants(session: AsyncSession) -> dict[str, GrantRecord]:
    result = await session.execute(select(GrantRecord))
    return {g.id: g for g in result.scalars().all()}


# ---------------------------------------------------------------------------
# CSV reading
# ---------------------------------------------------------------------------


def test_read_rows_strips_bom_and_whitespace(tmp_path: Path) -> None:
    path = tmp_path / "granted.csv"
    with path.open("w", newline="", encoding="utf-8-sig") as handle:
        writer = csv.DictWriter(handle, fieldnames=GRANTED_HEADERS)
        writer.writeheader()
        writer.writerow({**_granted("G-0001"), "Personnel": "  Alice  "})

    rows = read_rows(path)
    assert len(rows) == 1
    assert rows[0]["ID"] == "G-0001"
    assert rows[0]["Personnel"] == "Alice"


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


async def test_import_rebuilds_used_from_allocations(db_session: AsyncSession) -> None:
    result = await import_sheets(
        db_session,
        [_granted("G-0001"), _granted("G-0002", value="0.5")],
        [
            _used("U-0001", "G-0001 (0.5)"),
            _used("U-0002", "G-0001 (0.5) + G-0002 (0.5)", session="Full Day", duration="1"),
        ],
    )

    assert result.grants_imported == 2
    assert result.usages_imported == 2
    assert result.skipped == 0

    grants = await _grants(db_session)
    assert grants["G-0001"].used_tenths == 10
    assert grants["G-0001"].remaining_tenths == 0
    assert grants["G-0001"].status == "Used"
    assert grants["G-0002"].used_tenths == 5
    assert grants["G-0002"].status == "Used"

    usage = (await db_session.execute(select(UsageRecord).where(col(UsageRecord.use_id) == "U-0002"))).scalar_one()
    assert usage.session == "Full Day"
    assert usage.allocations_json == [
        {"grant_id": "G-0001", "amount_tenths": 5},
        {"grant_id": "G-0002", "amount_tenths": 5},
    ]


async def test_import_warns_on_sheet_used_mismatch(
    db_session: AsyncSession,
    caplog: pytest.LogCaptureFixture,
) -> None:
    with caplog.at_level(logging.WARNING, logger="offday.importer"):
        result = await import_sheets(db_session, [_granted("G-0001", used="1")], [])

    assert result.grants_imported == 1
    assert len(result.warnings) == 1
    assert "differs from allocations" in result.warnings[0]
    assert "differs from allocations" in caplog.text
    assert (await _grants(db_session))["G-0001"].used_tenths == 0


async def test_import_skips_invalid_rows(db_session: AsyncSession) -> None:
    result = await import_sheets(
        db_session,
        [
            _granted("G-0001"),
            {**_granted("G-0002"), "Date Off Granted": "not a date"},
            {**_granted("G-0003"), "Duration Value": "abc"},
        ],
        [
            _used("U-0001", "G-0404 (0.5)"),
            _used("U-0002", "G-0001 (0.5)", duration="1", session="Full Day"),
            _used("U-0003", "", session="PM"),
            _used("U-0004", "G-0001 (0.5)", session="Evening"),
        ],
    )

    assert result.grants_imported == 1
    assert result.usages_imported == 0
    assert result.skipped == 6
    assert len(result.warnings) == 6


async def test_import_rejects_overdrawn_usage(db_session: AsyncSession) -> None:
    result = await import_sheets(
        db_session,
        [_granted("G-0001", value="0.5")],
        [_used("U-0001", "G-0001 (0.5)"), _used("U-0002", "G-0001 (0.5)", session="PM")],
    )
    assert result.usages_imported == 1
    assert any("overdraw G-0001" in w for w in result.warnings)
    assert (await _grants(db_session))["G-0001"].used_tenths == 5


async def test_import_skips_existing_ids(db_session: AsyncSession) -> None:
    await import_sheets(db_session, [_granted("G-0001")], [])
    result = await import_sheets(db_session, [_granted("G-0001"), _granted("G-0002")], [])
    assert result.grants_imported == 1
    assert result.skipped == 1
    assert set(await _grants(db_session)) == {"G-0001", "G-0002"}


async def test_import_registers_personnel(db_session: AsyncSession) -> None:
    await import_sheets(db_session, [_granted("G-0001", personnel="Bob"), _granted("G-0002", personnel="")], [])
    result = await db_session.execute(select(Personnel))
    assert {p.name for p in result.scalars().all()} == {"Bob", "Default"}


async def test_new_records_continue_after_imported_ids(
    async_client: AsyncClient,
    db_session: AsyncSession,
) -> None:
    await import_sheets(db_session, [_granted("G-0041")], [_used("U-0007", "G-0041 (0.5)")])

    resp = await async_client.post(
        "/personnel/Alice/grants",
        json={
            "granted_date": "2025-02-02",
            "duration_type": "FULL",
            "reason_type": "OPS",
            "weekend_ops_date": "2025-02-01",
        },
    )
    assert resp.status_code == 201
    assert resp.json()["id"] == "G-0042"

    resp = await async_client.post(
        "/personnel/Alice/usages",
        json={"intended_date": "2025-02-03", "session": "PM", "grant_ids": ["G-0041"]},
    )
    assert resp.status_code == 201
    assert resp.json()["use_id"] == "U-0008"


async def test_import_skips_usage_whose_duration_contradicts_session(db_session: AsyncSession) -> None:
    result = await import_sheets(
        db_session,
        [_granted("G-0001")],
        [_used("U-0001", "G-0001 (1)", session="AM", duration="1")],
    )

    assert result.usages_imported == 0
    assert result.skipped == 1
    assert result.warnings == ["Skipping usage U-0001: AM needs 0.5 day, not 1."]
    assert (await db_session.execute(select(UsageRecord))).scalars().all() == []
    assert (await _grants(db_session))["G-0001"].used_tenths == 0


async def test_usages_draw_from_grants_of_an_earlier_run(db_session: AsyncSession) -> None:
    first = await import_sheets(db_session, [_granted("G-0001"), _granted("G-0002", value="0.5")], [])
    assert first.grants_imported == 2

    second = await import_sheets(
        db_session,
        [],
        [
            _used("U-0001", "G-0001 (0.5)"),
            _used("U-0002", "G-0001 (0.5) + G-0002 (0.5)", session="Full Day", duration="1"),
        ],
    )

    assert second.usages_imported == 2
    assert second.skipped == 0
    assert second.warnings == []

    grants = await _grants(db_session)
    assert grants["G-0001"].used_tenths == 10
    assert grants["G-0001"].remaining_tenths == 0
    assert grants["G-0001"].status == "Used"
    assert grants["G-0002"].used_tenths == 5
    assert grants["G-0002"].status == "Used"


async def test_later_run_cannot_overdraw_stored_grant(db_session: AsyncSession) -> None:
    await import_sheets(db_session, [_granted("G-0001", value="0.5")], [_used("U-0001", "G-0001 (0.5)")])

    result = await import_sheets(db_session, [], [_used("U-0002", "G-0001 (0.5)", session="PM")])

    assert result.usages_imported == 0
    assert result.warnings == ["Skipping usage U-0002: it would overdraw G-0001."]
    assert (await _grants(db_session))["G-0001"].used_tenths == 5
