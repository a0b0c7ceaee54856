"""Tests for grant creation, listing, editing and deletion."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import select
from sqlmodel import col

from offday.importer import import_sheets
from offday.models.audit import AuditLog
from offday.models.grant import GrantRecord

if TYPE_CHECKING:
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

GRANTS_URL = "/personnel/Alice/grants"
USAGES_URL = "/personnel/Alice/usages"

OPS_FULL = {
    "granted_date": "2025-01-05",
    "duration_type": "FULL",
    "reason_type": "OPS",
    "weekend_ops_date": "2025-01-04",
}
OTHERS_HALF = {
    "granted_date": "2025-01-10",
    "duration_type": "HALF",
    "reason_type": "OTHERS",
    "other_details": "Audit",
    "provided_by": "Boss",
}


# ---------------------------------------------------------------------------
# Fixtures / helpers
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
async def _alice(async_client: AsyncClient) -> None:
    resp = await async_client.post("/personnel", json={"name": "Alice"})
    assert resp.status_code == 201


async def _create(client: AsyncClient, payload: dict, url: str = GRANTS_URL) -> dict:  # type: ignore[type-arg]
    resp = await client.post(url, json=payload)
    assert resp.status_code == 201, resp.text
    body: dict = resp.json()  # type: ignore[type-arg]
    return body


async def _use(client: AsyncClient, grant_ids: list[str], session: str = "FULL") -> dict:  # type: ignore[type-arg]
    resp = await client.post(
        USAGES_URL,
        json={"intended_date": "2025-01-06", "session": session, "grant_ids": grant_ids},
    )
    assert resp.status_code == 201, resp.text
    body: dict = resp.json()  # type: ignore[type-arg]
    return body


async def _audit(db_session: AsyncSession) -> list[AuditLog]:
    result = await db_session.execute(select(AuditLog).order_by(col(AuditLog.log_id)))
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


async def test_create_ops_grant(async_client: AsyncClient) -> None:
    body = await _create(async_client, OPS_FULL)
    assert body["ok"] is True
    assert body["id"] == "G-0001"
    assert body["message"] == "Added Full Day (1) off day as G-0001 for Alice."

    grant = body["grant"]
    assert grant["duration_type"] == "Full Day"
    assert grant["duration_value"] == 1.0
    assert grant["reason_type"] == "Ops"
    assert grant["weekend_ops_duty_date"] == "2025-01-04"
    assert grant["reason_details"] == "Weekend Ops on 2025-01-04"
    assert grant["provided_by"] == "Yourself"
    assert grant["used"] == 0
    assert grant["remaining"] == 1.0
    assert grant["status"] == "Unused"


async def test_create_others_grant(async_client: AsyncClient) -> None:
    await _create(async_client, OPS_FULL)
    body = await _create(async_client, OTHERS_HALF)
    assert body["id"] == "G-0002"
    assert body["message"] == "Added Half Day (0.5) off day as G-0002 for Alice."
    assert body["grant"]["reason_details"] == "Audit"
    assert body["grant"]["provided_by"] == "Boss"
    assert body["grant"]["weekend_ops_duty_date"] is None


async def test_create_accepts_lowercase_codes(async_client: AsyncClient) -> None:
    body = await _create(async_client, {**OTHERS_HALF, "duration_type": "half", "reason_type": "others"})
    assert body["grant"]["duration_type"] == "Half Day"


async def test_blank_granted_date_means_today(async_client: AsyncClient) -> None:
    body = await _create(async_client, {**OPS_FULL, "granted_date": ""})
    assert body["grant"]["granted_date"] == date.today().isoformat()


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"granted_date": "2025-13-01"}, "Invalid date. Use YYYY-MM-DD."),
        ({"duration_type": "QUARTER"}, "Duration must be FULL or HALF."),
        ({"reason_type": "HOLIDAY"}, "Reason must be OPS or OTHERS."),
        ({"weekend_ops_date": ""}, "Please provide the Weekend Ops duty date."),
        ({"weekend_ops_date": "2025-01-06"}, "Weekend Ops duty date must be Saturday or Sunday."),
    ],
)
async def test_create_ops_validation(async_client: AsyncClient, overrides: dict[str, str], message: str) -> None:
    resp = await async_client.post(GRANTS_URL, json={**OPS_FULL, **overrides})
    assert resp.status_code == 422
    body = resp.json()
    assert body["ok"] is False
    assert body["error"] == "ValidationError"
    assert body["message"] == message


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"other_details": "  "}, "Please provide comments/details for Others."),
        ({"provided_by": ""}, 'Please fill in "Provided by who".'),
    ],
)
async def test_create_others_validation(
    async_client: AsyncClient,
    overrides: dict[str, str],
    message: str,
) -> None:
    resp = await async_client.post(GRANTS_URL, json={**OTHERS_HALF, **overrides})
    assert resp.status_code == 422
    assert resp.json()["message"] == message


async def test_validation_reports_first_problem(async_client: AsyncClient) -> None:
    resp = await async_client.post(GRANTS_URL, json={"granted_date": "bad", "duration_type": "bad"})
    assert resp.json()["message"] == "Invalid date. Use YYYY-MM-DD."


async def test_failed_create_writes_nothing(async_client: AsyncClient, db_session: AsyncSession) -> None:
    resp = await async_client.post(GRANTS_URL, json={**OPS_FULL, "reason_type": "nope"})
    assert resp.status_code == 422
    result = await db_session.execute(select(GrantRecord))
    assert result.scalars().all() == []
    body = await _create(async_client, OPS_FULL)
    assert body["id"] == "G-0001"


async def test_create_is_not_audited_by_default(async_client: AsyncClient, db_session: AsyncSession) -> None:
    await _create(async_client, OPS_FULL)
    assert await _audit(db_session) == []


@pytest.mark.usefixtures("audit_creations")
async def test_create_audit_can_be_enabled(async_client: AsyncClient, db_session: AsyncSession) -> None:
    await _create(async_client, OPS_FULL)
    entries = await _audit(db_session)
    assert [e.action for e in entries] == ["CREATE_GRANT"]
    assert entries[0].record_id == "G-0001"
    assert entries[0].after_json["status"] == "Unused"


# ---------------------------------------------------------------------------
# List
# ---------------------------------------------------------------------------


async def test_list_grants_is_scoped_to_personnel(async_client: AsyncClient) -> None:
    await async_client.post("/personnel", json={"name": "Bob"})
    await _create(async_client, OPS_FULL)
    await _create(async_client, OPS_FULL, url="/personnel/Bob/grants")

    alice = (await async_client.get(GRANTS_URL)).json()
    bob = (await async_client.get("/personnel/Bob/grants")).json()
    assert [g["id"] for g in alice["items"]] == ["G-0001"]
    assert [g["id"] for g in bob["items"]] == ["G-0002"]


async def test_available_grants_labels_and_filtering(async_client: AsyncClient) -> None:
    await _create(async_client, OPS_FULL)
    await _create(async_client, OTHERS_HALF)
    await _create(async_client, OPS_FULL)
    await _use(async_client, ["G-0003"])

    resp = await async_client.get(f"{GRANTS_URL}/available")
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 2
    assert body["items"] == [
        {"id": "G-0001", "remaining": 1.0, "label": "G-0001, 1 day, Weekend Ops on (2025-01-04)"},
        {"id": "G-0002", "remaining": 0.5, "label": "G-0002, 0.5 day, Off provided by (Boss) For (Audit)"},
    ]


# ---------------------------------------------------------------------------
# Edit
# ---------------------------------------------------------------------------


async def test_edit_grant_replaces_fields(async_client: AsyncClient, db_session: AsyncSession) -> None:
    await _create(async_client, OPS_FULL)
    resp = await async_client.put(
        f"{GRANTS_URL}/G-0001",
        json={**OPS_FULL, "duration_type": "HALF"},
        headers={"X-Editor": "lead@example.com"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Updated G-0001."
    assert body["grant"]["duration_type"] == "Half Day"
    assert body["grant"]["remaining"] == 0.5
    assert body["grant"]["status"] == "Unused"

    entries = await _audit(db_session)
    assert len(entries) == 1
    entry = entries[0]
    assert entry.action == "EDIT_GRANTED"
    assert entry.record_type == "Off Granted"
    assert entry.edited_by == "lead@example.com"
    assert entry.summary == (
        "Duration Type: Full Day -> Half Day | Duration Value: 1 -> 0.5 | Remaining Value: 1 -> 0.5"
    )
    assert entry.before_json["duration_value"] == 1.0
    assert entry.after_json["duration_value"] == 0.5


async def test_edit_keeps_used_and_recomputes_status(async_client: AsyncClient) -> None:
    await _create(async_client, OPS_FULL)
    await _use(async_client, ["G-0001"], session="AM")

    resp = await async_client.put(f"{GRANTS_URL}/G-0001", json={**OPS_FULL, "duration_type": "HALF"})
    assert resp.status_code == 200
    grant = resp.json()["grant"]
    assert grant["used"] == 0.5
    assert grant["remaining"] == 0
    assert grant["status"] == "Used"


async def test_edit_cannot_reduce_below_used(async_client: AsyncClient) -> None:
    await _create(async_client, OPS_FULL)
    await _use(async_client, ["G-0001"])

    resp = await async_client.put(f"{GRANTS_URL}/G-0001", json={**OPS_FULL, "duration_type": "HALF"})
    assert resp.status_code == 409
    body = resp.json()
    assert body["error"] == "BlockedByUsageError"
    assert body["message"] == "Cannot reduce duration below already used amount (1)."


async def test_edit_switches_reason_to_others(async_client: AsyncClient) -> None:
    await _create(async_client, OPS_FULL)
    resp = await async_client.put(f"{GRANTS_URL}/G-0001", json={**OTHERS_HALF, "duration_type": "FULL"})
    grant = resp.json()["grant"]
    assert grant["reason_type"] == "Others"
    assert grant["weekend_ops_duty_date"] is None
    assert grant["reason_details"] == "Audit"


async def test_edit_unknown_grant(async_client: AsyncClient) -> None:
    resp = await async_client.put(f"{GRANTS_URL}/G-0099", json=OPS_FULL)
    assert resp.status_code == 404
    assert resp.json()["message"] == "OFF ID G-0099 not found for selected personnel."


async def test_failed_edit_changes_nothing(async_client: AsyncClient, db_session: AsyncSession) -> None:
    await _create(async_client, OPS_FULL)
    resp = await async_client.put(f"{GRANTS_URL}/G-0001", json={**OPS_FULL, "weekend_ops_date": "2025-01-06"})
    assert resp.status_code == 422

    grant = (await async_client.get(GRANTS_URL)).json()["items"][0]
    assert grant["weekend_ops_duty_date"] == "2025-01-04"
    assert await _audit(db_session) == []


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------


async def test_delete_single_grant(async_client: AsyncClient, db_session: AsyncSession) -> None:
    await _create(async_client, OPS_FULL)
    resp = await async_client.delete(f"{GRANTS_URL}/G-0001")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "message": "Deleted G-0001."}

    entries = await _audit(db_session)
    assert [e.action for e in entries] == ["DELETE_GRANTED"]
    assert entries[0].summary == "Deleted G-0001 (Date 2025-01-05, Duration Full Day 1, Reason Ops)."
    assert entries[0].before_json["id"] == "G-0001"
    assert entries[0].after_json == {"deleted": True}


async def test_batch_delete(async_client: AsyncClient, db_session: AsyncSession) -> None:
    await _create(async_client, OPS_FULL)
    await _create(async_client, OTHERS_HALF)
    await _create(async_client, OPS_FULL)

    resp = await async_client.post(f"{GRANTS_URL}/delete", json={"ids": ["G-0001", "G-0003"]})
    assert resp.status_code == 200
    assert resp.json()["message"] == "Deleted 2 Off Granted record(s)."

    remaining = (await async_client.get(GRANTS_URL)).json()["items"]
    assert [g["id"] for g in remaining] == ["G-0002"]

    entries = await _audit(db_session)
    assert len(entries) == 1
    assert entries[0].summary == "Deleted 2 Offs (Granted): G-0001, G-0003."
    assert [s["id"] for s in entries[0].before_json] == ["G-0001", "G-0003"]


async def test_batch_delete_is_all_or_nothing(async_client: AsyncClient, db_session: AsyncSession) -> None:
    await _create(async_client, OPS_FULL)
    await _create(async_client, OPS_FULL)
    await _use(async_client, ["G-0002"], session="PM")

    resp = await async_client.post(f"{GRANTS_URL}/delete", json={"ids": ["G-0001", "G-0002"]})
    assert resp.status_code == 409
    assert resp.json()["message"] == "Cannot delete G-0002. It already has used amount 0.5."

    remaining = (await async_client.get(GRANTS_URL)).json()["items"]
    assert [g["id"] for g in remaining] == ["G-0001", "G-0002"]
    assert await _audit(db_session) == []


async def _import_fractional_usage(db_session: AsyncSession) -> None:
    """G-0002 and G-0003 end up with 0.2 and 0.3 used; G-0001 stays unused."""
    granted = [
        {
            "ID": grant_id,
            "Date Off Granted": "2025-01-05",
            "Duration Value": "1",
            "Reason Type": "Ops",
            "Weekend Ops Duty Date": "2025-01-04",
            "Personnel": "Alice",
        }
        for grant_id in ("G-0001", "G-0002", "G-0003")
    ]
    used = [
        {
            "Use ID": "U-0001",
            "Date Intended": "2025-01-06",
            "Session": "AM",
            "Duration Used": "0.5",
            "Off IDs Used": "G-0002 (0.2) + G-0003 (0.3)",
            "Personnel": "Alice",
        }
    ]
    result = await import_sheets(db_session, granted, used)
    assert result.usages_imported == 1


async def test_delete_blocked_by_fractional_used_amount(async_client: AsyncClient, db_session: AsyncSession) -> None:
    await _import_fractional_usage(db_session)

    resp = await async_client.delete(f"{GRANTS_URL}/G-0003")
    assert resp.status_code == 409
    assert resp.json()["message"] == "Cannot delete G-0003. It already has used amount 0.3."

    resp = await async_client.delete(f"{GRANTS_URL}/G-0001")
    assert resp.status_code == 200


async def test_batch_delete_blocked_by_fractional_used_amount(
    async_client: AsyncClient,
    db_session: AsyncSession,
) -> None:
    await _import_fractional_usage(db_session)

    resp = await async_client.post(f"{GRANTS_URL}/delete", json={"ids": ["G-0001", "G-0002"]})
    assert resp.status_code == 409
    assert resp.json()["message"] == "Cannot delete G-0002. It already has used amount 0.2."

    remaining = (await async_client.get(GRANTS_URL)).json()["items"]
    assert [(g["id"], g["used"]) for g in remaining] == [("G-0001", 0), ("G-0002", 0.2), ("G-0003", 0.3)]
    assert await _audit(db_session) == []


async def test_delete_unknown_grant(async_client: AsyncClient) -> None:
    await _create(async_client, OPS_FULL)
    resp = await async_client.post(f"{GRANTS_URL}/delete", json={"ids": ["G-0001", "G-0042"]})
    assert resp.status_code == 404
    assert resp.json()["message"] == "OFF ID G-0042 not found for selected personnel."
    assert len((await async_client.get(GRANTS_URL)).json()["items"]) == 1


async def test_delete_other_personnels_grant_is_not_found(async_client: AsyncClient) -> None:
    await async_client.post("/personnel", json={"name": "Bob"})
    await _create(async_client, OPS_FULL)
    resp = await async_client.delete("/personnel/Bob/grants/G-0001")
    assert resp.status_code == 404


async def test_ids_are_not_reused_after_delete(async_client: AsyncClient) -> None:
    await _create(async_client, OPS_FULL)
    await async_client.delete(f"{GRANTS_URL}/G-0001")
    body = await _create(async_client, OPS_FULL)
    assert body["id"] == "G-0002"
