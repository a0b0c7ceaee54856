from __future__ import annotations

from datetime import date

from offday.models import (
    AuditLog,
    GrantRecord,
    Personnel,
    RecordSequence,
    SQLModel,
    UsageRecord,
)
from offday.models.enums import GrantStatus, SequenceName
from offday.services.sequence import format_record_id, parse_record_number, record_id_sort_key

EXPECTED_TABLES = {
    "edit_log",
    "off_granted",
    "off_used",
    "personnel",
    "record_sequence",
}


def test_all_tables_registered() -> None:
    table_names = set(SQLModel.metadata.tables.keys())
    assert EXPECTED_TABLES.issubset(table_names)


def test_grant_record_defaults() -> None:
    grant = GrantRecord(
        id="G-0001",
        personnel="Alice",
        granted_date=date(2025, 1, 4),
        duration_type="Full Day",
        duration_tenths=10,
        reason_type="Ops",
        remaining_tenths=10,
    )
    assert grant.used_tenths == 0
    assert grant.status == GrantStatus.UNUSED
    assert grant.reason_details == ""
    assert grant.weekend_ops_duty_date is None
    assert grant.created_at is not None


def test_usage_record_defaults() -> None:
    usage = UsageRecord(
        use_id="U-0001",
        personnel="Alice",
        intended_date=date(2025, 1, 6),
        session="Full Day",
        duration_tenths=10,
    )
    assert usage.allocations_json == []
    assert usage.comments == ""


def test_audit_log_defaults() -> None:
    entry = AuditLog(
        log_id="L-00001",
        action="EDIT_GRANTED",
        personnel="Alice",
        record_type="Off Granted",
        record_id="G-0001",
    )
    assert entry.before_json is None
    assert entry.after_json is None
    assert entry.edited_by == ""


def test_personnel_and_sequence_instantiation() -> None:
    assert Personnel(name="Alice").name == "Alice"
    assert RecordSequence(name="grant").last_value == 0


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------


def test_format_record_id_pads_without_truncating() -> None:
    assert format_record_id(SequenceName.GRANT, 1) == "G-0001"
    assert format_record_id(SequenceName.USAGE, 42) == "U-0042"
    assert format_record_id(SequenceName.LOG, 7) == "L-00007"
    assert format_record_id(SequenceName.GRANT, 12345) == "G-12345"


def test_parse_record_number() -> None:
    assert parse_record_number("G-0042") == 42
    assert parse_record_number("G-abc") is None
    assert parse_record_number("nodash") is None


def test_record_id_sort_key_is_numeric_aware() -> None:
    ids = ["G-10000", "G-0002", "G-9999"]
    assert sorted(ids, key=record_id_sort_key) == ["G-0002", "G-9999", "G-10000"]
