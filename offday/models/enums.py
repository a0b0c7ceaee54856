from __future__ import annotations

import enum


class DurationType(enum.StrEnum):
    """Size of a granted off day."""

    FULL_DAY = "Full Day"
    HALF_DAY = "Half Day"


class ReasonType(enum.StrEnum):
    """Why an off day was granted."""

    OPS = "Ops"
    OTHERS = "Others"


class UsageSession(enum.StrEnum):
    """Granularity of a usage event."""

    FULL_DAY = "Full Day"
    AM = "AM"
    PM = "PM"


class GrantStatus(enum.StrEnum):
    """Consumption state of a grant, derived from used/remaining."""

    UNUSED = "Unused"
    PARTIAL = "Partial"
    USED = "Used"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE_GRANT = "CREATE_GRANT"
    EDIT_GRANTED = "EDIT_GRANTED"
    DELETE_GRANTED = "DELETE_GRANTED"
    CREATE_USED = "CREATE_USED"
    EDIT_USED = "EDIT_USED"
    UNDO_USED = "UNDO_USED"


class AuditRecordType(enum.StrEnum):
    """Record type recorded in the audit log."""

    GRANTED = "Off Granted"
    USED = "Off Used"


class SequenceName(enum.StrEnum):
    """Per-record-type identifier sequences."""

    GRANT = "grant"
    USAGE = "usage"
    LOG = "log"
