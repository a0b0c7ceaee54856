from sqlmodel import SQLModel

from offday.models.audit import AuditLog
from offday.models.base import TimestampMixin
from offday.models.enums import (
    AuditAction,
    AuditRecordType,
    DurationType,
    GrantStatus,
    ReasonType,
    SequenceName,
    UsageSession,
)
from offday.models.grant import GrantRecord
from offday.models.personnel import Personnel
from offday.models.sequence import RecordSequence
from offday.models.usage import UsageRecord

__all__ = [
    "AuditAction",
    "AuditLog",
    "AuditRecordType",
    "DurationType",
    "GrantRecord",
    "GrantStatus",
    "Personnel",
    "ReasonType",
    "RecordSequence",
    "SQLModel",
    "SequenceName",
    "TimestampMixin",
    "UsageRecord",
    "UsageSession",
]
