from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from offday.models.enums import SequenceName
from offday.models.sequence import RecordSequence

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

_PREFIXES: dict[SequenceName, tuple[str, int]] = {
    SequenceName.GRANT: ("G", 4),
    SequenceName.USAGE: ("U", 4),
    SequenceName.LOG: ("L", 5),
}


def format_record_id(name: SequenceName, value: int) -> str:
    """Zero-pad to the minimum width without ever truncating larger values."""
    prefix, width = _PREFIXES[name]
    return f"{prefix}-{value:0{width}d}"


def parse_record_number(record_id: str) -> int | None:
    """Numeric part of an identifier such as ``G-0042``."""
    _, _, digits = record_id.partition("-")
    return int(digits) if digits.isdigit() else None


def record_id_sort_key(record_id: str) -> tuple[str, int, str]:
    """Sort key that keeps ``G-9999`` before ``G-10000``."""
    prefix = record_id.partition("-")[0]
    number = parse_record_number(record_id)
    return (prefix, number if number is not None else -1, record_id)


async def _get_sequence_for_update(session: AsyncSession, name: SequenceName) -> RecordSequence:
    result = await session.execute(
        select(RecordSequence).where(col(RecordSequence.name) == name.value).with_for_update()
    )
    sequence = result.scalar_one_or_none()
    if sequence is None:
        sequence = RecordSequence(name=name.value, last_value=0)
        session.add(sequence)
    return sequence


async def next_record_id(session: AsyncSession, name: SequenceName) -> str:
    """Reserve the next identifier for a record type within the caller's transaction."""
    sequence = await _get_sequence_for_update(session, name)
    sequence.last_value += 1
    return format_record_id(name, sequence.last_value)


async def advance_sequence(session: AsyncSession, name: SequenceName, at_least: int) -> None:
    """Move a sequence forward so the next id is greater than ``at_least``."""
    sequence = await _get_sequence_for_update(session, name)
    sequence.last_value = max(sequence.last_value, at_least)
