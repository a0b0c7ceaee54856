from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select
from sqlmodel import col

from offday.config import get_settings
from offday.exceptions import ConflictError, NotFoundError, ValidationError
from offday.models.grant import GrantRecord
from offday.models.personnel import Personnel
from offday.models.usage import UsageRecord
from offday.schemas.common import OperationResponse
from offday.schemas.personnel import PersonnelListResponse, PersonnelResponse

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from offday.schemas.personnel import CreatePersonnelRequest

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def normalize_personnel(value: str | None) -> str:
    """Trimmed name, falling back to the default sentinel when blank."""
    text = (value or "").strip()
    return text or get_settings().default_personnel


def _build_personnel_response(personnel: Personnel) -> PersonnelResponse:
    return PersonnelResponse(name=personnel.name, created_at=personnel.created_at)


async def _load_registry(session: AsyncSession) -> list[Personnel]:
    result = await session.execute(
        select(Personnel).order_by(col(Personnel.created_at), col(Personnel.name))
    )
    return list(result.scalars().all())


async def _ensure_registry(session: AsyncSession) -> list[Personnel]:
    """Return the registry, creating the default sentinel when it is empty."""
    registry = await _load_registry(session)
    if registry:
        return registry

    default = Personnel(name=get_settings().default_personnel)
    session.add(default)
    await session.commit()
    logger.info("Personnel registry was empty; created %r", default.name)
    return [default]


def _find_by_name(registry: list[Personnel], name: str) -> Personnel | None:
    lowered = name.lower()
    return next((p for p in registry if p.name.lower() == lowered), None)


async def _count_records(session: AsyncSession, name: str) -> tuple[int, int]:
    grants = await session.execute(
        select(func.count()).select_from(GrantRecord).where(col(GrantRecord.personnel) == name)
    )
    usages = await session.execute(
        select(func.count()).select_from(UsageRecord).where(col(UsageRecord.personnel) == name)
    )
    return grants.scalar_one(), usages.scalar_one()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def get_personnel_or_404(session: AsyncSession, name: str) -> str:
    """Resolve a personnel name against the registry (exact match after trimming)."""
    normalized = normalize_personnel(name)
    registry = await _ensure_registry(session)
    if not any(p.name == normalized for p in registry):
        raise NotFoundError(f'Personnel "{normalized}" not found.')
    return normalized


async def list_personnel(session: AsyncSession) -> PersonnelListResponse:
    """List roster members in the order they were added."""
    registry = await _ensure_registry(session)
    return PersonnelListResponse(
        items=[_build_personnel_response(p) for p in registry],
        total=len(registry),
    )


async def add_personnel(session: AsyncSession, payload: CreatePersonnelRequest) -> PersonnelResponse:
    """Add a roster member.

    Names are unique case-insensitively. Adding the first real name retires
    the default sentinel as long as nothing was recorded under it.
    """
    name = payload.name.strip()
    if not name:
        raise ValidationError("Name is required.")

    registry = await _ensure_registry(session)
    if _find_by_name(registry, name) is not None:
        raise ConflictError(f'Personnel "{name}" already exists.')

    personnel = Personnel(name=name)
    session.add(personnel)

    default_name = get_settings().default_personnel
    default = _find_by_name(registry, default_name)
    if default is not None and name.lower() != default_name.lower():
        grants, usages = await _count_records(session, default.name)
        if grants == 0 and usages == 0:
            await session.delete(default)

    await session.commit()
    await session.refresh(personnel)
    return _build_personnel_response(personnel)


async def delete_personnel(session: AsyncSession, name: str, *, delete_records: bool = False) -> OperationResponse:
    """Remove a roster member, optionally with all of their grants and usages.

    Audit entries filed under the name are kept.
    """
    name_input = normalize_personnel(name)
    registry = await _ensure_registry(session)

    if len(registry) <= 1:
        raise ConflictError("At least one personnel must remain.")

    personnel = _find_by_name(registry, name_input)
    if personnel is None:
        raise NotFoundError(f'Personnel "{name_input}" not found.')

    grants, usages = await _count_records(session, personnel.name)
    if not delete_records and (grants > 0 or usages > 0):
        raise ConflictError(
            f'Personnel "{personnel.name}" has existing records. Set delete_records to remove them as well.'
        )

    if delete_records:
        await session.execute(delete(UsageRecord).where(col(UsageRecord.personnel) == personnel.name))
        await session.execute(delete(GrantRecord).where(col(GrantRecord.personnel) == personnel.name))
        logger.info("Deleted %d grants and %d usages for %r", grants, usages, personnel.name)

    deleted_name = personnel.name
    await session.delete(personnel)
    await session.commit()

    if delete_records:
        return OperationResponse(message=f'Deleted personnel "{deleted_name}" and all related records.')
    return OperationResponse(message=f'Deleted personnel "{deleted_name}".')
