from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from offday.models.grant import GrantRecord
from offday.models.usage import UsageRecord
from offday.schemas.balance import AggregatesResponse
from offday.services.duration import from_tenths

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


async def get_aggregates(session: AsyncSession, personnel: str) -> AggregatesResponse:
    """Recompute a personnel's totals from the grant and usage tables.

    Nothing is cached: ``total_granted`` sums grant durations,
    ``balance_remaining`` sums grant remaining amounts and ``total_used``
    sums usage durations.
    """
    grant_result = await session.execute(
        select(
            func.coalesce(func.sum(GrantRecord.duration_tenths), 0),
            func.coalesce(func.sum(GrantRecord.remaining_tenths), 0),
        ).where(col(GrantRecord.personnel) == personnel)
    )
    granted, remaining = grant_result.one()

    usage_result = await session.execute(
        select(func.coalesce(func.sum(UsageRecord.duration_tenths), 0)).where(
            col(UsageRecord.personnel) == personnel
        )
    )
    used = usage_result.scalar_one()

    return AggregatesResponse(
        personnel=personnel,
        total_granted=from_tenths(int(granted)),
        total_used=from_tenths(int(used)),
        balance_remaining=from_tenths(int(remaining)),
    )
