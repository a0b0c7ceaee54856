from __future__ import annotations

from fastapi import APIRouter

from offday.api.deps import PersonnelDep
from offday.db import SessionDep
from offday.schemas.balance import AggregatesResponse
from offday.services import balance as balance_service

balance_router = APIRouter(prefix="/personnel/{personnel}/balance", tags=["balances"])


@balance_router.get("", response_model=AggregatesResponse)
async def get_aggregates(session: SessionDep, personnel: PersonnelDep) -> AggregatesResponse:
    """Total granted, total used and balance remaining for the personnel."""
    return await balance_service.get_aggregates(session, personnel)
