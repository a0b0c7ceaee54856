from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import func, select

from offday.config import get_settings
from offday.db import SessionDep
from offday.models.personnel import Personnel

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Service status plus the size of the personnel roster."""

    status: Literal["ok", "degraded"]
    version: str
    environment: str
    personnel_count: int | None


@router.get("/health", response_model=HealthResponse)
async def health(session: SessionDep) -> HealthResponse:
    """Report whether the store is reachable."""
    settings = get_settings()
    personnel_count: int | None = None

    try:
        result = await session.execute(select(func.count()).select_from(Personnel))
        personnel_count = result.scalar_one()
    except Exception:
        logger.exception("Health check: database connectivity failed")

    return HealthResponse(
        status="ok" if personnel_count is not None else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        personnel_count=personnel_count,
    )
