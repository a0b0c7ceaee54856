# ruff: noqa: B008
from __future__ import annotations

from fastapi import APIRouter, Query, status

from offday.db import SessionDep
from offday.schemas.common import OperationResponse
from offday.schemas.personnel import CreatePersonnelRequest, PersonnelListResponse, PersonnelResponse
from offday.services import personnel as personnel_service

personnel_router = APIRouter(prefix="/personnel", tags=["personnel"])


@personnel_router.get("", response_model=PersonnelListResponse)
async def list_personnel(session: SessionDep) -> PersonnelListResponse:
    """List roster members in insertion order."""
    return await personnel_service.list_personnel(session)


@personnel_router.post("", response_model=PersonnelResponse, status_code=status.HTTP_201_CREATED)
async def add_personnel(payload: CreatePersonnelRequest, session: SessionDep) -> PersonnelResponse:
    """Add a roster member."""
    return await personnel_service.add_personnel(session, payload)


@personnel_router.delete("/{name}", response_model=OperationResponse)
async def delete_personnel(
    name: str,
    session: SessionDep,
    delete_records: bool = Query(default=False),
) -> OperationResponse:
    """Remove a roster member, optionally together with their records."""
    return await personnel_service.delete_personnel(session, name, delete_records=delete_records)
