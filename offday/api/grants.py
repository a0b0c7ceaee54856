from __future__ import annotations

from fastapi import APIRouter, status

from offday.api.deps import EditorDep, PersonnelDep
from offday.db import SessionDep
from offday.schemas.common import OperationResponse
from offday.schemas.grant import (
    AvailableGrantListResponse,
    DeleteGrantsPayload,
    GrantListResponse,
    GrantMutationResponse,
    GrantPayload,
)
from offday.services import grant as grant_service

grants_router = APIRouter(prefix="/personnel/{personnel}/grants", tags=["grants"])


@grants_router.post("", response_model=GrantMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_grant(
    payload: GrantPayload,
    session: SessionDep,
    editor: EditorDep,
    personnel: PersonnelDep,
) -> GrantMutationResponse:
    """Add an off-day grant."""
    return await grant_service.create_grant(session, editor, personnel, payload)


@grants_router.get("", response_model=GrantListResponse)
async def list_grants(session: SessionDep, personnel: PersonnelDep) -> GrantListResponse:
    """List every grant for the personnel."""
    return await grant_service.list_grants(session, personnel)


@grants_router.get("/available", response_model=AvailableGrantListResponse)
async def list_available_grants(session: SessionDep, personnel: PersonnelDep) -> AvailableGrantListResponse:
    """List grants that still have balance to draw from."""
    return await grant_service.list_available_grants(session, personnel)


@grants_router.post("/delete", response_model=OperationResponse)
async def delete_grants(
    payload: DeleteGrantsPayload,
    session: SessionDep,
    editor: EditorDep,
    personnel: PersonnelDep,
) -> OperationResponse:
    """Delete several unused grants at once."""
    return await grant_service.delete_grants(session, editor, personnel, payload.ids)


@grants_router.put("/{grant_id}", response_model=GrantMutationResponse)
async def edit_grant(
    grant_id: str,
    payload: GrantPayload,
    session: SessionDep,
    editor: EditorDep,
    personnel: PersonnelDep,
) -> GrantMutationResponse:
    """Replace a grant's editable fields."""
    return await grant_service.edit_grant(session, editor, personnel, grant_id, payload)


@grants_router.delete("/{grant_id}", response_model=OperationResponse)
async def delete_grant(
    grant_id: str,
    session: SessionDep,
    editor: EditorDep,
    personnel: PersonnelDep,
) -> OperationResponse:
    """Delete a single unused grant."""
    return await grant_service.delete_grants(session, editor, personnel, [grant_id])
