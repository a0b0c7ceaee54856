from __future__ import annotations

from fastapi import APIRouter, status

from offday.api.deps import EditorDep, PersonnelDep
from offday.db import SessionDep
from offday.schemas.common import OperationResponse
from offday.schemas.usage import EditUsagePayload, UsageListResponse, UsageMutationResponse, UsagePayload
from offday.services import usage as usage_service

usages_router = APIRouter(prefix="/personnel/{personnel}/usages", tags=["usages"])


@usages_router.post("", response_model=UsageMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_usage(
    payload: UsagePayload,
    session: SessionDep,
    editor: EditorDep,
    personnel: PersonnelDep,
) -> UsageMutationResponse:
    """Record a usage event against the selected grants."""
    return await usage_service.create_usage(session, editor, personnel, payload)


@usages_router.get("", response_model=UsageListResponse)
async def list_usages(session: SessionDep, personnel: PersonnelDep) -> UsageListResponse:
    """List every usage record for the personnel."""
    return await usage_service.list_usages(session, personnel)


@usages_router.put("/{use_id}", response_model=UsageMutationResponse)
async def edit_usage(
    use_id: str,
    payload: EditUsagePayload,
    session: SessionDep,
    editor: EditorDep,
    personnel: PersonnelDep,
) -> UsageMutationResponse:
    """Edit a usage event, rebalancing its allocations."""
    return await usage_service.edit_usage(session, editor, personnel, use_id, payload)


@usages_router.post("/{use_id}/undo", response_model=OperationResponse)
async def undo_usage(
    use_id: str,
    session: SessionDep,
    editor: EditorDep,
    personnel: PersonnelDep,
) -> OperationResponse:
    """Undo a usage event and restore its grants."""
    return await usage_service.undo_usage(session, editor, personnel, use_id)
