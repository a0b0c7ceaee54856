# ruff: noqa: B008
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, Path

from offday.db import SessionDep
from offday.schemas.auth import EditorContext
from offday.services.personnel import get_personnel_or_404


async def get_editor_context(
    x_editor: str = Header(default=""),
) -> EditorContext:
    """Extract the editing user from request headers."""
    return EditorContext(editor=x_editor.strip())


EditorDep = Annotated[EditorContext, Depends(get_editor_context)]


async def resolve_personnel(
    session: SessionDep,
    personnel: str = Path(),
) -> str:
    """Ensure the path personnel exists in the registry."""
    return await get_personnel_or_404(session, personnel)


PersonnelDep = Annotated[str, Depends(resolve_personnel)]
