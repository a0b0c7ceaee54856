from __future__ import annotations

from pydantic import BaseModel


class OperationResponse(BaseModel):
    """Successful operation result shown to the caller."""

    ok: bool = True
    message: str
