from __future__ import annotations

from pydantic import BaseModel


class EditorContext(BaseModel):
    """Who is making a change, taken from request headers and stamped on audit entries."""

    editor: str = ""
