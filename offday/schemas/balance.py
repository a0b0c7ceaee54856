from __future__ import annotations

from pydantic import BaseModel


class AggregatesResponse(BaseModel):
    """Per-personnel totals recomputed from the grant and usage stores."""

    personnel: str
    total_granted: float
    total_used: float
    balance_remaining: float
