"""Allocation engine: greedy draw of usage amounts from grants and the inverse release.

Everything here is pure and works on integer tenths of a day. Service
functions plan a change with these helpers, validate the plan, and only then
apply it to ORM objects, so a failure never leaves half-mutated rows behind.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from offday.models.enums import GrantStatus
from offday.services.duration import format_tenths, is_zero, round1, to_tenths

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

_ALLOCATION_RE = re.compile(r"([A-Za-z]-\d+)\s*\((\d+(?:\.\d+)?)\)")


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Allocation:
    """How much of one usage event was drawn from one grant."""

    grant_id: str
    amount: int

    def to_json(self) -> dict[str, Any]:
        return {"grant_id": self.grant_id, "amount_tenths": self.amount}

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Allocation:
        return cls(grant_id=str(data["grant_id"]), amount=int(data["amount_tenths"]))


@dataclass
class GrantBalance:
    """Working copy of a grant's used/remaining amounts during planning."""

    grant_id: str
    duration: int
    used: int

    @property
    def remaining(self) -> int:
        return self.duration - self.used

    @property
    def status(self) -> GrantStatus:
        return compute_status(self.used, self.remaining)


@dataclass
class DrawResult:
    """Outcome of a greedy draw: what was taken and what is still missing."""

    allocations: list[Allocation]
    shortfall: int


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


def compute_status(used: float, remaining: float) -> GrantStatus:
    """Derive a grant's status from its used and remaining amounts."""
    if is_zero(round1(used)):
        return GrantStatus.UNUSED
    if is_zero(round1(remaining)):
        return GrantStatus.USED
    return GrantStatus.PARTIAL


# ---------------------------------------------------------------------------
# Draw and release
# ---------------------------------------------------------------------------


def draw(candidates: Sequence[GrantBalance], needed: int) -> DrawResult:
    """Greedily take ``needed`` tenths from candidates in the given order.

    Each candidate contributes ``min(remaining, still_needed)``; exhausted
    candidates are passed over. Candidates are updated in place so repeated
    draws against the same working copies see live balances.
    """
    still_needed = needed
    allocations: list[Allocation] = []
    for candidate in candidates:
        if still_needed <= 0:
            break
        if candidate.remaining <= 0:
            continue
        amount = min(candidate.remaining, still_needed)
        candidate.used += amount
        allocations.append(Allocation(candidate.grant_id, amount))
        still_needed -= amount
    return DrawResult(allocations=allocations, shortfall=max(still_needed, 0))


def release_newest_first(allocations: Sequence[Allocation], amount: int) -> tuple[list[Allocation], list[Allocation]]:
    """Give back ``amount`` tenths starting from the last allocation.

    Returns ``(kept, released)``: the shrunk allocation list with emptied
    entries removed, and the per-grant amounts released. If the allocations
    hold less than ``amount`` everything is released.
    """
    kept = list(allocations)
    released: list[Allocation] = []
    still_to_release = amount
    for index in range(len(kept) - 1, -1, -1):
        if still_to_release <= 0:
            break
        current = kept[index]
        if current.amount <= 0:
            continue
        take = min(current.amount, still_to_release)
        kept[index] = Allocation(current.grant_id, current.amount - take)
        released.append(Allocation(current.grant_id, take))
        still_to_release -= take
    return [a for a in kept if a.amount > 0], released


def merge_allocations(allocations: Sequence[Allocation], additions: Iterable[Allocation]) -> list[Allocation]:
    """Append additions, accumulating into an existing entry for the same grant."""
    merged = list(allocations)
    for addition in additions:
        if addition.amount <= 0:
            continue
        for index, existing in enumerate(merged):
            if existing.grant_id == addition.grant_id:
                merged[index] = Allocation(existing.grant_id, existing.amount + addition.amount)
                break
        else:
            merged.append(addition)
    return merged


def total(allocations: Iterable[Allocation]) -> int:
    return sum(a.amount for a in allocations)


# ---------------------------------------------------------------------------
# Display strings
# ---------------------------------------------------------------------------


def format_allocations(allocations: Iterable[Allocation]) -> str:
    """Render ``G-0001 (0.5) + G-0002 (0.5)``."""
    return " + ".join(f"{a.grant_id} ({format_tenths(a.amount)})" for a in allocations if a.amount > 0)


def parse_allocations(text: str) -> list[Allocation]:
    """Parse the display form back into allocations, ignoring zero amounts."""
    parsed = [
        Allocation(grant_id, to_tenths(float(amount))) for grant_id, amount in _ALLOCATION_RE.findall(text or "")
    ]
    return [a for a in parsed if a.amount > 0]


def allocations_from_json(data: Iterable[dict[str, Any]] | None) -> list[Allocation]:
    return [Allocation.from_json(item) for item in data or []]


def allocations_to_json(allocations: Iterable[Allocation]) -> list[dict[str, Any]]:
    return [a.to_json() for a in allocations if a.amount > 0]
