from __future__ import annotations

import re
from collections import defaultdict
from datetime import date, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from offday.exceptions import ValidationError
from offday.models.enums import UsageSession
from offday.models.grant import GrantRecord
from offday.models.usage import UsageRecord
from offday.schemas.calendar import CalendarDay, CalendarResponse
from offday.services.duration import HALF_DAY_TENTHS, format_tenths, from_tenths

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

GRID_WEEKS = 6

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")
_LAST_GRID_MONTH = date(9999, 11, 1)


def parse_month(raw: str | None, today: date | None = None) -> date:
    """First day of a ``YYYY-MM`` month; blank means the current month.

    Months whose six-week grid would run past ``date.max`` are rejected.
    """
    text = (raw or "").strip()
    if not text:
        return (today or date.today()).replace(day=1)
    match = _MONTH_RE.match(text)
    if match is None:
        raise ValidationError("Invalid month. Use YYYY-MM.")
    try:
        month_start = date(int(match.group(1)), int(match.group(2)), 1)
    except ValueError:
        raise ValidationError("Invalid month. Use YYYY-MM.") from None
    if month_start > _LAST_GRID_MONTH:
        raise ValidationError("Invalid month. Use YYYY-MM.")
    return month_start


def grid_start(month_start: date) -> date:
    """The Monday on or before the first of the month."""
    return month_start - timedelta(days=month_start.weekday())


def _chips(granted: int, used: int, sessions: list[str]) -> list[str]:
    chips: list[str] = []
    if granted > 0:
        chips.append(f"+{format_tenths(granted)}")
    if used > 0:
        chip = f"-{format_tenths(used)}"
        if used == HALF_DAY_TENTHS and len(sessions) == 1 and sessions[0] in (UsageSession.AM, UsageSession.PM):
            chip = f"{chip} ({sessions[0]})"
        chips.append(chip)
    return chips


def _highlight(granted: int, used: int) -> str | None:
    if granted > 0 and used > 0:
        return "both"
    if granted > 0:
        return "granted"
    if used > 0:
        return "used"
    return None


async def get_calendar(session: AsyncSession, personnel: str, month: str | None = None) -> CalendarResponse:
    """Six-week grid with granted totals by grant date and used totals by intended date."""
    month_start = parse_month(month)
    start = grid_start(month_start)
    end = start + timedelta(days=GRID_WEEKS * 7 - 1)

    grant_result = await session.execute(
        select(GrantRecord).where(
            col(GrantRecord.personnel) == personnel,
            col(GrantRecord.granted_date) >= start,
            col(GrantRecord.granted_date) <= end,
        )
    )
    granted_by_day: dict[date, int] = defaultdict(int)
    for grant in grant_result.scalars().all():
        granted_by_day[grant.granted_date] += grant.duration_tenths

    usage_result = await session.execute(
        select(UsageRecord)
        .where(
            col(UsageRecord.personnel) == personnel,
            col(UsageRecord.intended_date) >= start,
            col(UsageRecord.intended_date) <= end,
        )
        .order_by(col(UsageRecord.use_id))
    )
    used_by_day: dict[date, int] = defaultdict(int)
    sessions_by_day: dict[date, list[str]] = defaultdict(list)
    for usage in usage_result.scalars().all():
        used_by_day[usage.intended_date] += usage.duration_tenths
        sessions_by_day[usage.intended_date].append(usage.session)

    weeks: list[list[CalendarDay]] = []
    for week in range(GRID_WEEKS):
        row: list[CalendarDay] = []
        for weekday in range(7):
            day = start + timedelta(days=week * 7 + weekday)
            granted = granted_by_day.get(day, 0)
            used = used_by_day.get(day, 0)
            sessions = sessions_by_day.get(day, [])
            row.append(
                CalendarDay(
                    day=day,
                    in_month=day.month == month_start.month and day.year == month_start.year,
                    granted=from_tenths(granted),
                    used=from_tenths(used),
                    sessions=sessions,
                    chips=_chips(granted, used, sessions),
                    highlight=_highlight(granted, used),
                )
            )
        weeks.append(row)

    return CalendarResponse(personnel=personnel, month=month_start.strftime("%Y-%m"), weeks=weeks)
