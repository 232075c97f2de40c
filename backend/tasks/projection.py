"""Date projection utilities.

Turns a task's start-date and completion state into an effective end date
and the number of days it contributes to a schedule.

Precision policy: everything works on calendar dates. A ``datetime`` passed
as "now" is reduced to its date, and the fractional part of the remaining
time is truncated toward zero before the calendar date is advanced
(2.7 days -> 2, -1.5 days -> -1).

Range policy: an end date that would fall outside ``date.min``/``date.max``
is clamped to that bound, so any expected time yields a date.
"""

import math
from datetime import date, datetime, timedelta
from typing import Any, Optional

COMPLETED = "Completed"
STARTED = "Started"
NOT_STARTED = "Not Started"

WORK_HOURS_PER_DAY = 8


def ensure_date(d: Any) -> date:
    """Normalize an input to a `datetime.date`.

    Accepts:
      - datetime instance -> its date part
      - date instance -> returned unchanged
      - ISO-like date string, optionally with time (e.g. '2025-11-30' or '2025-11-30T12:00:00')
      - raises ValueError for invalid inputs
    """
    if isinstance(d, datetime):
        return d.date()
    if isinstance(d, date):
        return d
    if isinstance(d, str):
        try:
            return datetime.fromisoformat(d).date()
        except ValueError:
            try:
                return date.fromisoformat(d.split("T", 1)[0])
            except ValueError:
                raise ValueError(f"Invalid date string: {d!r}")
    raise ValueError(f"Invalid date type: {type(d)}")


def _optional_date(d: Any) -> Optional[date]:
    if d is None or d == "":
        return None
    return ensure_date(d)


def remaining_days(task) -> float:
    """Days of work left on a task.

    Started tasks scale the expected time by what is left to do; tasks that
    have not started still owe their whole expected time. Out-of-range
    percentages are not clamped.
    """
    expected = float(task.expected_time or 0)
    if _optional_date(task.actual_start_date) is not None:
        return expected * (1 - (task.completion_percentage or 0) / 100)
    return expected


def advance_date(start: date, days: float) -> date:
    """`start` moved by the whole part of `days`, clamped to the date range."""
    if math.isnan(days):
        days = 0
    if days >= (date.max - start).days:
        return date.max
    if days <= (date.min - start).days:
        return date.min
    return start + timedelta(days=int(days))


def effective_end_date(task, now: Any) -> date:
    """Date on which the task's remaining work concludes, as seen from `now`."""
    today = ensure_date(now)
    actual = _optional_date(task.actual_start_date)
    estimated = _optional_date(task.estimated_start_date)

    if actual is not None:
        start = actual
    elif estimated is not None:
        start = estimated
    else:
        # not scheduled yet: assume it starts tomorrow
        start = advance_date(today, 1)

    return advance_date(start, remaining_days(task))


def own_contribution(task, now: Any) -> int:
    """Whole days between `now` and the task's effective end date.

    The gap is absolute, so an end date already in the past contributes its
    distance from today.
    """
    today = ensure_date(now)
    return abs((effective_end_date(task, today) - today).days)


def task_status(task) -> str:
    if (task.completion_percentage or 0) >= 100:
        return COMPLETED
    if _optional_date(task.actual_start_date) is not None:
        return STARTED
    return NOT_STARTED


def format_time(days: float) -> str:
    """Readable duration for a number of days, using an 8-hour working day."""
    days = float(days or 0)
    if days < 1:
        hours = round(days * WORK_HOURS_PER_DAY)
        return f"{hours} hour{'' if hours == 1 else 's'}"
    if days.is_integer():
        whole = int(days)
        return f"{whole} day{'' if whole == 1 else 's'}"
    whole_days = int(days)
    hours = round((days - whole_days) * WORK_HOURS_PER_DAY)
    return f"{whole_days}d {hours}h"
