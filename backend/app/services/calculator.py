"""Duration and cost math for time sessions and breaks.

    duration_minutes = floor((end - start) / 1 minute)     end defaults to now
    session_cost     = (duration_minutes / 60) * hourly_rate   or 0 without a rate
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from app.core.errors import InvalidArgumentError
from app.db.base import as_utc, utcnow


def duration_minutes(
    start: datetime,
    end: Optional[datetime] = None,
    *,
    now: Optional[datetime] = None,
) -> int:
    """Whole minutes elapsed between *start* and *end*.

    An open interval (``end is None``) is measured against *now*, so its
    duration keeps growing every time it is queried.
    """
    finish = end if end is not None else (now or utcnow())
    elapsed = (as_utc(finish) - as_utc(start)).total_seconds()
    if elapsed < 0:
        raise InvalidArgumentError("interval ends before it starts", start=start, end=finish)
    return int(elapsed // 60)


def session_cost(minutes: int, hourly_rate: Optional[float] = None) -> float:
    if hourly_rate is None:
        return 0.0
    return (minutes / 60.0) * hourly_rate


def minutes_to_hours(minutes: int) -> float:
    return minutes / 60.0
