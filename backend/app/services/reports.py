"""Read-only aggregation of historical sessions into report figures.

Durations are always derived from the raw start/end pair (open sessions are
measured against *now*), never read from the cached ``duration_minutes``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.core.errors import InvalidArgumentError
from app.db.base import as_utc
from app.models.enums import SessionType
from app.models.project import ProfessionalProject
from app.models.time_session import SessionBreak, TimeSession
from app.services.calculator import duration_minutes, minutes_to_hours, session_cost


@dataclass
class UserTimeReport:
    user_id: str
    project_id: Optional[int]
    start_date: date
    end_date: date
    total_hours: float = 0.0
    work_sessions: int = 0
    break_minutes: int = 0
    productive_hours: float = 0.0
    average_daily: float = 0.0
    last_session: Optional[datetime] = None


@dataclass
class ProjectTimeReport:
    project_id: int
    project_title: str
    company_id: Optional[str]
    total_hours: float = 0.0
    total_cost: float = 0.0
    work_sessions: int = 0
    average_session: float = 0.0
    last_activity: Optional[datetime] = None
    active_workers: int = 0


def window_bounds(start_date: date, end_date: date) -> tuple[datetime, datetime]:
    """Inclusive UTC bounds covering both calendar days entirely."""
    if end_date < start_date:
        raise InvalidArgumentError(
            "end date cannot be before start date",
            start_date=start_date,
            end_date=end_date,
        )
    return (
        datetime.combine(start_date, time.min, tzinfo=timezone.utc),
        datetime.combine(end_date, time.max, tzinfo=timezone.utc),
    )


def _latest(current: Optional[datetime], candidate: Optional[datetime]) -> Optional[datetime]:
    if candidate is None:
        return current
    candidate = as_utc(candidate)
    if current is None or candidate > current:
        return candidate
    return current


def _nested_break_minutes(db: Session, sessions: Iterable[TimeSession], now: datetime) -> int:
    session_ids = [session.id for session in sessions]
    if not session_ids:
        return 0
    breaks = db.query(SessionBreak).filter(SessionBreak.session_id.in_(session_ids)).all()
    return sum(duration_minutes(item.start_time, item.end_time, now=now) for item in breaks)


def build_user_report(
    db: Session,
    *,
    user_id: str,
    start_date: date,
    end_date: date,
    project_id: Optional[int] = None,
    now: datetime,
) -> UserTimeReport:
    window_start, window_end = window_bounds(start_date, end_date)

    query = db.query(TimeSession).filter(
        TimeSession.user_id == user_id,
        TimeSession.start_time >= window_start,
        TimeSession.start_time <= window_end,
    )
    if project_id:
        query = query.filter(TimeSession.project_id == project_id)
    sessions = query.all()

    report = UserTimeReport(
        user_id=user_id,
        project_id=project_id,
        start_date=start_date,
        end_date=end_date,
    )

    work_minutes = 0
    for session in sessions:
        minutes = duration_minutes(session.start_time, session.end_time, now=now)
        if session.session_type == SessionType.WORK:
            work_minutes += minutes
            report.work_sessions += 1
        else:
            report.break_minutes += minutes
        report.last_session = _latest(report.last_session, session.created_at)

    report.break_minutes += _nested_break_minutes(db, sessions, now)
    report.total_hours = minutes_to_hours(work_minutes)
    report.productive_hours = report.total_hours - minutes_to_hours(report.break_minutes)

    days_in_window = (end_date - start_date).days + 1
    report.average_daily = report.total_hours / max(1, days_in_window)
    return report


def build_project_report(
    db: Session,
    *,
    project: ProfessionalProject,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    now: datetime,
) -> ProjectTimeReport:
    query = db.query(TimeSession).filter(TimeSession.project_id == project.id)
    if start_date is not None and end_date is not None:
        window_start, window_end = window_bounds(start_date, end_date)
        query = query.filter(TimeSession.start_time >= window_start, TimeSession.start_time <= window_end)
    elif start_date is not None:
        window_start, _ = window_bounds(start_date, start_date)
        query = query.filter(TimeSession.start_time >= window_start)
    elif end_date is not None:
        _, window_end = window_bounds(end_date, end_date)
        query = query.filter(TimeSession.start_time <= window_end)
    sessions = query.all()

    companies = {session.company_id for session in sessions}
    report = ProjectTimeReport(
        project_id=project.id,
        project_title=project.title,
        company_id=companies.pop() if len(companies) == 1 else None,
        work_sessions=len(sessions),
        active_workers=len({session.user_id for session in sessions}),
    )

    work_minutes = 0
    for session in sessions:
        report.last_activity = _latest(report.last_activity, session.created_at)
        if session.session_type != SessionType.WORK:
            continue
        minutes = duration_minutes(session.start_time, session.end_time, now=now)
        work_minutes += minutes
        report.total_cost += session_cost(minutes, session.hourly_rate)

    report.total_hours = minutes_to_hours(work_minutes)
    if sessions:
        report.average_session = report.total_hours / len(sessions)
    return report
