from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from app.schemas.base import ORMModel


class UserTimeReportRead(ORMModel):
    user_id: str
    project_id: Optional[int] = None
    start_date: date
    end_date: date
    total_hours: float
    work_sessions: int
    break_minutes: int
    productive_hours: float
    average_daily: float
    last_session: Optional[datetime] = None


class ProjectTimeReportRead(ORMModel):
    project_id: int
    project_title: str
    company_id: Optional[str] = None
    total_hours: float
    total_cost: float
    work_sessions: int
    average_session: float
    last_activity: Optional[datetime] = None
    active_workers: int
