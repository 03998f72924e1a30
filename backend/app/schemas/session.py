from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from app.models.enums import BreakType, SessionType
from app.schemas.base import ORMModel


class StartSessionRequest(ORMModel):
    project_id: int = Field(gt=0)
    company_id: str = Field(min_length=1)
    hourly_rate: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None


class TakeBreakRequest(ORMModel):
    break_type: str = Field(min_length=1)


class SwitchProjectRequest(ORMModel):
    new_project_id: int = Field(gt=0)
    hourly_rate: Optional[float] = Field(default=None, ge=0)


class SwitchCompanyRequest(ORMModel):
    new_company_id: str = Field(min_length=1)
    new_project_id: int = Field(gt=0)
    hourly_rate: Optional[float] = Field(default=None, ge=0)


class SessionBreakRead(ORMModel):
    id: int
    session_id: int
    break_type: BreakType
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_minutes: int
    is_active: bool


class TimeSessionRead(ORMModel):
    id: int
    project_id: int
    project_assignment_id: Optional[int] = None
    user_id: str
    company_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    session_type: SessionType
    hourly_rate: Optional[float] = None
    duration_minutes: int
    session_cost: float
    notes: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ActiveSessionRead(ORMModel):
    user_id: str
    session_id: int
    company_id: str
    project_id: int
    started_at: datetime
    last_activity_at: datetime
    is_on_break: bool
    current_break_id: Optional[int] = None
    session: Optional[TimeSessionRead] = None
    current_break: Optional[SessionBreakRead] = None


class ActiveSessionEnvelope(ORMModel):
    active: bool
    session: Optional[ActiveSessionRead] = None


class HasActiveRead(ORMModel):
    has_active: bool


class SessionSwitchRead(ORMModel):
    closed: Optional[TimeSessionRead] = None
    started: TimeSessionRead
