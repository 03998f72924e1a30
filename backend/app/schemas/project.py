from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from app.schemas.base import ORMModel


class ProjectCreate(ORMModel):
    base_project_id: str = Field(min_length=1, max_length=64)
    title: Optional[str] = Field(default=None, max_length=255)
    client_name: Optional[str] = Field(default=None, max_length=255)
    hourly_rate: Optional[float] = Field(default=None, ge=0)


class ProjectUpdate(ORMModel):
    title: Optional[str] = Field(default=None, max_length=255)
    client_name: Optional[str] = Field(default=None, max_length=255)
    hourly_rate: Optional[float] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class ProjectRead(ORMModel):
    id: int
    base_project_id: str
    title: str
    client_name: Optional[str] = None
    hourly_rate: Optional[float] = None
    total_hours: float
    total_salary_cost: float
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ProjectDeleteResult(ORMModel):
    id: int
    deleted: bool
    archived: bool


class AssignmentCreate(ORMModel):
    cost_per_hour: float = Field(gt=0)
    worker_user_id: Optional[str] = Field(default=None, max_length=64)
    description: Optional[str] = None


class AssignmentUpdate(ORMModel):
    cost_per_hour: Optional[float] = Field(default=None, gt=0)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class AssignmentRead(ORMModel):
    id: int
    parent_project_id: int
    worker_user_id: str
    cost_per_hour: float
    hours_dedicated: float
    total_cost: float
    description: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
