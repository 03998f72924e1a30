from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, IDMixin, TimestampMixin

if TYPE_CHECKING:
    from app.models.time_session import TimeSession


class ProfessionalProject(IDMixin, TimestampMixin, Base):
    """Time-tracking extension of a base project owned by the project registry."""

    __tablename__ = "professional_projects"

    base_project_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    client_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    hourly_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Derived caches, recomputed from work sessions.
    total_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_salary_cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    assignments: Mapped[List["ProjectAssignment"]] = relationship(
        back_populates="parent_project",
        cascade="all, delete-orphan",
    )
    time_sessions: Mapped[List["TimeSession"]] = relationship(back_populates="project")


class ProjectAssignment(IDMixin, TimestampMixin, Base):
    """One worker's participation in a project at a given hourly rate.

    A worker may hold several assignments on the same project over time when
    the rate changes; only active ones are used to stamp new sessions.
    """

    __tablename__ = "project_assignments"

    parent_project_id: Mapped[int] = mapped_column(
        ForeignKey("professional_projects.id"),
        nullable=False,
        index=True,
    )
    worker_user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    cost_per_hour: Mapped[float] = mapped_column(Float, nullable=False)
    hours_dedicated: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    parent_project: Mapped[ProfessionalProject] = relationship(back_populates="assignments")
    time_sessions: Mapped[List["TimeSession"]] = relationship(back_populates="project_assignment")
