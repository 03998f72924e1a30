"""Time sessions, breaks and the per-user active pointer."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, DateTime, Enum, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, IDMixin, TimestampMixin, utcnow
from app.models.enums import BreakType, SessionType

if TYPE_CHECKING:
    from app.models.project import ProfessionalProject, ProjectAssignment


class TimeSession(IDMixin, TimestampMixin, Base):
    __tablename__ = "time_sessions"
    __table_args__ = (
        Index("ix_time_sessions_user_start", "user_id", "start_time"),
    )

    project_id: Mapped[int] = mapped_column(ForeignKey("professional_projects.id"), nullable=False, index=True)
    project_assignment_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("project_assignments.id"),
        nullable=True,
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    company_id: Mapped[str] = mapped_column(String(64), nullable=False)

    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    session_type: Mapped[SessionType] = mapped_column(
        Enum(SessionType, name="session_type"),
        nullable=False,
        default=SessionType.WORK,
    )

    # Rate snapshot taken at start; cost is always computed from this value.
    hourly_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    session_cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)

    project: Mapped["ProfessionalProject"] = relationship(back_populates="time_sessions")
    project_assignment: Mapped[Optional["ProjectAssignment"]] = relationship(back_populates="time_sessions")
    breaks: Mapped[List["SessionBreak"]] = relationship(
        back_populates="session",
        order_by="SessionBreak.start_time",
    )


class SessionBreak(IDMixin, Base):
    __tablename__ = "session_breaks"

    session_id: Mapped[int] = mapped_column(ForeignKey("time_sessions.id"), nullable=False, index=True)
    break_type: Mapped[BreakType] = mapped_column(Enum(BreakType, name="break_type"), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    session: Mapped[TimeSession] = relationship(back_populates="breaks")


class UserActiveSession(Base):
    """At most one row per user: the primary key is the clock-in gate."""

    __tablename__ = "user_active_sessions"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    session_id: Mapped[int] = mapped_column(ForeignKey("time_sessions.id"), nullable=False, unique=True)
    company_id: Mapped[str] = mapped_column(String(64), nullable=False)
    project_id: Mapped[int] = mapped_column(Integer, nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_activity_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_on_break: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    current_break_id: Mapped[Optional[int]] = mapped_column(ForeignKey("session_breaks.id"), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    session: Mapped[TimeSession] = relationship()
    current_break: Mapped[Optional[SessionBreak]] = relationship()
