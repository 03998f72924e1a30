"""Import all models so SQLAlchemy metadata is fully registered."""

from app.db.base import Base

from app.models.enums import BreakType, SessionType
from app.models.project import ProfessionalProject, ProjectAssignment
from app.models.time_session import SessionBreak, TimeSession, UserActiveSession

__all__ = [
    "Base",
    "BreakType",
    "SessionType",
    "ProfessionalProject",
    "ProjectAssignment",
    "TimeSession",
    "SessionBreak",
    "UserActiveSession",
]
