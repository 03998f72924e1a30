from app.db.base import Base, IDMixin, TimestampMixin, as_utc, utcnow
from app.db.repository import Repository
from app.db.session import SessionLocal, engine, get_db

__all__ = [
    "Base",
    "IDMixin",
    "TimestampMixin",
    "as_utc",
    "utcnow",
    "Repository",
    "engine",
    "SessionLocal",
    "get_db",
]
