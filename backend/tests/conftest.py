from __future__ import annotations

import os

# Settings are read once at import time; keep tests off any real database or registry.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["PROJECT_CORE_URL"] = ""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.db.base import Base
from app.models.project import ProfessionalProject, ProjectAssignment
from app.services import breaks
from app.services.project_registry import BaseProject, ProjectRegistryClient
from app.services.sessions import TimeSessionService


class FakeClock:
    def __init__(self, start: Optional[datetime] = None) -> None:
        self.current = start or datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **delta) -> datetime:
        self.current = self.current + timedelta(**delta)
        return self.current


class FakeRegistry(ProjectRegistryClient):
    """In-memory registry: base project id -> set of users allowed to see it."""

    def __init__(self) -> None:
        self.projects: Dict[str, BaseProject] = {}
        self.members: Dict[str, set] = {}
        self.calls: List[tuple] = []
        self.error: Optional[Exception] = None

    def add(self, project_id: str, *users: str, title: str = "Base project") -> BaseProject:
        project = BaseProject(id=project_id, title=title)
        self.projects[project_id] = project
        self.members[project_id] = set(users)
        return project

    def get_project(self, project_id: str, user_id: str) -> Optional[BaseProject]:
        self.calls.append(("get_project", project_id, user_id))
        if self.error is not None:
            raise self.error
        if user_id not in self.members.get(project_id, set()):
            return None
        return self.projects[project_id]

    def get_user_projects(self, user_id: str) -> List[BaseProject]:
        self.calls.append(("get_user_projects", user_id))
        if self.error is not None:
            raise self.error
        return [self.projects[pid] for pid, users in self.members.items() if user_id in users]


@pytest.fixture()
def db():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def registry():
    return FakeRegistry()


@pytest.fixture()
def make_project(db):
    counter = {"n": 0}

    def _make(hourly_rate: Optional[float] = None, base_project_id: Optional[str] = None, title: str = "Audit") -> ProfessionalProject:
        counter["n"] += 1
        project = ProfessionalProject(
            base_project_id=base_project_id or f"base-{counter['n']}",
            title=title,
            hourly_rate=hourly_rate,
            total_hours=0.0,
            total_salary_cost=0.0,
            is_active=True,
        )
        db.add(project)
        db.commit()
        return project

    return _make


@pytest.fixture()
def make_assignment(db):
    def _make(project: ProfessionalProject, worker_user_id: str, cost_per_hour: float) -> ProjectAssignment:
        assignment = ProjectAssignment(
            parent_project_id=project.id,
            worker_user_id=worker_user_id,
            cost_per_hour=cost_per_hour,
            hours_dedicated=0.0,
            total_cost=0.0,
            is_active=True,
        )
        db.add(assignment)
        db.commit()
        return assignment

    return _make


@pytest.fixture()
def file_sessions(tmp_path):
    """Two independent sessions on one SQLite file, each with its own connection."""
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'tracker.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    first, second = factory(), factory()
    try:
        yield first, second
    finally:
        first.close()
        second.close()
        engine.dispose()


@pytest.fixture()
def rival_services(file_sessions, clock):
    """Two services for the same user on separate sessions, plus a project to clock into."""
    first, second = file_sessions
    project = ProfessionalProject(
        base_project_id="base-race",
        title="Audit",
        hourly_rate=60.0,
        total_hours=0.0,
        total_salary_cost=0.0,
        is_active=True,
    )
    first.add(project)
    first.commit()
    return TimeSessionService(first, clock=clock), TimeSessionService(second, clock=clock), project


@pytest.fixture()
def interleave(monkeypatch):
    """Run *action* once, right before or after the first call to a ``breaks`` helper.

    Later calls, including any the action itself makes, go straight through.
    """

    def _install(name: str, action, *, before: bool = False) -> None:
        original = getattr(breaks, name)
        fired: List[bool] = []

        def wrapper(*args, **kwargs):
            if fired:
                return original(*args, **kwargs)
            fired.append(True)
            if before:
                action()
            result = original(*args, **kwargs)
            if not before:
                action()
            return result

        monkeypatch.setattr(breaks, name, wrapper)

    return _install
