from __future__ import annotations

import pytest

from app.core.errors import ConflictError, InvalidArgumentError, NotFoundError
from app.models.project import ProfessionalProject
from app.services.projects import ProjectService
from app.services.sessions import TimeSessionService


@pytest.fixture()
def projects(db, clock, registry):
    registry.add("100", "u1", "u2", title="Warehouse audit")
    registry.add("200", "u2", title="Payroll cleanup")
    return ProjectService(db, registry=registry, clock=clock)


def test_create_project_takes_title_from_registry(projects):
    project = projects.create_project("u1", base_project_id="100", hourly_rate=25.0)
    assert project.id is not None
    assert project.title == "Warehouse audit"
    assert project.total_hours == 0.0
    assert project.is_active is True


def test_create_project_rejects_unknown_base_project(projects):
    with pytest.raises(NotFoundError):
        projects.create_project("u1", base_project_id="200")


def test_create_project_twice_conflicts(projects, db):
    projects.create_project("u1", base_project_id="100")
    with pytest.raises(ConflictError):
        projects.create_project("u2", base_project_id="100", title="Again")
    assert db.query(ProfessionalProject).count() == 1


def test_create_project_without_registry_needs_title(db, clock):
    service = ProjectService(db, clock=clock)
    with pytest.raises(InvalidArgumentError):
        service.create_project("u1", base_project_id="abc")
    assert service.create_project("u1", base_project_id="abc", title="Local").title == "Local"


def test_get_project_is_hidden_from_non_members(projects):
    project = projects.create_project("u2", base_project_id="200")
    assert projects.get_project(project.id, "u2").id == project.id
    with pytest.raises(NotFoundError):
        projects.get_project(project.id, "u1")


def test_update_project_changes_rate_only_for_future(projects, db, clock):
    project = projects.create_project("u1", base_project_id="100", hourly_rate=10.0)
    sessions = TimeSessionService(db, registry=projects.registry, clock=clock)
    running = sessions.start_session(project.id, "acme", "u1")

    projects.update_project(project.id, "u1", hourly_rate=99.0, client_name="Acme Ltd")
    clock.advance(minutes=60)
    closed = sessions.finish_session("u1")

    assert project.hourly_rate == 99.0
    assert project.client_name == "Acme Ltd"
    assert closed.id == running.id
    assert closed.session_cost == pytest.approx(10.0)


def test_list_user_projects_follows_registry_membership(projects):
    mine = projects.create_project("u1", base_project_id="100")
    theirs = projects.create_project("u2", base_project_id="200")

    assert [item.id for item in projects.list_user_projects("u1")] == [mine.id]
    assert [item.id for item in projects.list_user_projects("u2")] == [mine.id, theirs.id]
    assert [item.id for item in projects.list_user_projects("u2", limit=1, offset=1)] == [theirs.id]
    assert projects.list_user_projects("nobody") == []


def test_delete_refused_while_sessions_are_open(projects, db, clock):
    project = projects.create_project("u1", base_project_id="100")
    sessions = TimeSessionService(db, registry=projects.registry, clock=clock)
    sessions.start_session(project.id, "acme", "u1")

    with pytest.raises(ConflictError):
        projects.delete_project(project.id, "u1")

    clock.advance(minutes=5)
    sessions.finish_session("u1")
    # History keeps the row alive; it is archived instead.
    assert projects.delete_project(project.id, "u1") is False
    assert db.get(ProfessionalProject, project.id).is_active is False


def test_delete_project_without_history_removes_it(projects, db):
    project = projects.create_project("u1", base_project_id="100")
    projects.create_assignment(project.id, "u1", cost_per_hour=30.0)
    assert projects.delete_project(project.id, "u1") is True
    assert db.get(ProfessionalProject, project.id) is None


def test_assignments_are_private_to_their_worker(projects):
    project = projects.create_project("u1", base_project_id="100")
    assignment = projects.create_assignment(project.id, "u1", cost_per_hour=30.0, description="Field work")

    assert projects.get_assignment(assignment.id, "u1").description == "Field work"
    with pytest.raises(NotFoundError):
        projects.get_assignment(assignment.id, "u2")
    with pytest.raises(NotFoundError):
        projects.update_assignment(assignment.id, "u2", cost_per_hour=1.0)


def test_assignment_rate_must_be_positive(projects):
    project = projects.create_project("u1", base_project_id="100")
    with pytest.raises(InvalidArgumentError):
        projects.create_assignment(project.id, "u1", cost_per_hour=0)
    assignment = projects.create_assignment(project.id, "u1", cost_per_hour=15.0)
    with pytest.raises(InvalidArgumentError):
        projects.update_assignment(assignment.id, "u1", cost_per_hour=-5.0)


def test_list_assignments(projects):
    project = projects.create_project("u1", base_project_id="100")
    own = projects.create_assignment(project.id, "u1", cost_per_hour=30.0)
    other = projects.create_assignment(project.id, "u1", worker_user_id="u2", cost_per_hour=45.0)
    projects.update_assignment(own.id, "u1", is_active=False)

    assert projects.list_my_assignments("u1") == []
    assert [item.id for item in projects.list_my_assignments("u2")] == [other.id]
    assert [item.id for item in projects.list_project_assignments(project.id, "u2")] == [own.id, other.id]


def test_recalculate_project_totals(projects, db, clock):
    project = projects.create_project("u1", base_project_id="100", hourly_rate=20.0)
    assignment = projects.create_assignment(project.id, "u1", cost_per_hour=60.0)
    sessions = TimeSessionService(db, registry=projects.registry, clock=clock)

    sessions.start_session(project.id, "acme", "u1")
    clock.advance(minutes=30)
    sessions.finish_session("u1")
    sessions.start_session(project.id, "acme", "u2")
    clock.advance(minutes=90)
    sessions.finish_session("u2")

    refreshed = projects.recalculate_project_totals(project.id)

    assert refreshed.total_hours == pytest.approx(2.0)
    assert refreshed.total_salary_cost == pytest.approx(30.0 + 30.0)
    db.refresh(assignment)
    assert assignment.hours_dedicated == pytest.approx(0.5)
    assert assignment.total_cost == pytest.approx(30.0)

    with pytest.raises(NotFoundError):
        projects.recalculate_project_totals(12345)
