from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from app.core.errors import InvalidArgumentError, NotFoundError
from app.models.enums import SessionType
from app.models.time_session import TimeSession
from app.services.calculator import duration_minutes, session_cost
from app.services.sessions import TimeSessionService

DAY = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)


def _closed_session(db, project, *, user_id="u1", start=DAY, minutes=60, session_type=SessionType.WORK, rate=None, company_id="acme"):
    end = start + timedelta(minutes=minutes)
    record = TimeSession(
        project_id=project.id,
        user_id=user_id,
        company_id=company_id,
        start_time=start,
        end_time=end,
        session_type=session_type,
        hourly_rate=rate,
        duration_minutes=duration_minutes(start, end),
        session_cost=session_cost(minutes, rate),
        is_active=False,
        created_at=start,
        updated_at=end,
    )
    db.add(record)
    db.commit()
    return record


@pytest.fixture()
def service(db, clock):
    return TimeSessionService(db, clock=clock)


def test_user_report_separates_work_from_breaks(service, db, make_project):
    project = make_project()
    _closed_session(db, project, minutes=120)
    _closed_session(db, project, start=DAY + timedelta(hours=3), minutes=15, session_type=SessionType.BREAK)

    report = service.user_report("u1", date(2024, 1, 15), date(2024, 1, 15))

    assert report.total_hours == pytest.approx(2.0)
    assert report.break_minutes == 15
    assert report.productive_hours == pytest.approx(1.75)
    assert report.work_sessions == 1
    assert report.average_daily == pytest.approx(2.0)
    assert report.last_session is not None


def test_user_report_averages_over_inclusive_days(service, db, make_project):
    project = make_project()
    _closed_session(db, project, minutes=180)
    _closed_session(db, project, start=DAY + timedelta(days=2), minutes=60)
    # Outside the window.
    _closed_session(db, project, start=DAY + timedelta(days=5), minutes=600)

    report = service.user_report("u1", date(2024, 1, 15), date(2024, 1, 18))

    assert report.work_sessions == 2
    assert report.total_hours == pytest.approx(4.0)
    assert report.average_daily == pytest.approx(1.0)


def test_user_report_counts_nested_breaks(service, db, clock, make_project):
    project = make_project()
    service.start_session(project.id, "acme", "u1")
    clock.advance(minutes=60)
    service.take_break("u1", "lunch")
    clock.advance(minutes=30)
    service.end_break("u1")
    clock.advance(minutes=30)
    service.finish_session("u1")

    report = service.user_report("u1", date(2024, 3, 4), date(2024, 3, 4))

    assert report.total_hours == pytest.approx(2.0)
    assert report.break_minutes == 30
    assert report.productive_hours == pytest.approx(1.5)


def test_user_report_filters_by_project(service, db, make_project):
    project = make_project()
    other = make_project()
    _closed_session(db, project, minutes=60)
    _closed_session(db, other, start=DAY + timedelta(hours=2), minutes=30)

    report = service.user_report("u1", date(2024, 1, 15), date(2024, 1, 15), project_id=other.id)

    assert report.work_sessions == 1
    assert report.total_hours == pytest.approx(0.5)


def test_empty_user_report_is_all_zero(service):
    report = service.user_report("nobody", date(2024, 1, 1), date(2024, 1, 31))
    assert report.total_hours == 0.0
    assert report.work_sessions == 0
    assert report.break_minutes == 0
    assert report.productive_hours == 0.0
    assert report.average_daily == 0.0
    assert report.last_session is None


def test_inverted_window_is_rejected(service):
    with pytest.raises(InvalidArgumentError):
        service.user_report("u1", date(2024, 1, 10), date(2024, 1, 9))
    with pytest.raises(InvalidArgumentError):
        service.session_history("u1", start_date=date(2024, 1, 10), end_date=date(2024, 1, 9))


def test_open_session_is_measured_against_now(service, clock, make_project):
    project = make_project()
    service.start_session(project.id, "acme", "u1", hourly_rate=10.0)
    clock.advance(minutes=45)

    report = service.project_report(project.id, "u1")

    assert report.total_hours == pytest.approx(0.75)
    assert report.total_cost == pytest.approx(7.5)


def test_project_report_totals(service, db, make_project):
    project = make_project(title="Ledger migration")
    _closed_session(db, project, user_id="u1", minutes=60, rate=50.0)
    _closed_session(db, project, user_id="u2", start=DAY + timedelta(hours=2), minutes=30, rate=20.0)
    _closed_session(db, project, user_id="u1", start=DAY + timedelta(hours=4), minutes=90, rate=50.0)

    report = service.project_report(project.id, "u1")

    assert report.project_title == "Ledger migration"
    assert report.company_id == "acme"
    assert report.work_sessions == 3
    assert report.active_workers == 2
    assert report.total_hours == pytest.approx(3.0)
    assert report.total_cost == pytest.approx(50.0 + 10.0 + 75.0)
    assert report.average_session == pytest.approx(1.0)
    assert report.last_activity is not None


def test_project_report_window_and_empty(service, db, make_project):
    project = make_project()
    _closed_session(db, project, minutes=60)

    report = service.project_report(project.id, "u1", start_date=date(2024, 2, 1))

    assert report.work_sessions == 0
    assert report.total_hours == 0.0
    assert report.average_session == 0.0
    assert report.active_workers == 0


def test_project_report_requires_visible_project(db, clock, registry, make_project):
    project = make_project(base_project_id="12")
    registry.add("12", "u1")
    service = TimeSessionService(db, registry=registry, clock=clock)

    assert service.project_report(project.id, "u1").project_id == project.id
    with pytest.raises(NotFoundError):
        service.project_report(project.id, "u2")
    with pytest.raises(NotFoundError):
        service.project_report(999, "u1")
