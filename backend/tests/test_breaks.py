from __future__ import annotations

import pytest

from app.core.errors import ConflictError, InvalidArgumentError, InvalidStateError, NotFoundError
from app.models.enums import BreakType
from app.models.time_session import SessionBreak, UserActiveSession
from app.services.breaks import parse_break_type
from app.services.sessions import TimeSessionService


@pytest.fixture()
def service(db, clock):
    return TimeSessionService(db, clock=clock)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("break", BreakType.BREAK),
        ("short", BreakType.BREAK),
        ("LUNCH", BreakType.LUNCH),
        (" brb ", BreakType.BRB),
    ],
)
def test_parse_break_type_accepts_known_kinds(raw, expected):
    assert parse_break_type(raw) is expected


@pytest.mark.parametrize("raw", ["nap", "", None])
def test_parse_break_type_rejects_unknown_kinds(raw):
    with pytest.raises(InvalidArgumentError):
        parse_break_type(raw)


def test_take_and_end_break(service, db, clock, make_project):
    started = service.start_session(make_project().id, "acme", "u1")
    clock.advance(minutes=30)

    record = service.take_break("u1", "lunch")
    pointer = db.get(UserActiveSession, "u1", populate_existing=True)
    assert pointer.is_on_break is True
    assert pointer.current_break_id == record.id
    assert record.session_id == started.id
    assert record.end_time is None

    clock.advance(minutes=45)
    ended = service.end_break("u1")

    assert ended.id == record.id
    assert ended.duration_minutes == 45
    assert ended.is_active is False
    pointer = db.get(UserActiveSession, "u1", populate_existing=True)
    assert pointer.is_on_break is False
    assert pointer.current_break_id is None
    assert service.has_active("u1") is True


def test_second_break_conflicts(service, db, make_project):
    service.start_session(make_project().id, "acme", "u1")
    service.take_break("u1", "brb")

    with pytest.raises(ConflictError):
        service.take_break("u1", "lunch")
    assert db.query(SessionBreak).count() == 1


def test_unknown_break_kind_leaves_state_untouched(service, db, make_project):
    service.start_session(make_project().id, "acme", "u1")
    with pytest.raises(InvalidArgumentError):
        service.take_break("u1", "siesta")
    assert db.query(SessionBreak).count() == 0
    assert db.get(UserActiveSession, "u1", populate_existing=True).is_on_break is False


def test_break_without_session_is_not_found(service):
    with pytest.raises(NotFoundError):
        service.take_break("u1", "break")
    with pytest.raises(NotFoundError):
        service.end_break("u1")


def test_end_break_twice_is_invalid_state(service, make_project):
    service.start_session(make_project().id, "acme", "u1")
    service.take_break("u1", "break")
    service.end_break("u1")
    with pytest.raises(InvalidStateError):
        service.end_break("u1")


def test_breaks_can_repeat_within_one_session(service, db, clock, make_project):
    started = service.start_session(make_project().id, "acme", "u1")
    for _ in range(2):
        service.take_break("u1", "brb")
        clock.advance(minutes=2)
        service.end_break("u1")
        clock.advance(minutes=10)

    records = db.query(SessionBreak).filter(SessionBreak.session_id == started.id).all()
    assert [item.duration_minutes for item in records] == [2, 2]


def test_take_break_racing_another_take_break_conflicts(rival_services, interleave):
    first, second, project = rival_services
    first.start_session(project.id, "acme", "u1")
    winner = {}

    def take_break_elsewhere():
        winner["record"] = second.take_break("u1", "brb")

    interleave("parse_break_type", take_break_elsewhere, before=True)

    with pytest.raises(ConflictError):
        first.take_break("u1", "lunch")

    assert second.db.query(SessionBreak).count() == 1
    pointer = second.db.get(UserActiveSession, "u1", populate_existing=True)
    assert pointer.current_break_id == winner["record"].id


def test_end_break_racing_another_end_break_is_invalid_state(rival_services, interleave, clock):
    first, second, project = rival_services
    first.start_session(project.id, "acme", "u1")
    record = first.take_break("u1", "break")
    clock.advance(minutes=7)
    interleave("find_break", lambda: second.end_break("u1"))

    with pytest.raises(InvalidStateError):
        first.end_break("u1")

    closed = second.db.get(SessionBreak, record.id, populate_existing=True)
    assert closed.end_time is not None
    assert closed.duration_minutes == 7
    pointer = second.db.get(UserActiveSession, "u1", populate_existing=True)
    assert pointer.is_on_break is False
    assert pointer.current_break_id is None
    assert second.has_active("u1") is True
