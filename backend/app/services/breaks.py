"""Break sub-state of an active session.

The pointer row is only flipped with conditional UPDATEs, so two requests
racing to open (or close) the same break cannot both win.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Union

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, InvalidArgumentError, InvalidStateError
from app.models.enums import BREAK_TYPE_ALIASES, BreakType
from app.models.time_session import SessionBreak, UserActiveSession
from app.services.calculator import duration_minutes


def parse_break_type(raw: Union[str, BreakType, None]) -> BreakType:
    if isinstance(raw, BreakType):
        return raw
    text = (raw or "").strip().lower()
    if text in BREAK_TYPE_ALIASES:
        return BREAK_TYPE_ALIASES[text]
    try:
        return BreakType(text)
    except ValueError:
        raise InvalidArgumentError(
            "invalid break type - use: break, lunch, or brb",
            break_type=raw,
        ) from None


def open_break(
    db: Session,
    pointer: UserActiveSession,
    break_type: BreakType,
    now: datetime,
) -> SessionBreak:
    record = SessionBreak(
        session_id=pointer.session_id,
        break_type=break_type,
        start_time=now,
        is_active=True,
        created_at=now,
    )
    db.add(record)
    db.flush()

    result = db.execute(
        update(UserActiveSession)
        .where(
            UserActiveSession.user_id == pointer.user_id,
            UserActiveSession.session_id == pointer.session_id,
            UserActiveSession.is_on_break.is_(False),
        )
        .values(
            is_on_break=True,
            current_break_id=record.id,
            last_activity_at=now,
            updated_at=now,
        )
    )
    if result.rowcount != 1:
        raise ConflictError(
            "already on break - end current break first",
            user_id=pointer.user_id,
            session_id=pointer.session_id,
        )
    return record


def close_break_record(record: SessionBreak, now: datetime) -> SessionBreak:
    record.end_time = now
    record.is_active = False
    record.duration_minutes = duration_minutes(record.start_time, now)
    return record


def end_break(
    db: Session,
    pointer: UserActiveSession,
    record: SessionBreak,
    now: datetime,
) -> SessionBreak:
    result = db.execute(
        update(UserActiveSession)
        .where(
            UserActiveSession.user_id == pointer.user_id,
            UserActiveSession.is_on_break.is_(True),
            UserActiveSession.current_break_id == record.id,
        )
        .values(
            is_on_break=False,
            current_break_id=None,
            last_activity_at=now,
            updated_at=now,
        )
    )
    if result.rowcount != 1:
        raise InvalidStateError(
            "not currently on break",
            user_id=pointer.user_id,
            break_id=record.id,
        )
    close_break_record(record, now)
    db.flush()
    return record


def open_breaks_for_session(db: Session, session_id: int) -> list[SessionBreak]:
    return (
        db.query(SessionBreak)
        .filter(SessionBreak.session_id == session_id, SessionBreak.end_time.is_(None))
        .all()
    )


def find_break(db: Session, break_id: Optional[int]) -> Optional[SessionBreak]:
    if break_id is None:
        return None
    return db.get(SessionBreak, break_id)
