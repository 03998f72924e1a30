"""Session lifecycle: start, finish, breaks, project/company switches.

State per user is one of: no session, working, on break. The
``user_active_sessions`` row keyed by user ID is the only source of truth for
"is this user clocked in"; every transition that creates or removes it relies
on the database (primary-key uniqueness, conditional DELETE/UPDATE) instead of
a read-then-write check in Python.

Each public operation is its own transaction: it commits on success and rolls
back on any failure. The switch operations are two such transactions in a
row; when the second one fails the first stays committed and the caller gets
``SwitchIncompleteError``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, List, Optional

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import (
    ConflictError,
    InconsistentStateError,
    InvalidStateError,
    NotFoundError,
    SwitchIncompleteError,
    TrackerError,
)
from app.core.observability import record_transition
from app.db.base import utcnow
from app.db.repository import Repository
from app.models.enums import SessionType
from app.models.project import ProfessionalProject, ProjectAssignment
from app.models.time_session import SessionBreak, TimeSession, UserActiveSession
from app.services import breaks
from app.services.calculator import duration_minutes, session_cost
from app.services.project_registry import ProjectRegistryClient
from app.services.reports import (
    ProjectTimeReport,
    UserTimeReport,
    build_project_report,
    build_user_report,
    window_bounds,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass
class SessionSwitch:
    closed: Optional[TimeSession]
    started: TimeSession


def close_session_record(session: TimeSession, now: datetime) -> TimeSession:
    """Close *session* and recompute its derived fields from the raw interval."""
    session.end_time = now
    session.is_active = False
    session.duration_minutes = duration_minutes(session.start_time, now)
    session.session_cost = session_cost(session.duration_minutes, session.hourly_rate)
    session.updated_at = now
    return session


class TimeSessionService:
    def __init__(
        self,
        db: Session,
        registry: Optional[ProjectRegistryClient] = None,
        clock: Clock = utcnow,
    ) -> None:
        self.db = db
        self.registry = registry
        self.clock = clock
        self.session_repo = Repository(db, TimeSession)
        self.break_repo = Repository(db, SessionBreak)
        self.project_repo = Repository(db, ProfessionalProject)
        self.assignment_repo = Repository(db, ProjectAssignment)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _find_pointer(self, user_id: str) -> Optional[UserActiveSession]:
        stmt = (
            select(UserActiveSession)
            .where(UserActiveSession.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return self.db.scalars(stmt).first()

    def find_active(self, user_id: str) -> Optional[UserActiveSession]:
        return self._find_pointer(user_id)

    def get_active(self, user_id: str) -> UserActiveSession:
        pointer = self._find_pointer(user_id)
        if pointer is None:
            raise NotFoundError("no active session found for user", user_id=user_id)
        return pointer

    def has_active(self, user_id: str) -> bool:
        return self._find_pointer(user_id) is not None

    def session_history(
        self,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[TimeSession]:
        if start_date is not None and end_date is not None:
            window_bounds(start_date, end_date)
        criteria = [TimeSession.user_id == user_id]
        if start_date is not None:
            criteria.append(TimeSession.start_time >= window_bounds(start_date, start_date)[0])
        if end_date is not None:
            criteria.append(TimeSession.start_time <= window_bounds(end_date, end_date)[1])
        return self.session_repo.find_where(*criteria, order_by=(TimeSession.start_time.desc(),))

    def project_sessions(self, project_id: int) -> List[TimeSession]:
        return self.session_repo.find_where(
            TimeSession.project_id == project_id,
            order_by=(TimeSession.start_time.desc(),),
        )

    # ------------------------------------------------------------------
    # Start / finish
    # ------------------------------------------------------------------

    def _load_project(self, project_id: int, user_id: str) -> ProfessionalProject:
        project = self.project_repo.get(project_id)
        if project is None:
            raise NotFoundError("project not found", project_id=project_id, user_id=user_id)
        if self.registry is not None and not self.registry.validate_project_exists(project.base_project_id, user_id):
            raise NotFoundError(
                "project not found in registry for user",
                project_id=project_id,
                user_id=user_id,
            )
        return project

    def _active_assignment(self, project_id: int, user_id: str) -> Optional[ProjectAssignment]:
        assignments = self.assignment_repo.find_where(
            ProjectAssignment.parent_project_id == project_id,
            ProjectAssignment.worker_user_id == user_id,
            ProjectAssignment.is_active.is_(True),
            order_by=(ProjectAssignment.created_at.desc(), ProjectAssignment.id.desc()),
            limit=1,
        )
        return assignments[0] if assignments else None

    def start_session(
        self,
        project_id: int,
        company_id: str,
        user_id: str,
        hourly_rate: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> TimeSession:
        try:
            project = self._load_project(project_id, user_id)
        except TrackerError as exc:
            record_transition("start", exc.code)
            raise

        # Rate snapshot: explicit > worker's assignment > project rate.
        assignment = self._active_assignment(project.id, user_id)
        if hourly_rate is None:
            hourly_rate = assignment.cost_per_hour if assignment is not None else project.hourly_rate

        now = self.clock()
        session = TimeSession(
            project_id=project.id,
            project_assignment_id=assignment.id if assignment is not None else None,
            user_id=user_id,
            company_id=company_id,
            start_time=now,
            session_type=SessionType.WORK,
            hourly_rate=hourly_rate,
            notes=notes,
            is_active=True,
            created_at=now,
            updated_at=now,
        )

        try:
            self.session_repo.create(session)
            try:
                self.db.execute(
                    insert(UserActiveSession).values(
                        user_id=user_id,
                        session_id=session.id,
                        company_id=company_id,
                        project_id=project.id,
                        started_at=now,
                        last_activity_at=now,
                        is_on_break=False,
                        updated_at=now,
                    )
                )
            except IntegrityError as exc:
                raise ConflictError(
                    "user already has an active session - finish current session first",
                    user_id=user_id,
                ) from exc
            self.db.commit()
        except ConflictError:
            self.db.rollback()
            record_transition("start", ConflictError.code)
            raise
        except Exception:
            self.db.rollback()
            record_transition("start", "error")
            raise

        record_transition("start")
        logger.info(
            "session_started",
            extra={
                "user_id": user_id,
                "session_id": session.id,
                "project_id": project.id,
                "company_id": company_id,
            },
        )
        return session

    def _inconsistent(self, message: str, **context) -> InconsistentStateError:
        error = InconsistentStateError(message, **context)
        logger.error("session_state_inconsistent: %s", message, extra=error.context)
        record_transition("consistency_check", InconsistentStateError.code)
        return error

    def _session_for_pointer(self, pointer: UserActiveSession) -> TimeSession:
        session = self.session_repo.get(pointer.session_id)
        if session is None:
            raise self._inconsistent(
                "active pointer references a missing session",
                user_id=pointer.user_id,
                session_id=pointer.session_id,
            )
        if session.end_time is not None or not session.is_active:
            raise self._inconsistent(
                "active pointer references a closed session",
                user_id=pointer.user_id,
                session_id=session.id,
            )
        return session

    def _open_break_for_pointer(self, pointer: UserActiveSession) -> Optional[SessionBreak]:
        open_breaks = breaks.open_breaks_for_session(self.db, pointer.session_id)
        if not pointer.is_on_break:
            if open_breaks:
                raise self._inconsistent(
                    "session has an open break the pointer does not know about",
                    user_id=pointer.user_id,
                    session_id=pointer.session_id,
                    break_id=open_breaks[0].id,
                )
            return None

        record = breaks.find_break(self.db, pointer.current_break_id)
        if record is None or record.end_time is not None:
            raise self._inconsistent(
                "pointer is on break but its break record is missing or closed",
                user_id=pointer.user_id,
                session_id=pointer.session_id,
                break_id=pointer.current_break_id,
            )
        return record

    def finish_session(self, user_id: str) -> TimeSession:
        pointer = self._find_pointer(user_id)
        if pointer is None:
            record_transition("finish", NotFoundError.code)
            raise NotFoundError("no active session found for user", user_id=user_id)

        now = self.clock()
        try:
            session = self._session_for_pointer(pointer)
            open_break = self._open_break_for_pointer(pointer)

            # The claim only wins against the break state read above.
            if pointer.current_break_id is None:
                break_matches = UserActiveSession.current_break_id.is_(None)
            else:
                break_matches = UserActiveSession.current_break_id == pointer.current_break_id
            claimed = self.db.execute(
                delete(UserActiveSession).where(
                    UserActiveSession.user_id == user_id,
                    UserActiveSession.session_id == session.id,
                    UserActiveSession.is_on_break.is_(bool(pointer.is_on_break)),
                    break_matches,
                )
            )
            if claimed.rowcount != 1:
                still_active = self.db.scalar(
                    select(UserActiveSession.user_id).where(UserActiveSession.user_id == user_id)
                )
                if still_active is None:
                    raise NotFoundError(
                        "active session was finished by another request",
                        user_id=user_id,
                        session_id=session.id,
                    )
                raise ConflictError(
                    "session state changed during finish - retry",
                    user_id=user_id,
                    session_id=session.id,
                )

            if open_break is not None:
                breaks.close_break_record(open_break, now)
            close_session_record(session, now)
            self.db.commit()
        except TrackerError as exc:
            self.db.rollback()
            record_transition("finish", exc.code)
            raise
        except Exception:
            self.db.rollback()
            record_transition("finish", "error")
            raise

        record_transition("finish")
        logger.info(
            "session_finished",
            extra={
                "user_id": user_id,
                "session_id": session.id,
                "project_id": session.project_id,
            },
        )
        return session

    # ------------------------------------------------------------------
    # Breaks
    # ------------------------------------------------------------------

    def take_break(self, user_id: str, break_type: str) -> SessionBreak:
        pointer = self.get_active(user_id)
        if pointer.is_on_break:
            raise ConflictError(
                "already on break - end current break first",
                user_id=user_id,
                session_id=pointer.session_id,
            )
        kind = breaks.parse_break_type(break_type)

        now = self.clock()
        try:
            record = breaks.open_break(self.db, pointer, kind, now)
            self.db.commit()
        except TrackerError as exc:
            self.db.rollback()
            record_transition("take_break", exc.code)
            raise
        except Exception:
            self.db.rollback()
            record_transition("take_break", "error")
            raise

        record_transition("take_break")
        logger.info(
            "break_started",
            extra={"user_id": user_id, "session_id": pointer.session_id, "break_id": record.id},
        )
        return record

    def end_break(self, user_id: str) -> SessionBreak:
        pointer = self.get_active(user_id)
        if not pointer.is_on_break or pointer.current_break_id is None:
            raise InvalidStateError("not currently on break", user_id=user_id, session_id=pointer.session_id)

        now = self.clock()
        try:
            record = self._open_break_for_pointer(pointer)
            if record is None:
                raise InvalidStateError("not currently on break", user_id=user_id)
            breaks.end_break(self.db, pointer, record, now)
            self.db.commit()
        except TrackerError as exc:
            self.db.rollback()
            record_transition("end_break", exc.code)
            raise
        except Exception:
            self.db.rollback()
            record_transition("end_break", "error")
            raise

        record_transition("end_break")
        logger.info(
            "break_ended",
            extra={"user_id": user_id, "session_id": record.session_id, "break_id": record.id},
        )
        return record

    # ------------------------------------------------------------------
    # Switches
    # ------------------------------------------------------------------

    def _start_after_finish(
        self,
        closed: TimeSession,
        *,
        operation: str,
        project_id: int,
        company_id: str,
        user_id: str,
        hourly_rate: Optional[float],
    ) -> TimeSession:
        try:
            return self.start_session(project_id, company_id, user_id, hourly_rate)
        except TrackerError as exc:
            record_transition(operation, SwitchIncompleteError.code)
            logger.warning(
                "switch_incomplete",
                extra={"user_id": user_id, "session_id": closed.id, "project_id": project_id},
            )
            raise SwitchIncompleteError(
                f"previous session closed but the new one could not be started: {exc.message}",
                closed_session_id=closed.id,
                cause=exc,
                user_id=user_id,
                project_id=project_id,
            ) from exc

    def switch_project(
        self,
        user_id: str,
        new_project_id: int,
        hourly_rate: Optional[float] = None,
    ) -> SessionSwitch:
        pointer = self.get_active(user_id)
        company_id = pointer.company_id

        closed = self.finish_session(user_id)
        rate = hourly_rate if hourly_rate is not None else closed.hourly_rate
        started = self._start_after_finish(
            closed,
            operation="switch_project",
            project_id=new_project_id,
            company_id=company_id,
            user_id=user_id,
            hourly_rate=rate,
        )
        record_transition("switch_project")
        return SessionSwitch(closed=closed, started=started)

    def switch_company(
        self,
        user_id: str,
        new_company_id: str,
        new_project_id: int,
        hourly_rate: Optional[float] = None,
    ) -> SessionSwitch:
        try:
            closed = self.finish_session(user_id)
        except NotFoundError:
            started = self.start_session(new_project_id, new_company_id, user_id, hourly_rate)
            record_transition("switch_company")
            return SessionSwitch(closed=None, started=started)

        started = self._start_after_finish(
            closed,
            operation="switch_company",
            project_id=new_project_id,
            company_id=new_company_id,
            user_id=user_id,
            hourly_rate=hourly_rate,
        )
        record_transition("switch_company")
        return SessionSwitch(closed=closed, started=started)

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def user_report(
        self,
        user_id: str,
        start_date: date,
        end_date: date,
        project_id: Optional[int] = None,
    ) -> UserTimeReport:
        return build_user_report(
            self.db,
            user_id=user_id,
            start_date=start_date,
            end_date=end_date,
            project_id=project_id,
            now=self.clock(),
        )

    def project_report(
        self,
        project_id: int,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> ProjectTimeReport:
        project = self.project_repo.get(project_id)
        if project is None:
            raise NotFoundError("project not found", project_id=project_id, user_id=user_id)
        if self.registry is not None:
            visible = {item.id for item in self.registry.get_user_projects(user_id)}
            if project.base_project_id not in visible:
                raise NotFoundError("project not found for user", project_id=project_id, user_id=user_id)
        return build_project_report(
            self.db,
            project=project,
            start_date=start_date,
            end_date=end_date,
            now=self.clock(),
        )
