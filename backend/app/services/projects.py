"""Professional projects and worker assignments.

A professional project is the local, time-tracking side of a base project
that lives in the project registry. Access to it is whatever the registry
says; assignments are private to their worker.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, InvalidArgumentError, NotFoundError
from app.db.base import utcnow
from app.db.repository import Repository
from app.models.enums import SessionType
from app.models.project import ProfessionalProject, ProjectAssignment
from app.models.time_session import TimeSession
from app.services.calculator import duration_minutes, minutes_to_hours, session_cost
from app.services.project_registry import ProjectRegistryClient

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


class ProjectService:
    def __init__(
        self,
        db: Session,
        registry: Optional[ProjectRegistryClient] = None,
        clock: Callable = utcnow,
    ) -> None:
        self.db = db
        self.registry = registry
        self.clock = clock
        self.project_repo = Repository(db, ProfessionalProject)
        self.assignment_repo = Repository(db, ProjectAssignment)
        self.session_repo = Repository(db, TimeSession)

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(
        self,
        user_id: str,
        *,
        base_project_id: str,
        title: Optional[str] = None,
        client_name: Optional[str] = None,
        hourly_rate: Optional[float] = None,
    ) -> ProfessionalProject:
        if hourly_rate is not None and hourly_rate < 0:
            raise InvalidArgumentError("hourly rate cannot be negative", hourly_rate=hourly_rate)

        if self.registry is not None:
            base = self.registry.get_project(base_project_id, user_id)
            if base is None:
                raise NotFoundError("base project not found", base_project_id=base_project_id, user_id=user_id)
            title = title or base.title
        if not title:
            raise InvalidArgumentError("title is required", base_project_id=base_project_id)

        if self.project_repo.first_where(ProfessionalProject.base_project_id == base_project_id):
            raise ConflictError("base project is already tracked", base_project_id=base_project_id)

        project = ProfessionalProject(
            base_project_id=base_project_id,
            title=title,
            client_name=client_name,
            hourly_rate=hourly_rate,
            total_hours=0.0,
            total_salary_cost=0.0,
            is_active=True,
        )
        try:
            self.project_repo.create(project)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("base project is already tracked", base_project_id=base_project_id) from exc

        logger.info("project_created", extra={"user_id": user_id, "project_id": project.id})
        return project

    def get_project(self, project_id: int, user_id: str) -> ProfessionalProject:
        project = self.project_repo.get(project_id)
        if project is None:
            raise NotFoundError("professional project not found", project_id=project_id)
        if self.registry is not None and not self.registry.validate_project_exists(project.base_project_id, user_id):
            logger.warning("project_access_denied", extra={"user_id": user_id, "project_id": project_id})
            raise NotFoundError("professional project not found", project_id=project_id, user_id=user_id)
        return project

    def update_project(
        self,
        project_id: int,
        user_id: str,
        *,
        title: Optional[str] = None,
        client_name: Optional[str] = None,
        hourly_rate: Optional[float] = None,
        is_active: Optional[bool] = None,
    ) -> ProfessionalProject:
        project = self.get_project(project_id, user_id)
        if hourly_rate is not None and hourly_rate < 0:
            raise InvalidArgumentError("hourly rate cannot be negative", hourly_rate=hourly_rate)

        if title:
            project.title = title
        if client_name is not None:
            project.client_name = client_name
        if hourly_rate is not None:
            project.hourly_rate = hourly_rate
        if is_active is not None:
            project.is_active = is_active
        project.updated_at = self.clock()
        self.project_repo.update(project)
        self._commit()
        return project

    def delete_project(self, project_id: int, user_id: str) -> bool:
        """Delete a project, or archive it when it still has session history.

        Returns True when the row was removed, False when it was archived.
        """
        project = self.get_project(project_id, user_id)

        open_sessions = self.session_repo.find_where(
            TimeSession.project_id == project_id,
            TimeSession.is_active.is_(True),
        )
        if open_sessions:
            logger.warning(
                "project_delete_refused",
                extra={"project_id": project_id, "user_id": user_id},
            )
            raise ConflictError(
                "cannot delete project with active time sessions",
                project_id=project_id,
                active_sessions=len(open_sessions),
            )

        if self.session_repo.first_where(TimeSession.project_id == project_id) is not None:
            project.is_active = False
            project.updated_at = self.clock()
            self._commit()
            logger.info("project_archived", extra={"project_id": project_id, "user_id": user_id})
            return False

        self.project_repo.delete(project)
        self._commit()
        logger.info("project_deleted", extra={"project_id": project_id, "user_id": user_id})
        return True

    def list_user_projects(
        self,
        user_id: str,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> List[ProfessionalProject]:
        criteria = []
        if self.registry is not None:
            base_ids = [item.id for item in self.registry.get_user_projects(user_id)]
            if not base_ids:
                return []
            criteria.append(ProfessionalProject.base_project_id.in_(base_ids))
        return self.project_repo.find_where(
            *criteria,
            order_by=(ProfessionalProject.id,),
            limit=limit,
            offset=offset,
        )

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------

    def create_assignment(
        self,
        project_id: int,
        user_id: str,
        *,
        cost_per_hour: float,
        worker_user_id: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ProjectAssignment:
        project = self.get_project(project_id, user_id)
        if cost_per_hour is None or cost_per_hour <= 0:
            raise InvalidArgumentError("cost per hour must be positive", cost_per_hour=cost_per_hour)

        assignment = ProjectAssignment(
            parent_project_id=project.id,
            worker_user_id=worker_user_id or user_id,
            cost_per_hour=cost_per_hour,
            description=description,
            hours_dedicated=0.0,
            total_cost=0.0,
            is_active=True,
        )
        self.assignment_repo.create(assignment)
        self._commit()
        logger.info(
            "assignment_created",
            extra={"user_id": user_id, "project_id": project.id},
        )
        return assignment

    def get_assignment(self, assignment_id: int, user_id: str) -> ProjectAssignment:
        assignment = self.assignment_repo.get(assignment_id)
        # Assignments are private to the worker; others see "not found".
        if assignment is None or assignment.worker_user_id != user_id:
            raise NotFoundError("project assignment not found", assignment_id=assignment_id, user_id=user_id)
        self.get_project(assignment.parent_project_id, user_id)
        return assignment

    def update_assignment(
        self,
        assignment_id: int,
        user_id: str,
        *,
        cost_per_hour: Optional[float] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> ProjectAssignment:
        assignment = self.get_assignment(assignment_id, user_id)
        if cost_per_hour is not None:
            if cost_per_hour <= 0:
                raise InvalidArgumentError("cost per hour must be positive", cost_per_hour=cost_per_hour)
            assignment.cost_per_hour = cost_per_hour
        if description is not None:
            assignment.description = description
        if is_active is not None:
            assignment.is_active = is_active
        assignment.updated_at = self.clock()
        self.assignment_repo.update(assignment)
        self._commit()
        return assignment

    def list_my_assignments(self, user_id: str) -> List[ProjectAssignment]:
        return self.assignment_repo.find_where(
            ProjectAssignment.worker_user_id == user_id,
            ProjectAssignment.is_active.is_(True),
            order_by=(ProjectAssignment.id,),
        )

    def list_project_assignments(self, project_id: int, user_id: str) -> List[ProjectAssignment]:
        self.get_project(project_id, user_id)
        return self.assignment_repo.find_where(
            ProjectAssignment.parent_project_id == project_id,
            order_by=(ProjectAssignment.id,),
        )

    # ------------------------------------------------------------------
    # Derived totals
    # ------------------------------------------------------------------

    def recalculate_project_totals(self, project_id: int) -> ProfessionalProject:
        """Rebuild the cached hour/cost totals of a project and its assignments."""
        project = self.project_repo.get(project_id)
        if project is None:
            raise NotFoundError("professional project not found", project_id=project_id)

        now = self.clock()
        sessions = self.session_repo.find_where(
            TimeSession.project_id == project_id,
            TimeSession.session_type == SessionType.WORK,
        )

        per_assignment: dict[int, tuple[int, float]] = {}
        total_minutes = 0
        total_cost = 0.0
        for session in sessions:
            minutes = duration_minutes(session.start_time, session.end_time, now=now)
            cost = session_cost(minutes, session.hourly_rate)
            total_minutes += minutes
            total_cost += cost
            if session.project_assignment_id is not None:
                prev_minutes, prev_cost = per_assignment.get(session.project_assignment_id, (0, 0.0))
                per_assignment[session.project_assignment_id] = (prev_minutes + minutes, prev_cost + cost)

        project.total_hours = minutes_to_hours(total_minutes)
        project.total_salary_cost = total_cost
        project.updated_at = now
        for assignment in project.assignments:
            minutes, cost = per_assignment.get(assignment.id, (0, 0.0))
            assignment.hours_dedicated = minutes_to_hours(minutes)
            assignment.total_cost = cost
        self._commit()

        logger.info(
            "project_totals_recalculated",
            extra={"project_id": project_id},
        )
        return project
