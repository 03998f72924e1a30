from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.core.deps import get_current_user_id, get_project_service, get_session_service
from app.schemas.project import (
    AssignmentCreate,
    AssignmentRead,
    AssignmentUpdate,
    ProjectCreate,
    ProjectDeleteResult,
    ProjectRead,
    ProjectUpdate,
)
from app.schemas.report import ProjectTimeReportRead
from app.services.projects import DEFAULT_PAGE_SIZE, ProjectService
from app.services.sessions import TimeSessionService
from app.shared.contracts import API_PREFIXES

router = APIRouter(prefix=API_PREFIXES["projects"], tags=["projects"])


@router.post("", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
def create_project(
    project_in: ProjectCreate,
    user_id: str = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
) -> ProjectRead:
    return service.create_project(
        user_id,
        base_project_id=project_in.base_project_id,
        title=project_in.title,
        client_name=project_in.client_name,
        hourly_rate=project_in.hourly_rate,
    )


@router.get("", response_model=List[ProjectRead])
def list_projects(
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
) -> List[ProjectRead]:
    return service.list_user_projects(user_id, limit=limit, offset=offset)


@router.get("/mine", response_model=List[AssignmentRead])
def list_my_assignments(
    user_id: str = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
) -> List[AssignmentRead]:
    """Active assignments of the caller across all projects."""
    return service.list_my_assignments(user_id)


@router.get("/assignments/{assignment_id}", response_model=AssignmentRead)
def get_assignment(
    assignment_id: int,
    user_id: str = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
) -> AssignmentRead:
    return service.get_assignment(assignment_id, user_id)


@router.put("/assignments/{assignment_id}", response_model=AssignmentRead)
def update_assignment(
    assignment_id: int,
    assignment_in: AssignmentUpdate,
    user_id: str = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
) -> AssignmentRead:
    return service.update_assignment(
        assignment_id,
        user_id,
        cost_per_hour=assignment_in.cost_per_hour,
        description=assignment_in.description,
        is_active=assignment_in.is_active,
    )


@router.get("/{project_id}", response_model=ProjectRead)
def get_project(
    project_id: int,
    user_id: str = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
) -> ProjectRead:
    return service.get_project(project_id, user_id)


@router.put("/{project_id}", response_model=ProjectRead)
def update_project(
    project_id: int,
    project_in: ProjectUpdate,
    user_id: str = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
) -> ProjectRead:
    return service.update_project(
        project_id,
        user_id,
        title=project_in.title,
        client_name=project_in.client_name,
        hourly_rate=project_in.hourly_rate,
        is_active=project_in.is_active,
    )


@router.delete("/{project_id}", response_model=ProjectDeleteResult)
def delete_project(
    project_id: int,
    user_id: str = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
) -> ProjectDeleteResult:
    deleted = service.delete_project(project_id, user_id)
    return ProjectDeleteResult(id=project_id, deleted=deleted, archived=not deleted)


@router.get("/{project_id}/report", response_model=ProjectTimeReportRead)
def project_report(
    project_id: int,
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    sessions: TimeSessionService = Depends(get_session_service),
) -> ProjectTimeReportRead:
    return sessions.project_report(project_id, user_id, start_date=start_date, end_date=end_date)


@router.post("/{project_id}/recalculate", response_model=ProjectRead)
def recalculate_project(
    project_id: int,
    user_id: str = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
) -> ProjectRead:
    service.get_project(project_id, user_id)
    return service.recalculate_project_totals(project_id)


@router.post("/{project_id}/assignments", response_model=AssignmentRead, status_code=status.HTTP_201_CREATED)
def create_assignment(
    project_id: int,
    assignment_in: AssignmentCreate,
    user_id: str = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
) -> AssignmentRead:
    return service.create_assignment(
        project_id,
        user_id,
        cost_per_hour=assignment_in.cost_per_hour,
        worker_user_id=assignment_in.worker_user_id,
        description=assignment_in.description,
    )


@router.get("/{project_id}/assignments", response_model=List[AssignmentRead])
def list_project_assignments(
    project_id: int,
    user_id: str = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
) -> List[AssignmentRead]:
    return service.list_project_assignments(project_id, user_id)
