from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.core.deps import get_current_user_id, get_project_service, get_session_service
from app.schemas.report import UserTimeReportRead
from app.schemas.session import (
    ActiveSessionEnvelope,
    ActiveSessionRead,
    HasActiveRead,
    SessionBreakRead,
    SessionSwitchRead,
    StartSessionRequest,
    SwitchCompanyRequest,
    SwitchProjectRequest,
    TakeBreakRequest,
    TimeSessionRead,
)
from app.services.projects import ProjectService
from app.services.sessions import TimeSessionService
from app.shared.contracts import API_PREFIXES

router = APIRouter(prefix=API_PREFIXES["sessions"], tags=["sessions"])


@router.post("/start", response_model=TimeSessionRead, status_code=status.HTTP_201_CREATED)
def start_session(
    payload: StartSessionRequest,
    user_id: str = Depends(get_current_user_id),
    service: TimeSessionService = Depends(get_session_service),
) -> TimeSessionRead:
    return service.start_session(
        payload.project_id,
        payload.company_id,
        user_id,
        hourly_rate=payload.hourly_rate,
        notes=payload.notes,
    )


@router.post("/finish", response_model=TimeSessionRead)
def finish_session(
    user_id: str = Depends(get_current_user_id),
    service: TimeSessionService = Depends(get_session_service),
) -> TimeSessionRead:
    return service.finish_session(user_id)


@router.get("/active", response_model=ActiveSessionEnvelope)
def get_active_session(
    user_id: str = Depends(get_current_user_id),
    service: TimeSessionService = Depends(get_session_service),
) -> ActiveSessionEnvelope:
    pointer = service.find_active(user_id)
    if pointer is None:
        return ActiveSessionEnvelope(active=False, session=None)
    return ActiveSessionEnvelope(active=True, session=ActiveSessionRead.model_validate(pointer))


@router.get("/has-active", response_model=HasActiveRead)
def has_active_session(
    user_id: str = Depends(get_current_user_id),
    service: TimeSessionService = Depends(get_session_service),
) -> HasActiveRead:
    return HasActiveRead(has_active=service.has_active(user_id))


@router.post("/break", response_model=SessionBreakRead, status_code=status.HTTP_201_CREATED)
def take_break(
    payload: TakeBreakRequest,
    user_id: str = Depends(get_current_user_id),
    service: TimeSessionService = Depends(get_session_service),
) -> SessionBreakRead:
    return service.take_break(user_id, payload.break_type)


@router.post("/resume", response_model=SessionBreakRead)
def end_break(
    user_id: str = Depends(get_current_user_id),
    service: TimeSessionService = Depends(get_session_service),
) -> SessionBreakRead:
    return service.end_break(user_id)


@router.post("/switch-project", response_model=SessionSwitchRead)
def switch_project(
    payload: SwitchProjectRequest,
    user_id: str = Depends(get_current_user_id),
    service: TimeSessionService = Depends(get_session_service),
) -> SessionSwitchRead:
    result = service.switch_project(user_id, payload.new_project_id, hourly_rate=payload.hourly_rate)
    return SessionSwitchRead.model_validate(result)


@router.post("/switch-company", response_model=SessionSwitchRead)
def switch_company(
    payload: SwitchCompanyRequest,
    user_id: str = Depends(get_current_user_id),
    service: TimeSessionService = Depends(get_session_service),
) -> SessionSwitchRead:
    result = service.switch_company(
        user_id,
        payload.new_company_id,
        payload.new_project_id,
        hourly_rate=payload.hourly_rate,
    )
    return SessionSwitchRead.model_validate(result)


@router.get("/history", response_model=List[TimeSessionRead])
def session_history(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    service: TimeSessionService = Depends(get_session_service),
) -> List[TimeSessionRead]:
    return service.session_history(user_id, start_date=start_date, end_date=end_date)


@router.get("/project/{project_id}", response_model=List[TimeSessionRead])
def project_sessions(
    project_id: int,
    user_id: str = Depends(get_current_user_id),
    projects: ProjectService = Depends(get_project_service),
    service: TimeSessionService = Depends(get_session_service),
) -> List[TimeSessionRead]:
    projects.get_project(project_id, user_id)
    return service.project_sessions(project_id)


@router.get("/report", response_model=UserTimeReportRead)
def user_report(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    project_id: Optional[int] = Query(None, alias="projectId"),
    user_id: str = Depends(get_current_user_id),
    service: TimeSessionService = Depends(get_session_service),
) -> UserTimeReportRead:
    return service.user_report(user_id, start_date, end_date, project_id=project_id)
