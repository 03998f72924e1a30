from __future__ import annotations

import json
import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.orm import Session

from app.core.security import decode_token
from app.db.session import get_db
from app.services.project_registry import ProjectRegistryClient, build_registry_client
from app.services.projects import ProjectService
from app.services.sessions import TimeSessionService

# Tokens are issued by the identity service; this API only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")
logger = logging.getLogger("security")


def _log_auth_event(event: str, *, request: Request, extra: Optional[dict] = None) -> None:
    payload = {
        "event": event,
        "request_id": request.headers.get("x-request-id"),
        "path": request.url.path,
        "method": request.method,
        "client": request.client.host if request.client else None,
    }
    if extra:
        payload.update(extra)
    logger.info(json.dumps(payload, default=str))


def get_current_user_id(
    request: Request,
    token: str = Security(oauth2_scheme),
) -> str:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(token)
    except JWTError:
        _log_auth_event("token_invalid", request=request)
        raise credentials_exception

    raw_user_id = payload.get("sub")
    if raw_user_id in (None, ""):
        _log_auth_event("token_missing_sub", request=request)
        raise credentials_exception

    return str(raw_user_id)


def get_registry_client() -> Optional[ProjectRegistryClient]:
    return build_registry_client()


def get_session_service(
    db: Session = Depends(get_db),
    registry: Optional[ProjectRegistryClient] = Depends(get_registry_client),
) -> TimeSessionService:
    return TimeSessionService(db, registry=registry)


def get_project_service(
    db: Session = Depends(get_db),
    registry: Optional[ProjectRegistryClient] = Depends(get_registry_client),
) -> ProjectService:
    return ProjectService(db, registry=registry)
