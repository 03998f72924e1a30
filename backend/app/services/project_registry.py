"""Client for the upstream project registry ("project core") service.

The registry owns base projects and their membership. We only ask it two
questions: does this project exist for this user, and which projects can the
user see. Responses come wrapped in an envelope:

    GET {base}/projects/{id}          -> {"data": {"id": 6, "title": ...}}
    GET {base}/projects?userId=...    -> {"data": {"data": [{...}, ...]}}

``id`` may arrive as a JSON number or a string; we always expose a string.
"""

from __future__ import annotations

import abc
import logging
from typing import Any, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.errors import UpstreamUnavailableError
from app.core.settings import settings

logger = logging.getLogger(__name__)


class BaseProject(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    title: str = ""
    owner_id: Optional[str] = Field(default=None, alias="ownerId")
    status: Optional[str] = None
    company_id: Optional[str] = Field(default=None, alias="companyId")

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, value: Any) -> str:
        return str(value)


class ProjectRegistryClient(abc.ABC):
    """Interface the engine depends on. The HTTP implementation is below."""

    @abc.abstractmethod
    def get_project(self, project_id: str, user_id: str) -> Optional[BaseProject]:
        """Return the project when it exists and *user_id* may see it, else None."""

    @abc.abstractmethod
    def get_user_projects(self, user_id: str) -> List[BaseProject]:
        """Return every project *user_id* may see."""

    def validate_project_exists(self, project_id: str, user_id: str) -> bool:
        return self.get_project(project_id, user_id) is not None


class HttpProjectRegistryClient(ProjectRegistryClient):
    # 403 means the project exists but not for this user; both read as "no".
    _MISSING_STATUSES = {403, 404}

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.strip().rstrip("/")
        self.timeout_seconds = max(float(timeout_seconds or 5.0), 0.5)
        self._transport = transport

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Optional[dict[str, Any]]:
        url = f"{self.base_url}{path}"
        try:
            with httpx.Client(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = client.request(method, url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("project_registry_unreachable method=%s path=%s error=%s", method, path, exc)
            raise UpstreamUnavailableError(f"project registry unreachable: {exc}", path=path) from exc

        if response.status_code in self._MISSING_STATUSES:
            return None
        if response.status_code >= 400:
            logger.warning(
                "project_registry_request_failed status=%s path=%s body=%s",
                response.status_code,
                path,
                response.text[:500],
            )
            raise UpstreamUnavailableError(
                f"project registry returned HTTP {response.status_code}",
                path=path,
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamUnavailableError("project registry returned invalid JSON", path=path) from exc
        if not isinstance(payload, dict):
            raise UpstreamUnavailableError("project registry returned an unexpected envelope", path=path)
        return payload

    def get_project(self, project_id: str, user_id: str) -> Optional[BaseProject]:
        payload = self._request("GET", f"/projects/{project_id}", headers={"X-User-ID": user_id})
        if payload is None:
            return None
        data = payload.get("data")
        if not isinstance(data, dict) or data.get("id") in (None, "", 0, "0"):
            logger.warning("project_registry_missing_id project_id=%s", project_id)
            return None
        return BaseProject.model_validate(data)

    def get_user_projects(self, user_id: str) -> List[BaseProject]:
        payload = self._request("GET", "/projects", params={"userId": user_id})
        if payload is None:
            return []
        outer = payload.get("data") or {}
        items = outer.get("data") if isinstance(outer, dict) else outer
        return [BaseProject.model_validate(item) for item in items or []]


def build_registry_client() -> Optional[ProjectRegistryClient]:
    """Registry validation is skipped entirely when no URL is configured."""
    if not settings.registry_enabled:
        return None
    return HttpProjectRegistryClient(
        settings.project_core_url or "",
        timeout_seconds=settings.project_core_timeout_seconds,
    )
