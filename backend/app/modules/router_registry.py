"""Central router registry for module-oriented composition."""
from __future__ import annotations

from fastapi import FastAPI

from app.modules.tracking.router import ROUTERS as TRACKING_ROUTERS

ALL_ROUTERS = TRACKING_ROUTERS


def include_all_routers(app: FastAPI) -> None:
    for router in ALL_ROUTERS:
        app.include_router(router)
