from __future__ import annotations

from app.api.routes.attempts import admin_router as admin_router
from app.api.routes.attempts import router as attempts_router
from app.api.routes.health import router as health_router

__all__ = ["admin_router", "attempts_router", "health_router"]
