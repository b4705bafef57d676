from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness check, also reporting the background cleanup scheduler.

    ``cleanup_scheduler`` is null when the app runs without a lifespan (for
    example under a bare ``TestClient``) or with cleanup disabled.
    """

    scheduler = getattr(request.app.state, "cleanup_scheduler", None)
    return {
        "status": "ok",
        "cleanup_scheduler": scheduler.status() if scheduler is not None else None,
    }
