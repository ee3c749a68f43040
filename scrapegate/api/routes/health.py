from __future__ import annotations

from fastapi import APIRouter, Request

from scrapegate.core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Health check endpoint.

    Used by load balancers and monitoring. Never rate limited. Includes the
    admission controller's counters when the app owns one.
    """

    payload: dict = {"status": "ok", "environment": settings.app_env}

    controller = getattr(request.app.state, "admission_controller", None)
    if controller is not None:
        payload["rate_limiter"] = controller.stats()

    return payload
