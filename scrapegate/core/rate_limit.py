"""Admission control dependency for FastAPI routes.

This module wires the admission controller adapter into the HTTP layer.

Design goals:
- Minimal coupling: routes depend on an ``AdmissionGuard`` instance only.
- Owned state: the controller lives on ``app.state`` and is created by the
  app factory, so each app (and each test) gets an independent registry.
- Fail fast: a guard builds its policy when the route is declared, so a bad
  quota breaks import rather than the first request.

Strategy:
- Sliding-window limit per client key, namespaced by route scope.
- Client key comes from the forwarded-for header, else a fixed sentinel.
"""

from __future__ import annotations

import logging

from fastapi import Request, Response

from scrapegate.adapters.rate_limit.base import (
    AbstractAdmissionController,
    AdmissionDecision,
    AdmissionPolicy,
)
from scrapegate.adapters.rate_limit.in_memory import (
    ClientRegistry,
    SlidingWindowAdmissionController,
)
from scrapegate.core.client_identity import build_admission_key, get_client_key
from scrapegate.core.config import AppSettings, settings
from scrapegate.core.errors import ConfigurationAppError, RateLimitExceededError
from scrapegate.core.logging import hash_identifier

logger = logging.getLogger(__name__)

RATE_LIMIT_EXCEEDED_MESSAGE = "Rate limit exceeded"


def build_admission_controller(app_settings: AppSettings | None = None) -> AbstractAdmissionController:
    """Create the admission controller described by configuration.

    Args:
        app_settings: Application settings; defaults to the global settings.

    Returns:
        A fresh in-memory sliding-window controller.
    """

    cfg = app_settings or settings.app
    registry = ClientRegistry(
        max_clients=cfg.rate_limit_max_clients,
        sweep_batch=cfg.rate_limit_sweep_batch,
    )
    return SlidingWindowAdmissionController(registry=registry)


def get_admission_controller(request: Request) -> AbstractAdmissionController:
    """Return the controller owned by the application serving ``request``.

    Raises:
        ConfigurationAppError: If the app was built without a controller.
    """

    controller = getattr(request.app.state, "admission_controller", None)
    if controller is None:
        raise ConfigurationAppError(
            code="admission_controller_missing",
            message="Admission controller is not configured for this application",
            details={"hint": "Build the app with create_app()"},
        )
    return controller


def build_rate_limit_headers(decision: AdmissionDecision) -> dict[str, str]:
    headers = {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
    }
    if decision.retry_after_seconds is not None:
        headers["Retry-After"] = str(decision.retry_after_seconds)
    return headers


class AdmissionGuard:
    """FastAPI dependency admitting or rejecting requests for one route scope.

    Usage:
        export_guard = AdmissionGuard("data-scraping.export", max_requests=5, window_millis=60_000)

        @router.post("/export", dependencies=[Depends(export_guard)])
        async def export(): ...

    Args:
        scope: Name used to namespace client keys for this route.
        max_requests: Quota per window.
        window_millis: Sliding window width in milliseconds.

    Raises:
        InvalidPolicyError: If the quota or window is not positive.
    """

    def __init__(self, scope: str, *, max_requests: int, window_millis: int) -> None:
        if not scope:
            raise ValueError("scope must be a non-empty string")
        self.scope = scope
        self.policy = AdmissionPolicy(max_requests=max_requests, window_millis=window_millis)

    def __repr__(self) -> str:
        return (
            f"AdmissionGuard(scope={self.scope!r}, max_requests={self.policy.max_requests}, "
            f"window_millis={self.policy.window_millis})"
        )

    async def __call__(self, request: Request, response: Response) -> None:
        """Consume one unit of the caller's quota for this scope.

        Raises:
            RateLimitExceededError: When the caller is over quota (mapped to 429).
        """

        if not settings.app.rate_limit_enabled:
            return

        controller = get_admission_controller(request)
        client_key = get_client_key(request)
        key_hash = hash_identifier(client_key)

        decision = controller.admit(build_admission_key(self.scope, client_key), self.policy)
        request.state.admission = decision

        if decision.allowed:
            logger.debug(
                "rate_limit.allowed",
                extra={
                    "scope": self.scope,
                    "key_hash": key_hash,
                    "limit": decision.limit,
                    "remaining": decision.remaining,
                    "window_ms": self.policy.window_millis,
                },
            )
            if settings.app.rate_limit_include_headers:
                response.headers.update(build_rate_limit_headers(decision))
            return

        logger.warning(
            "rate_limit.exceeded",
            extra={
                "scope": self.scope,
                "key_hash": key_hash,
                "limit": decision.limit,
                "window_ms": self.policy.window_millis,
                "retry_after_s": decision.retry_after_seconds,
            },
        )

        raise RateLimitExceededError(
            code="rate_limit_exceeded",
            message=RATE_LIMIT_EXCEEDED_MESSAGE,
            details={
                "max_requests": self.policy.max_requests,
                "window_millis": self.policy.window_millis,
                "retry_after": decision.retry_after_seconds or 0,
            },
            decision=decision,
            headers=build_rate_limit_headers(decision)
            if settings.app.rate_limit_include_headers
            else None,
        )
