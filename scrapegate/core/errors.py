"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, NotRequired, TypedDict

if TYPE_CHECKING:
    from scrapegate.adapters.rate_limit.base import AdmissionDecision


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    field: str
    fields: list[str]
    max_requests: int
    window_millis: int
    retry_after: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request input validation fails."""


class ConfigurationAppError(AppError):
    """Raised when the service itself is wired incorrectly."""


class InvalidPolicyError(ConfigurationAppError):
    """Raised when an admission policy has a non-positive quota or window."""


class ScrapingAppError(AppError):
    """Raised when a scraping operation fails unexpectedly."""


@dataclass
class RateLimitExceededError(AppError):
    """Raised by the admission guard when a client is over quota.

    Attributes:
        decision: The rejecting admission decision.
        headers: Response headers to attach to the 429 response.
    """

    decision: AdmissionDecision | None = None
    headers: dict[str, str] | None = None
