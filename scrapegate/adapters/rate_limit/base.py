"""Admission controller interfaces.

The API depends on this abstraction (not the concrete implementation) so the
storage backend can be swapped later with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from scrapegate.core.errors import InvalidPolicyError


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


@dataclass(frozen=True)
class AdmissionPolicy:
    """Quota applied to one protected endpoint.

    Attributes:
        max_requests: Maximum admitted requests in any trailing window.
        window_millis: Width of the sliding window in milliseconds.

    Raises:
        InvalidPolicyError: If either value is not a positive integer.
    """

    max_requests: int
    window_millis: int

    def __post_init__(self) -> None:
        if not _is_positive_int(self.max_requests):
            raise InvalidPolicyError(
                code="invalid_policy",
                message="max_requests must be a positive integer",
                details={"field": "max_requests", "context": {"value": self.max_requests}},
            )
        if not _is_positive_int(self.window_millis):
            raise InvalidPolicyError(
                code="invalid_policy",
                message="window_millis must be a positive integer",
                details={"field": "window_millis", "context": {"value": self.window_millis}},
            )


@dataclass(frozen=True)
class AdmissionDecision:
    """Result of an admission check.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Max requests per window.
        remaining: Requests still available in the window (0 when rejected).
        reset_at: Clock time (ms) at which the oldest retained entry leaves
            the window.
        retry_after_seconds: Suggested wait in whole seconds when rejected.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after_seconds: int | None


class AbstractAdmissionController(ABC):
    """Interface for admission controllers."""

    def check_rate_limit(
        self,
        client_key: str,
        max_requests: int,
        window_millis: int,
    ) -> AdmissionDecision:
        """Decide whether ``client_key`` may make another request.

        Args:
            client_key: Best-effort client identifier (e.g., forwarded IP).
            max_requests: Quota per window.
            window_millis: Sliding window width in milliseconds.

        Returns:
            AdmissionDecision for this attempt.

        Raises:
            InvalidPolicyError: If the quota or window is not positive.
            ValueError: If client_key is empty.
        """
        return self.admit(client_key, AdmissionPolicy(max_requests, window_millis))

    @abstractmethod
    def admit(self, client_key: str, policy: AdmissionPolicy) -> AdmissionDecision:
        """Record an attempt for ``client_key`` under ``policy``."""
        raise NotImplementedError

    @abstractmethod
    def stats(self) -> dict[str, int | None]:
        """Return counters suitable for health/introspection endpoints."""
        raise NotImplementedError

    @abstractmethod
    def reset(self) -> None:
        """Forget all client state and counters."""
        raise NotImplementedError
