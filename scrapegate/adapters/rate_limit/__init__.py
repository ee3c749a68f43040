"""Request admission (rate limiting) adapters.

This package keeps the admission contract separate from its storage so the
in-memory sliding-window controller can later be replaced by a shared store
(e.g., Redis) without changing the HTTP layer.
"""

from scrapegate.adapters.rate_limit.base import (
    AbstractAdmissionController,
    AdmissionDecision,
    AdmissionPolicy,
)
from scrapegate.adapters.rate_limit.in_memory import (
    ClientRegistry,
    ClientWindow,
    SlidingWindowAdmissionController,
    monotonic_millis,
)

__all__ = [
    "AbstractAdmissionController",
    "AdmissionDecision",
    "AdmissionPolicy",
    "ClientRegistry",
    "ClientWindow",
    "SlidingWindowAdmissionController",
    "monotonic_millis",
]
