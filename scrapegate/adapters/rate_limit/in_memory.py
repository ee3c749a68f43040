"""In-memory sliding-window admission controller.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: each client window has its own lock, and the registry lock is
  held only for lookup, insertion and eviction.
- Bounded: idle windows are swept incrementally and the registry is capped
  with least-recently-used eviction.
"""

from __future__ import annotations

import itertools
import logging
import math
import threading
import time
from collections import OrderedDict, deque
from dataclasses import dataclass, field
from typing import Callable

from scrapegate.adapters.rate_limit.base import (
    AbstractAdmissionController,
    AdmissionDecision,
    AdmissionPolicy,
)

logger = logging.getLogger(__name__)


def monotonic_millis() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000.0


@dataclass
class ClientWindow:
    """Admission state for a single client key.

    ``timestamps`` is kept in ascending order because entries are only ever
    appended under ``lock`` with a clock read taken under the same lock.
    """

    client_key: str
    window_millis: int = 0
    timestamps: deque[float] = field(default_factory=deque)
    evicted: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def prune(self, now: float, window_millis: int) -> None:
        """Drop entries older than ``now - window_millis``."""
        cutoff = now - window_millis
        timestamps = self.timestamps
        while timestamps and timestamps[0] < cutoff:
            timestamps.popleft()

    def is_idle(self, now: float) -> bool:
        """True when every retained entry has already left the window."""
        if not self.timestamps:
            return True
        return self.timestamps[-1] < now - self.window_millis


class ClientRegistry:
    """LRU-ordered map of client key to ClientWindow.

    Attributes:
        max_clients: Maximum number of tracked clients (None for unlimited).
        sweep_batch: How many least-recently-used windows are inspected for
            idleness on every lookup.
    """

    def __init__(self, *, max_clients: int | None = 10_000, sweep_batch: int = 8) -> None:
        if max_clients is not None and max_clients < 1:
            raise ValueError("max_clients must be >= 1")
        if sweep_batch < 0:
            raise ValueError("sweep_batch must be >= 0")

        self._max_clients = max_clients
        self._sweep_batch = sweep_batch
        self._windows: OrderedDict[str, ClientWindow] = OrderedDict()
        self._lock = threading.Lock()
        self._idle_evictions = 0
        self._capacity_evictions = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def __contains__(self, client_key: object) -> bool:
        with self._lock:
            return client_key in self._windows

    def acquire(self, client_key: str, now: float) -> ClientWindow:
        """Return the window for ``client_key``, creating it if needed.

        The returned window is marked most recently used. Callers must lock it
        and check ``evicted`` before mutating it.

        Args:
            client_key: Client identifier.
            now: Current clock time in milliseconds, used for the idle sweep.

        Returns:
            The live ClientWindow for the key.
        """

        with self._lock:
            self._sweep_idle_locked(now, keep_key=client_key)

            window = self._windows.get(client_key)
            if window is None:
                window = ClientWindow(client_key=client_key)
                self._windows[client_key] = window
            else:
                self._windows.move_to_end(client_key)

            self._evict_if_over_capacity_locked(keep_key=client_key)
            return window

    def clear(self) -> None:
        with self._lock:
            for window in self._windows.values():
                window.evicted = True
            self._windows.clear()
            self._idle_evictions = 0
            self._capacity_evictions = 0

    def stats(self) -> dict[str, int | None]:
        with self._lock:
            return {
                "clients": len(self._windows),
                "max_clients": self._max_clients,
                "idle_evictions": self._idle_evictions,
                "capacity_evictions": self._capacity_evictions,
            }

    def _try_evict_locked(self, client_key: str, now: float | None = None) -> bool:
        """Evict a window unless it is in use (or, given ``now``, still active)."""
        window = self._windows[client_key]
        if not window.lock.acquire(blocking=False):
            return False
        try:
            if now is not None and not window.is_idle(now):
                return False
            window.evicted = True
            del self._windows[client_key]
            return True
        finally:
            window.lock.release()

    def _sweep_idle_locked(self, now: float, *, keep_key: str) -> None:
        candidates = list(itertools.islice(self._windows, self._sweep_batch))
        for client_key in candidates:
            if client_key == keep_key:
                continue
            if self._try_evict_locked(client_key, now):
                self._idle_evictions += 1

    def _evict_if_over_capacity_locked(self, *, keep_key: str) -> None:
        if self._max_clients is None:
            return

        excess = len(self._windows) - self._max_clients
        if excess <= 0:
            return

        candidates = list(itertools.islice(self._windows, excess + self._sweep_batch))
        for client_key in candidates:
            if excess <= 0:
                break
            if client_key == keep_key:
                continue
            if self._try_evict_locked(client_key):
                self._capacity_evictions += 1
                excess -= 1

        if excess > 0:
            logger.warning(
                "rate_limit.registry_over_capacity",
                extra={"clients": len(self._windows), "max_clients": self._max_clients},
            )


class SlidingWindowAdmissionController(AbstractAdmissionController):
    """Admission controller using a sliding log of request times per key.

    Every trailing span of ``window_millis`` contains at most
    ``max_requests`` admitted requests for a key. Rejected attempts are not
    recorded, so a client hammering a closed window does not extend its own
    lockout.

    Important:
        This controller is per-process only. If the API runs with multiple
        workers, each worker enforces its own independent limits.
    """

    def __init__(
        self,
        *,
        registry: ClientRegistry | None = None,
        clock: Callable[[], float] = monotonic_millis,
    ) -> None:
        """Initialize the controller.

        Args:
            registry: Client registry to own; a default one is created if omitted.
            clock: Time source returning monotonic milliseconds.
        """
        self._registry = registry if registry is not None else ClientRegistry()
        self._clock = clock
        self._counter_lock = threading.Lock()
        self._admitted = 0
        self._rejected = 0

    @property
    def registry(self) -> ClientRegistry:
        return self._registry

    def admit(self, client_key: str, policy: AdmissionPolicy) -> AdmissionDecision:
        """Check and record an attempt for ``client_key``.

        Args:
            client_key: Non-empty client identifier.
            policy: Quota and window to enforce.

        Returns:
            AdmissionDecision with the outcome and quota metadata.

        Raises:
            ValueError: If client_key is empty.
        """
        if not client_key:
            raise ValueError("client_key must be a non-empty string")

        while True:
            window = self._registry.acquire(client_key, self._clock())
            with window.lock:
                if window.evicted:
                    # Swept between lookup and lock; fetch the live window.
                    continue
                decision = self._decide_locked(window, policy)
                break

        with self._counter_lock:
            if decision.allowed:
                self._admitted += 1
            else:
                self._rejected += 1
        return decision

    def stats(self) -> dict[str, int | None]:
        stats = self._registry.stats()
        with self._counter_lock:
            stats["admitted"] = self._admitted
            stats["rejected"] = self._rejected
        return stats

    def reset(self) -> None:
        self._registry.clear()
        with self._counter_lock:
            self._admitted = 0
            self._rejected = 0

    def _decide_locked(self, window: ClientWindow, policy: AdmissionPolicy) -> AdmissionDecision:
        now = self._clock()
        window.window_millis = policy.window_millis
        window.prune(now, policy.window_millis)

        count = len(window.timestamps)
        if count < policy.max_requests:
            window.timestamps.append(now)
            return AdmissionDecision(
                allowed=True,
                limit=policy.max_requests,
                remaining=policy.max_requests - count - 1,
                reset_at=window.timestamps[0] + policy.window_millis,
                retry_after_seconds=None,
            )

        reset_at = window.timestamps[0] + policy.window_millis
        retry_after = max(1, int(math.ceil((reset_at - now) / 1000.0)))
        return AdmissionDecision(
            allowed=False,
            limit=policy.max_requests,
            remaining=0,
            reset_at=reset_at,
            retry_after_seconds=retry_after,
        )
