"""Tests for bounded client state: idle sweeping and LRU capacity eviction."""

import pytest

from scrapegate.adapters.rate_limit.in_memory import (
    ClientRegistry,
    ClientWindow,
    SlidingWindowAdmissionController,
)


def _controller(clock, **registry_kwargs) -> SlidingWindowAdmissionController:
    return SlidingWindowAdmissionController(registry=ClientRegistry(**registry_kwargs), clock=clock)


def test_window_prune_drops_only_expired_entries() -> None:
    window = ClientWindow(client_key="k")
    window.timestamps.extend([0.0, 100.0, 500.0, 900.0])

    window.prune(now=1200.0, window_millis=1000)

    assert list(window.timestamps) == [500.0, 900.0]


def test_window_is_idle_once_newest_entry_expires() -> None:
    window = ClientWindow(client_key="k", window_millis=1000)
    assert window.is_idle(0.0) is True

    window.timestamps.append(100.0)
    assert window.is_idle(1100.0) is False
    assert window.is_idle(1100.5) is True


def test_idle_clients_are_swept_on_later_lookups(fake_clock) -> None:
    controller = _controller(fake_clock, max_clients=None, sweep_batch=8)
    for i in range(5):
        controller.check_rate_limit(f"idle-{i}", 1, 1000)

    fake_clock.advance(5_000)
    controller.check_rate_limit("fresh", 1, 1000)

    stats = controller.stats()
    assert stats["clients"] == 1
    assert stats["idle_evictions"] == 5
    assert "fresh" in controller.registry


def test_sweep_inspects_a_bounded_batch(fake_clock) -> None:
    controller = _controller(fake_clock, max_clients=None, sweep_batch=2)
    for i in range(6):
        controller.check_rate_limit(f"idle-{i}", 1, 1000)

    fake_clock.advance(5_000)
    controller.check_rate_limit("fresh", 1, 1000)

    assert controller.stats()["idle_evictions"] == 2
    assert len(controller.registry) == 5


def test_active_clients_survive_the_sweep(fake_clock) -> None:
    controller = _controller(fake_clock, max_clients=None, sweep_batch=8)
    controller.check_rate_limit("slow", 1, 60_000)
    controller.check_rate_limit("quick", 1, 100)

    fake_clock.advance(1_000)
    controller.check_rate_limit("other", 1, 100)

    assert "slow" in controller.registry
    assert "quick" not in controller.registry
    # The surviving window still enforces its quota.
    assert controller.check_rate_limit("slow", 1, 60_000).allowed is False


def test_capacity_evicts_least_recently_used(fake_clock) -> None:
    controller = _controller(fake_clock, max_clients=2, sweep_batch=0)
    controller.check_rate_limit("a", 5, 60_000)
    controller.check_rate_limit("b", 5, 60_000)

    # Touch "a" so that "b" becomes least recently used
    controller.check_rate_limit("a", 5, 60_000)
    controller.check_rate_limit("c", 5, 60_000)

    assert "a" in controller.registry
    assert "c" in controller.registry
    assert "b" not in controller.registry
    assert controller.stats()["capacity_evictions"] == 1


def test_evicted_window_is_never_reused(fake_clock) -> None:
    registry = ClientRegistry(max_clients=1, sweep_batch=0)
    first = registry.acquire("a", fake_clock())

    registry.acquire("b", fake_clock())

    assert first.evicted is True
    assert registry.acquire("a", fake_clock()) is not first


def test_locked_window_is_not_evicted(fake_clock) -> None:
    registry = ClientRegistry(max_clients=1, sweep_batch=0)
    busy = registry.acquire("busy", fake_clock())

    with busy.lock:
        registry.acquire("other", fake_clock())

    assert busy.evicted is False
    assert "busy" in registry
    assert len(registry) == 2


def test_clear_marks_windows_evicted(fake_clock) -> None:
    registry = ClientRegistry()
    window = registry.acquire("a", fake_clock())

    registry.clear()

    assert window.evicted is True
    assert len(registry) == 0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_clients": 0},
        {"sweep_batch": -1},
    ],
)
def test_invalid_registry_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        ClientRegistry(**kwargs)
