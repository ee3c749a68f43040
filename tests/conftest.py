"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment variables are set before anything imports the settings module.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_SIMULATED_LATENCY_SECONDS", "0")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from scrapegate.adapters.rate_limit.in_memory import (
    ClientRegistry,
    SlidingWindowAdmissionController,
)
from scrapegate.core.app_factory import create_app


class FakeClock:
    """Deterministic millisecond clock for admission tests."""

    def __init__(self, start: float = 0.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, millis: float) -> None:
        self.current += millis


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def controller(fake_clock: FakeClock) -> SlidingWindowAdmissionController:
    return SlidingWindowAdmissionController(
        registry=ClientRegistry(max_clients=100, sweep_batch=4),
        clock=fake_clock,
    )


@pytest.fixture
def app(controller: SlidingWindowAdmissionController) -> FastAPI:
    """App with its own controller so quotas never leak between tests."""
    return create_app(admission_controller=controller)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
