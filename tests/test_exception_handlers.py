"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient
from pydantic import BaseModel

from scrapegate.adapters.rate_limit.base import AdmissionDecision
from scrapegate.core.errors import (
    AppError,
    ConfigurationAppError,
    InvalidPolicyError,
    RateLimitExceededError,
    ScrapingAppError,
    ValidationAppError,
)
from scrapegate.core.exception_handlers import (
    general_exception_handler,
    setup_exception_handlers,
    status_code_for,
)


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers)


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    def test_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-validation")
        async def test_endpoint():
            raise ValidationAppError(code="format_required", message="Format is required")

        response = client.get("/test-validation")

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "Format is required"
        assert data["code"] == "format_required"
        assert "request_id" in data

    def test_validation_error_includes_details(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-validation-details")
        async def test_endpoint():
            raise ValidationAppError(
                code="source_id_required",
                message="Source ID is required",
                details={"field": "source_id"},
            )

        data = client.get("/test-validation-details").json()

        assert data["details"]["field"] == "source_id"

    def test_rate_limit_error_returns_429_with_headers(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-rate-limit")
        async def test_endpoint():
            raise RateLimitExceededError(
                code="rate_limit_exceeded",
                message="Rate limit exceeded",
                decision=AdmissionDecision(
                    allowed=False, limit=5, remaining=0, reset_at=60_000, retry_after_seconds=42
                ),
                headers={"Retry-After": "42"},
            )

        response = client.get("/test-rate-limit")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "42"
        assert response.json()["error"] == "Rate limit exceeded"

    def test_configuration_error_returns_500_without_details(
        self, client: TestClient, app_with_handlers: FastAPI
    ):
        @app_with_handlers.get("/test-config")
        async def test_endpoint():
            raise InvalidPolicyError(
                code="invalid_policy",
                message="max_requests must be a positive integer",
                details={"field": "max_requests"},
            )

        response = client.get("/test-config")

        assert response.status_code == 500
        data = response.json()
        assert data["code"] == "invalid_policy"
        assert "details" not in data

    def test_scraping_error_returns_500(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-scraping")
        async def test_endpoint():
            raise ScrapingAppError(code="scraping_export_failed", message="Export generation failed")

        response = client.get("/test-scraping")

        assert response.status_code == 500
        assert response.json()["error"] == "Export generation failed"


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (ValidationAppError(code="x", message="x"), 400),
        (AppError(code="x", message="x"), 400),
        (RateLimitExceededError(code="x", message="x"), 429),
        (ConfigurationAppError(code="x", message="x"), 500),
        (InvalidPolicyError(code="x", message="x"), 500),
        (ScrapingAppError(code="x", message="x"), 500),
    ],
)
def test_status_code_mapping(exc: AppError, expected: int) -> None:
    assert status_code_for(exc) == expected


def test_app_error_str_is_message() -> None:
    assert str(ValidationAppError(code="c", message="Source ID is required")) == "Source ID is required"


class TestRequestValidationHandler:
    """Body validation failures keep the error envelope."""

    def test_wrong_type_returns_400_without_echoing_input(
        self, client: TestClient, app_with_handlers: FastAPI
    ):
        class Body(BaseModel):
            format: str

        @app_with_handlers.post("/test-body")
        async def test_endpoint(body: Body):
            return {"ok": True}

        response = client.post("/test-body", json={"format": ["secret-value"]})

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["code"] == "validation_error"
        assert data["error"] == "Invalid request body"
        assert data["details"] == {"fields": ["body.format"]}
        assert "request_id" in data
        assert "secret-value" not in response.text

    def test_handler_registered(self, app_with_handlers: FastAPI):
        assert RequestValidationError in app_with_handlers.exception_handlers


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_handler_registered(self, app_with_handlers: FastAPI):
        assert Exception in app_with_handlers.exception_handlers

    def test_general_exception_handler_never_leaks_internals(self):
        request = AsyncMock()
        request.url.path = "/v1/data-scraping/export"
        request.method = "POST"

        exc = RuntimeError("Unexpected error: upstream proxy refused connection")
        response = asyncio.run(general_exception_handler(request, exc))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert data["success"] is False
        assert data["code"] == "internal_server_error"
        assert data["error"] == "Internal server error"
        assert "upstream proxy" not in json.dumps(data)
        assert "RuntimeError" not in json.dumps(data)


def test_multiple_handler_setups_does_not_fail():
    app = FastAPI()

    setup_exception_handlers(app)
    setup_exception_handlers(app)

    assert AppError in app.exception_handlers
