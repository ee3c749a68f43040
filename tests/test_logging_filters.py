"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from scrapegate.core.logging import (
    JsonFormatter,
    SensitiveDataFilter,
    clear_request_id,
    hash_identifier,
    set_request_id,
)


@pytest.fixture
def capture():
    logger = logging.getLogger("test_redaction")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    yield logger, stream

    logger.handlers.clear()


def test_client_identity_is_redacted(capture):
    logger, stream = capture

    logger.info(
        "rate_limit.exceeded",
        extra={
            "client_key": "203.0.113.7",
            "x-forwarded-for": "203.0.113.7, 10.0.0.1",
            "scope": "data-scraping.export",
        },
    )

    output = stream.getvalue()
    assert "203.0.113.7" not in output
    assert "[REDACTED]" in output
    assert "data-scraping.export" in output


def test_nested_headers_are_redacted(capture):
    logger, stream = capture

    logger.info(
        "request.headers",
        extra={
            "headers": {
                "authorization": "Bearer secret-token",
                "user-agent": "pytest",
            },
        },
    )

    output = stream.getvalue()
    assert "secret-token" not in output
    assert "pytest" in output


def test_safe_fields_pass_through(capture):
    logger, stream = capture

    logger.info(
        "rate_limit.allowed",
        extra={"key_hash": hash_identifier("1.2.3.4"), "limit": 5, "remaining": 4},
    )

    record = json.loads(stream.getvalue())
    assert record["message"] == "rate_limit.allowed"
    assert record["limit"] == 5
    assert record["key_hash"] == hash_identifier("1.2.3.4")
    assert "[REDACTED]" not in stream.getvalue()


def test_request_id_from_context(capture):
    logger, stream = capture
    set_request_id("req-42")
    try:
        logger.info("scraping.job_started")
    finally:
        clear_request_id()

    assert json.loads(stream.getvalue())["request_id"] == "req-42"


def test_hash_identifier_is_stable_and_short():
    assert hash_identifier("1.2.3.4") == hash_identifier("1.2.3.4")
    assert hash_identifier("1.2.3.4") != hash_identifier("1.2.3.5")
    assert len(hash_identifier("1.2.3.4")) == 16
