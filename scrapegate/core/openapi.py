"""OpenAPI metadata and customization utilities.

Enriches the generated OpenAPI schema with:
- Tags metadata
- Documentation of the rate-limit response headers on admission-controlled
  operations

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

RATE_LIMITED_TAG = "Data Scraping"

_RATE_LIMIT_HEADERS: Dict[str, Any] = {
    "Retry-After": {
        "description": "Seconds until the oldest counted request leaves the window.",
        "schema": {"type": "integer"},
    },
    "X-RateLimit-Limit": {
        "description": "Requests allowed per sliding window.",
        "schema": {"type": "integer"},
    },
    "X-RateLimit-Remaining": {
        "description": "Requests left in the current window.",
        "schema": {"type": "integer"},
    },
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and rate-limit docs."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {
                "name": RATE_LIMITED_TAG,
                "description": (
                    "Scraping control panel: status, job start and export. "
                    "Every operation is rate limited per client."
                ),
            },
            {
                "name": "Health",
                "description": "Liveness checks (not rate limited).",
            },
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for methods in schema.get("paths", {}).values():
            for operation in methods.values():
                if not isinstance(operation, dict):
                    continue
                if RATE_LIMITED_TAG not in operation.get("tags", []):
                    continue
                throttled = operation.get("responses", {}).get("429")
                if throttled is not None:
                    throttled.setdefault("headers", dict(_RATE_LIMIT_HEADERS))

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
