"""OpenAPI customization for the rate limited API.

Documents the 429 response and the ``X-RateLimit-*`` headers once as shared
components and references them from every rate limited operation, so the
generated schema tells clients how throttling looks.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

RATE_LIMIT_TAG = "Rate limit"

_RATE_LIMIT_HEADERS: Dict[str, Any] = {
    "X-RateLimit-Limit": {
        "description": "Requests allowed in the current window.",
        "schema": {"type": "integer"},
    },
    "X-RateLimit-Remaining": {
        "description": "Requests left in the current window.",
        "schema": {"type": "integer"},
    },
    "X-RateLimit-Reset": {
        "description": "UNIX epoch seconds when the current window resets.",
        "schema": {"type": "integer"},
    },
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation with rate limit documentation.

    - Adds ``components.headers`` for the ``X-RateLimit-*`` headers
    - Adds a ``TooManyRequests`` response component
    - Attaches both to operations tagged ``Rate limit``
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        components = schema.setdefault("components", {})
        headers = components.setdefault("headers", {})
        for name, header in _RATE_LIMIT_HEADERS.items():
            headers.setdefault(name, header)

        header_refs = {name: {"$ref": f"#/components/headers/{name}"} for name in _RATE_LIMIT_HEADERS}
        components.setdefault("responses", {}).setdefault(
            "TooManyRequests",
            {
                "description": "Rate limit exceeded.",
                "headers": {
                    **header_refs,
                    "Retry-After": {
                        "description": "Seconds until the window resets.",
                        "schema": {"type": "integer"},
                    },
                },
                "content": {
                    "application/json": {
                        "example": {
                            "error": "Too many requests",
                            "limit": 10,
                            "remaining": 0,
                            "reset": 1760000000,
                        }
                    }
                },
            },
        )

        for methods in schema.get("paths", {}).values():
            for operation in methods.values():
                if not isinstance(operation, dict) or RATE_LIMIT_TAG not in operation.get("tags", []):
                    continue
                responses = operation.setdefault("responses", {})
                responses.setdefault("429", {"$ref": "#/components/responses/TooManyRequests"})
                ok = responses.get("200")
                if isinstance(ok, dict):
                    ok.setdefault("headers", {}).update(header_refs)

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
