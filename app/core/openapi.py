"""OpenAPI customization utilities.

Enriches the generated OpenAPI schema with:
- Tags metadata
- The shared ``ErrorResponse`` component
- A documented ``429`` response on every operation subject to rate limiting

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable

from fastapi import FastAPI

from app.schemas.rate_limit import ErrorResponse

_HTTP_METHODS = {"get", "put", "post", "delete", "patch", "head", "options"}


def apply_openapi_customizations(
    app: FastAPI,
    *,
    rate_limited: bool = True,
    exempt_paths: Iterable[str] = (),
) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and 429 responses.

    Args:
        app: Application whose ``openapi`` method is wrapped.
        rate_limited: Whether the rate limit middleware is installed.
        exempt_paths: Path prefixes that bypass the limiter (no 429 documented).
    """

    original_openapi = app.openapi
    exempt = tuple(exempt_paths)

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {
                "name": "Rate Limit",
                "description": "Limiter diagnostics (strategy, quota, tracked clients).",
            },
            {
                "name": "Health",
                "description": "Liveness and readiness checks.",
            },
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        if rate_limited:
            components = schema.setdefault("components", {})
            component_schemas = components.setdefault("schemas", {})
            error_schema = ErrorResponse.model_json_schema(
                ref_template="#/components/schemas/{model}"
            )
            for name, definition in error_schema.pop("$defs", {}).items():
                component_schemas.setdefault(name, definition)
            component_schemas.setdefault("ErrorResponse", error_schema)

            too_many_requests = {
                "description": "Rate limit exceeded (error code RATE_LIMIT_EXCEEDED).",
                "content": {
                    "application/json": {
                        "schema": {"$ref": "#/components/schemas/ErrorResponse"}
                    }
                },
            }
            for path, methods in schema.get("paths", {}).items():
                if any(path == p or path.startswith(p.rstrip("/") + "/") for p in exempt):
                    continue
                for method, operation in methods.items():
                    if method in _HTTP_METHODS and isinstance(operation, dict):
                        operation.setdefault("responses", {}).setdefault("429", too_many_requests)

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
