"""OpenAPI customization.

Adds the ``X-API-Key`` security scheme, tag descriptions, and exempts the
health endpoint from auth in the generated schema. Kept out of the app
factory so documentation concerns stay separate.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_TAGS = [
    {
        "name": "Attempts",
        "description": "Record, inspect and reset attempts for an identifier and action.",
    },
    {
        "name": "Admin",
        "description": "Operator endpoints to purge limiter state. Require an admin key.",
    },
    {
        "name": "Health",
        "description": "Liveness check and cleanup scheduler state.",
    },
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Wrap ``app.openapi`` to inject security scheme and tag metadata."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        security_schemes = schema.setdefault("components", {}).setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "ApiKeyAuth",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": "Consumer or admin key, sent in the X-API-Key header.",
            },
        )
        schema.setdefault("security", [{"ApiKeyAuth": []}])

        tags = schema.setdefault("tags", [])
        known = {t.get("name") for t in tags}
        tags.extend(tag for tag in _TAGS if tag["name"] not in known)

        for path, methods in schema.get("paths", {}).items():
            if path.endswith("/health"):
                for method_obj in methods.values():
                    if isinstance(method_obj, dict):
                        method_obj["security"] = []

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
