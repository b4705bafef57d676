"""Tests for global exception handlers.

Validates that all exception types are handled consistently with proper HTTP
status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.config import settings
from app.core.errors import (
    AppError,
    AuthenticationAppError,
    RateLimitedAppError,
)
from app.core.exception_handlers import general_exception_handler, setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers)


class TestAppErrorHandler:
    def test_base_app_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-app-error")
        async def endpoint():
            raise AppError(code="invalid_action", message="Unknown action")

        response = client.get("/test-app-error")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "invalid_action"
        assert error["message"] == "Unknown action"
        assert "request_id" in error
        assert "details" not in error

    def test_authentication_error_returns_403(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-auth")
        async def endpoint():
            raise AuthenticationAppError(code="invalid_api_key", message="Invalid or missing API key")

        response = client.get("/test-auth")

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "invalid_api_key"

    def test_rate_limited_error_returns_429_with_retry_after(
        self, client: TestClient, app_with_handlers: FastAPI
    ):
        @app_with_handlers.get("/test-limited")
        async def endpoint():
            raise RateLimitedAppError(
                code="too_many_attempts",
                message="Too many attempts. Try again in 5 minutes.",
                details={"retry_after": 290},
            )

        response = client.get("/test-limited")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "290"
        assert response.json()["error"]["details"]["retry_after"] == 290

    def test_rate_limited_without_retry_after_has_no_header(
        self, client: TestClient, app_with_handlers: FastAPI
    ):
        @app_with_handlers.get("/test-limited-bare")
        async def endpoint():
            raise RateLimitedAppError(code="too_many_attempts", message="Too many attempts.")

        response = client.get("/test-limited-bare")

        assert response.status_code == 429
        assert "Retry-After" not in response.headers

    def test_retry_after_header_respects_settings(
        self, client: TestClient, app_with_handlers: FastAPI, monkeypatch: pytest.MonkeyPatch
    ):
        monkeypatch.setattr(settings.rate_limit, "include_headers", False)

        @app_with_handlers.get("/test-limited-no-headers")
        async def endpoint():
            raise RateLimitedAppError(
                code="too_many_attempts", message="Too many attempts.", details={"retry_after": 10}
            )

        response = client.get("/test-limited-no-headers")

        assert response.status_code == 429
        assert "Retry-After" not in response.headers


class TestGeneralExceptionHandler:
    def test_handler_registered(self, app_with_handlers: FastAPI):
        assert AppError in app_with_handlers.exception_handlers
        assert Exception in app_with_handlers.exception_handlers

    def test_never_leaks_exception_details(self):
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = RuntimeError("store connection failed for user@example.com")
        response = asyncio.run(general_exception_handler(request, exc))

        body = bytes(response.body).decode()
        data = json.loads(body)
        assert response.status_code == 500
        assert data["error"]["code"] == "internal_server_error"
        assert "user@example.com" not in body
        assert "RuntimeError" not in body
        assert "Traceback" not in body
