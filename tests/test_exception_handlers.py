"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.errors import (
    AppError,
    RateLimitAppError,
    RateLimiterClosedError,
    ValidationAppError,
)
from app.core.exception_handlers import general_exception_handler, setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    """Create test client that returns 500 responses instead of re-raising."""
    return TestClient(app_with_handlers, raise_server_exceptions=False)


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    def test_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify ValidationAppError returns HTTP 400."""
        @app_with_handlers.get("/test-validation")
        async def test_endpoint():
            raise ValidationAppError(
                code="test_validation",
                message="Test validation error"
            )

        response = client.get("/test-validation")

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "test_validation"
        assert data["error"]["message"] == "Test validation error"
        assert "request_id" in data["error"]

    def test_error_includes_details(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify details are passed through when provided."""
        @app_with_handlers.get("/test-details")
        async def test_endpoint():
            raise ValidationAppError(
                code="rate_limit_unknown_strategy",
                message="Unknown rate limit strategy",
                details={"strategy": "leaky-bucket", "hint": "use sliding-window"},
            )

        response = client.get("/test-details")

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["details"]["strategy"] == "leaky-bucket"

    def test_rate_limit_error_returns_429(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify RateLimitAppError returns HTTP 429 Too Many Requests."""
        @app_with_handlers.get("/test-rate-limit")
        async def test_endpoint():
            raise RateLimitAppError(
                code="RATE_LIMIT_EXCEEDED",
                message="Too many requests. Please try again later."
            )

        response = client.get("/test-rate-limit")

        assert response.status_code == 429
        assert response.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
        assert "details" not in response.json()["error"]

    def test_limiter_closed_error_returns_500(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify a double shutdown surfaces as a server fault."""
        @app_with_handlers.get("/test-closed")
        async def test_endpoint():
            raise RateLimiterClosedError(
                code="rate_limiter_closed",
                message="Rate limiter is already closed"
            )

        response = client.get("/test-closed")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "rate_limiter_closed"

    def test_str_of_error_is_message(self):
        """Verify str(error) is useful in logs/tracebacks."""
        exc = AppError(code="c", message="human readable")
        assert str(exc) == "human readable"


class TestValidationExceptionHandler:
    """Test handler for request validation errors."""

    def test_validation_errors_are_mapped_by_field(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify query validation failures return a field -> message map."""
        @app_with_handlers.get("/test-query")
        async def test_endpoint(page: int, page_size: int = 10):
            return {"page": page, "page_size": page_size}

        response = client.get("/test-query", params={"page_size": "many"})

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "VALIDATION_ERROR"
        assert set(data["error"]["errors"]) == {"page", "page_size"}


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_returns_generic_500(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify unexpected exceptions are rendered without internals."""
        @app_with_handlers.get("/test-crash")
        async def test_endpoint():
            raise RuntimeError("lock poisoned")

        response = client.get("/test-crash")

        assert response.status_code == 500
        data = response.json()
        assert data["error"]["code"] == "INTERNAL_SERVER_ERROR"
        assert "lock poisoned" not in response.text

    def test_general_exception_handler_never_leaks_stack_trace(self):
        """Verify stack traces are never included in response."""
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = ValueError("Test error with details")
        response = asyncio.run(general_exception_handler(request, exc))

        response_text = bytes(response.body).decode()
        data = json.loads(response_text)
        assert response.status_code == 500
        assert "request_id" in data["error"]
        assert "Traceback" not in response_text
        assert "ValueError" not in response_text


class TestErrorHandlerIntegration:
    """Integration tests for exception handler setup."""

    def test_setup_exception_handlers_registers_handlers(self, app_with_handlers: FastAPI):
        assert AppError in app_with_handlers.exception_handlers
        assert Exception in app_with_handlers.exception_handlers

    def test_multiple_handler_setups_does_not_fail(self):
        app = FastAPI()

        setup_exception_handlers(app)
        setup_exception_handlers(app)

        assert AppError in app.exception_handlers
