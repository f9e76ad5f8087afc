"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from app.core.errors import (
    AppError,
    ConfigurationAppError,
    LLMAppError,
    RateLimitAppError,
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
    """Create test client with handlers enabled."""
    return TestClient(app_with_handlers)


def _body(response) -> dict:
    raw = response.body if isinstance(response.body, bytes) else bytes(response.body)
    return json.loads(raw.decode())


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    def test_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-validation")
        async def endpoint():
            raise ValidationAppError(code="too_many_messages", message="Too many messages (maximum 5).")

        response = client.get("/test-validation")

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "too_many_messages"
        assert data["error"] == "Too many messages (maximum 5)."
        assert "request_id" in data

    def test_rate_limit_error_returns_429_with_retry_after(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-rate-limit")
        async def endpoint():
            raise RateLimitAppError(
                code="rate_limited",
                message="Request rate too high, please retry in 3 minutes.",
                details={"minutes_remaining": 3, "retry_after": 150},
            )

        response = client.get("/test-rate-limit")

        assert response.status_code == 429
        assert response.json()["error"] == "Request rate too high, please retry in 3 minutes."
        assert response.headers["Retry-After"] == "150"

    @patch("app.core.exception_handlers.settings")
    def test_retry_after_header_can_be_disabled(
        self, mock_settings, client: TestClient, app_with_handlers: FastAPI
    ):
        mock_settings.app.rate_limit_include_headers = False

        @app_with_handlers.get("/test-rate-limit-no-header")
        async def endpoint():
            raise RateLimitAppError(
                code="rate_limited",
                message="Request rate too high, please retry in 1 minutes.",
                details={"minutes_remaining": 1, "retry_after": 30},
            )

        response = client.get("/test-rate-limit-no-header")

        assert response.status_code == 429
        assert "Retry-After" not in response.headers

    def test_configuration_error_returns_500_without_details(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-config")
        async def endpoint():
            raise ConfigurationAppError(
                code="llm_missing_api_key",
                message="Server configuration error",
                details={"hint": "Set LLM_API_KEY"},
            )

        response = client.get("/test-config")

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "Server configuration error"
        assert "details" not in data
        assert "LLM_API_KEY" not in response.text

    def test_llm_error_returns_502(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-llm")
        async def endpoint():
            raise LLMAppError(
                code="upstream_error",
                message="Upstream completion request failed",
                details={"http_status": 503},
            )

        response = client.get("/test-llm")

        assert response.status_code == 502
        data = response.json()
        assert data["code"] == "upstream_error"
        assert data["details"]["http_status"] == 503

    def test_error_response_format_is_consistent(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-format")
        async def endpoint():
            raise ValidationAppError(code="test", message="test")

        data = client.get("/test-format").json()

        assert isinstance(data["error"], str)
        assert "code" in data
        assert "request_id" in data
        assert "details" not in data


class TestRequestValidationHandler:
    def test_body_validation_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        class Payload(BaseModel):
            messages: list[str]

        @app_with_handlers.post("/test-body")
        async def endpoint(payload: Payload):
            return {"ok": True}

        response = client.post("/test-body", json={"messages": "nope"})

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Invalid messages format"
        assert data["code"] == "invalid_request"
        assert "body.messages" in data["details"]["context"]["fields"]


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_handler_registered(self, app_with_handlers: FastAPI):
        assert Exception in app_with_handlers.exception_handlers

    def test_general_exception_handler_logic(self):
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = RuntimeError("Unexpected error: database connection failed")
        response = asyncio.run(general_exception_handler(request, exc))

        data = _body(response)
        assert response.status_code == 500
        assert data["code"] == "internal_server_error"
        assert "database connection" not in data["error"]
        assert "request_id" in data

    def test_general_exception_handler_never_leaks_stack_trace(self):
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        response = asyncio.run(general_exception_handler(request, ValueError("Test error with details")))

        response_text = json.dumps(_body(response))
        assert "Traceback" not in response_text
        assert "File \"" not in response_text
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
