"""Unit tests for RequestLoggingMiddleware."""

from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from trackdeck.infrastructure.observability.middleware import RequestLoggingMiddleware


class TestRequestLoggingMiddleware:
    """Test suite for RequestLoggingMiddleware."""

    @pytest.fixture
    def app(self) -> FastAPI:
        """Create a FastAPI app with middleware for testing."""
        app = FastAPI()
        app.add_middleware(RequestLoggingMiddleware)

        @app.get("/test")
        async def test_endpoint():
            return {"message": "test"}

        @app.get("/error")
        async def error_endpoint():
            raise ValueError("Test error")

        return app

    @pytest.fixture
    def client(self, app: FastAPI) -> TestClient:
        """Create a test client."""
        return TestClient(app)

    def test_logs_request_and_response(self, client: TestClient):
        """One line on the way in, one on the way out."""
        with patch("trackdeck.infrastructure.observability.middleware.logger") as mock_logger:
            response = client.get("/test")

        assert response.status_code == 200
        assert mock_logger.info.call_count == 2
        completion = mock_logger.info.call_args_list[1][0][0]
        assert "GET /test" in completion
        assert "200" in completion
        assert "ms" in completion

    def test_correlation_id_from_header_is_echoed(self, client: TestClient):
        response = client.get("/test", headers={"X-Correlation-ID": "custom-correlation-id"})
        assert response.headers["X-Correlation-ID"] == "custom-correlation-id"

    def test_correlation_id_generated_when_missing(self, client: TestClient):
        with patch(
            "trackdeck.infrastructure.observability.middleware.set_correlation_id"
        ) as mock_set_correlation_id:
            client.get("/test")

        mock_set_correlation_id.assert_called_once_with(None)

    def test_error_request_logs_exception(self, client: TestClient):
        """Test that failed requests log exception details."""
        with patch("trackdeck.infrastructure.observability.middleware.logger") as mock_logger:
            with pytest.raises(ValueError):
                client.get("/error")

        assert mock_logger.exception.call_count == 1
        log_message = mock_logger.exception.call_args[0][0]
        assert "GET /error" in log_message
