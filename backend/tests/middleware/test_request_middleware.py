"""
Request Middleware Tests
========================

Tests for middleware components including:
- RequestContextMiddleware
- SecurityHeadersMiddleware
- RateLimitMiddleware
- CORS and error rendering through the full stack
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from portal.core.config import settings
from portal.middleware.request_middleware import RateLimitMiddleware


pytestmark = pytest.mark.middleware


class TestRequestContextMiddleware:
    """Tests for RequestContextMiddleware."""

    def test_request_id_header_added(self, client: TestClient):
        """Test that X-Request-ID header is added to responses."""
        # Act
        response = client.get("/")

        # Assert
        assert len(response.headers["X-Request-ID"]) > 0
        assert "X-Process-Time" in response.headers

    def test_request_id_propagated(self, client: TestClient):
        """Test that a caller-supplied X-Request-ID is echoed back."""
        response = client.get("/health", headers={"X-Request-ID": "trace-123"})
        assert response.headers["X-Request-ID"] == "trace-123"

    def test_health_endpoints(self, client: TestClient):
        assert client.get("/").json()["status"] == "healthy"
        assert "database" in client.get("/health").json()["checks"]


class TestSecurityHeadersMiddleware:
    """Tests for SecurityHeadersMiddleware."""

    def test_security_headers(self, client: TestClient):
        # Act
        response = client.get("/")

        # Assert
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
        assert "frame-ancestors 'none'" in response.headers["Content-Security-Policy"]

    def test_no_hsts_outside_production(self, client: TestClient):
        assert "Strict-Transport-Security" not in client.get("/").headers

    def test_headers_on_error_responses(self, client: TestClient):
        response = client.get("/auth/me")
        assert response.status_code == 401
        assert response.headers["X-Frame-Options"] == "DENY"


class TestRateLimitMiddleware:
    """Tests for RateLimitMiddleware on a bare application."""

    @pytest.fixture
    def limited_client(self, monkeypatch):
        monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", True)
        monkeypatch.setattr(settings, "LOGIN_RATE_LIMIT", 2)

        app = FastAPI()
        app.add_middleware(RateLimitMiddleware)

        @app.post("/auth/login")
        def login():
            return {"ok": True}

        @app.get("/auth/login")
        def login_page():
            return {"ok": True}

        return TestClient(app)

    def test_login_rate_limited(self, limited_client: TestClient):
        # Act
        codes = [limited_client.post("/auth/login").status_code for _ in range(3)]
        blocked = limited_client.post("/auth/login")

        # Assert
        assert codes == [200, 200, 429]
        assert blocked.headers["Retry-After"] == "60"
        assert blocked.json()["reason"] == "rate_limited"

    def test_only_login_post_is_limited(self, limited_client: TestClient):
        codes = [limited_client.get("/auth/login").status_code for _ in range(5)]
        assert codes == [200] * 5

    def test_disabled_limiter(self, limited_client: TestClient, monkeypatch):
        # Arrange
        monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", False)

        # Act
        codes = [limited_client.post("/auth/login").status_code for _ in range(5)]

        # Assert
        assert codes == [200] * 5


class TestMiddlewareIntegration:
    """Full stack behaviour."""

    def test_cors_preflight(self, client: TestClient):
        # Act
        response = client.options(
            "/auth/login",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "POST",
            },
        )

        # Assert
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"

    def test_invalid_json_returns_error_body(self, client: TestClient):
        # Act
        response = client.post(
            "/auth/login",
            content="not json",
            headers={"Content-Type": "application/json"},
        )

        # Assert
        assert response.status_code == 422
        assert response.json()["reason"] == "validation_error"
        assert response.json()["details"]["errors"]
