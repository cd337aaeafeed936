"""Tests for security headers and client IP resolution."""

from __future__ import annotations

from unittest.mock import MagicMock

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from system_catalog.middleware.security import (
    SECURITY_HEADERS,
    SecurityHeadersMiddleware,
    get_client_ip,
)


class TestSecurityHeadersMiddleware:
    def test_headers_added_to_response(self) -> None:
        async def endpoint(request: Request) -> PlainTextResponse:
            return PlainTextResponse("ok", headers={"X-Frame-Options": "SAMEORIGIN"})

        app = Starlette(routes=[Route("/", endpoint)])
        app.add_middleware(SecurityHeadersMiddleware)

        response = TestClient(app).get("/")

        assert response.text == "ok"
        for name, value in SECURITY_HEADERS.items():
            assert response.headers[name] == value


class TestGetClientIp:
    """Tests for get_client_ip function."""

    def test_x_forwarded_for(self) -> None:
        """X-Forwarded-For header should be used first."""
        request = MagicMock(spec=Request)
        request.headers = {"x-forwarded-for": "1.2.3.4, 5.6.7.8"}
        request.client = MagicMock(host="10.0.0.1")

        assert get_client_ip(request, trust_forwarded_headers=True) == "1.2.3.4"

    def test_x_real_ip(self) -> None:
        request = MagicMock(spec=Request)
        request.headers = {"x-real-ip": "1.2.3.4"}
        request.client = MagicMock(host="10.0.0.1")

        assert get_client_ip(request, trust_forwarded_headers=True) == "1.2.3.4"

    def test_forwarded_headers_ignored_unless_trusted(self) -> None:
        request = MagicMock(spec=Request)
        request.headers = {"x-forwarded-for": "1.2.3.4"}
        request.client = MagicMock(host="10.0.0.1")

        assert get_client_ip(request) == "10.0.0.1"

    def test_forwarded_value_is_stripped_of_control_characters(self) -> None:
        request = MagicMock(spec=Request)
        request.headers = {"x-forwarded-for": "1.2.3.4\r\nforged"}
        request.client = None

        assert get_client_ip(request, trust_forwarded_headers=True) == "1.2.3.4forged"

    def test_unknown_when_no_client(self) -> None:
        """Should return 'unknown' when no client info available."""
        request = MagicMock(spec=Request)
        request.headers = {}
        request.client = None

        assert get_client_ip(request) == "unknown"
