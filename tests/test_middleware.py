"""
Tests for the error and logging middleware.
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from citypulse.middleware import ErrorHandlerMiddleware, LoggingMiddleware
from citypulse.middleware.error_handler import get_status_code_for_error
from citypulse.middleware.logging import mask_headers, route_area
from citypulse.utils.exceptions import (
    AlreadyCancelledError,
    AuthenticationError,
    AuthorizationError,
    CapacityExceededError,
    CouponExpiredError,
    DuplicateCouponCodeError,
    EmailServiceError,
    EventNotFoundError,
    InvalidEventStateError,
    ValidationError,
)


@pytest.mark.parametrize(
    "error, status_code",
    [
        (ValidationError("bad"), 422),
        (EventNotFoundError("e1"), 404),
        (AuthenticationError(), 401),
        (AuthorizationError(), 403),
        (DuplicateCouponCodeError("SAVE10"), 409),
        (CapacityExceededError(3, 2), 400),
        (AlreadyCancelledError("b1"), 400),
        (CouponExpiredError("SAVE10"), 400),
        (InvalidEventStateError("no"), 400),
        (EmailServiceError("smtp down"), 503),
    ],
)
def test_status_codes(error, status_code):
    """Test each error kind maps to its HTTP status"""
    assert get_status_code_for_error(error) == status_code


def test_capacity_error_never_reports_negative_seats():
    """Test the remaining seat count is floored at zero"""
    error = CapacityExceededError(2, -1)

    assert error.available == 0
    assert error.message == "Only 0 seats available"


class TestLoggingHelpers:
    """Tests for request logging helpers"""

    def test_mask_headers(self):
        """Test credentials are masked and other headers kept"""
        masked = mask_headers(
            {"Authorization": "Bearer abcdefgh1234", "Cookie": "sid=1", "Accept": "application/json"},
            ["authorization", "cookie"],
        )

        assert masked == {
            "Authorization": "Bearer ***1234",
            "Cookie": "***MASKED***",
            "Accept": "application/json",
        }

    @pytest.mark.parametrize(
        "path, area",
        [
            ("/api/v1/bookings/mine", "bookings"),
            ("/api/v1/events", "events"),
            ("/health", "service"),
        ],
    )
    def test_route_area(self, path, area):
        """Test paths are labelled by API area"""
        assert route_area(path) == area


def build_app(debug: bool) -> FastAPI:
    app = FastAPI()
    app.add_middleware(ErrorHandlerMiddleware, debug=debug)
    app.add_middleware(LoggingMiddleware)

    @app.get("/boom")
    async def boom():
        raise RuntimeError("kaput")

    @app.get("/sold-out")
    async def sold_out():
        raise CapacityExceededError(4, 1, "event-1")

    return app


class TestErrorHandlerMiddleware:
    """Tests for ErrorHandlerMiddleware"""

    @pytest.mark.asyncio
    async def test_domain_error_envelope(self):
        """Test domain errors become structured JSON with an error id"""
        async with AsyncClient(transport=ASGITransport(app=build_app(False)), base_url="http://test") as client:
            response = await client.get("/sold-out")

        assert response.status_code == 400
        body = response.json()
        assert body["error"]["error_code"] == "CAPACITY_EXCEEDED"
        assert body["error"]["details"] == {"requested": 4, "available": 1, "event_id": "event-1"}
        assert body["error_id"]
        assert "X-Request-ID" in response.headers

    @pytest.mark.asyncio
    async def test_unexpected_error_hides_internals(self):
        """Test unexpected errors return a generic 500 outside debug"""
        async with AsyncClient(transport=ASGITransport(app=build_app(False)), base_url="http://test") as client:
            response = await client.get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["error"]["error_code"] == "INTERNAL_ERROR"
        assert "debug" not in body
        assert "kaput" not in response.text

    @pytest.mark.asyncio
    async def test_unexpected_error_in_debug(self):
        """Test debug mode includes the exception and traceback"""
        async with AsyncClient(transport=ASGITransport(app=build_app(True)), base_url="http://test") as client:
            response = await client.get("/boom")

        assert response.status_code == 500
        assert response.json()["debug"]["exception"] == "kaput"
