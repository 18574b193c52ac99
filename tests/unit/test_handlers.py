"""Tests for exception handlers."""

import json

import pytest
from unittest.mock import Mock
from fastapi import Request, HTTPException
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from seekpage.errors.handlers import (
    problem_detail_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    pagination_validation_handler,
    general_exception_handler
)
from seekpage.errors.problem_details import InvalidCursorError, StoreError
from seekpage.pagination import PaginationConfig


class TestExceptionHandlers:
    """Test exception handlers."""

    @pytest.fixture
    def mock_request(self):
        """Create mock request."""
        request = Mock(spec=Request)
        request.url.path = "/test/path"
        request.method = "GET"
        return request

    @pytest.mark.asyncio
    async def test_problem_detail_exception_handler(self, mock_request):
        """Test ProblemDetailException handler."""
        exc = InvalidCursorError("Invalid cursor format: bad padding")

        response = await problem_detail_exception_handler(mock_request, exc)

        assert response.status_code == 400
        assert response.headers["Content-Type"] == "application/problem+json"
        body = json.loads(response.body)
        assert body["type"] == "urn:seekpage:problem:invalid-cursor"
        assert body["instance"] == "/test/path"

    @pytest.mark.asyncio
    async def test_http_exception_handler_fastapi(self, mock_request):
        """Test FastAPI HTTPException handler."""
        exc = HTTPException(status_code=404, detail="Not found")

        response = await http_exception_handler(mock_request, exc)

        assert response.status_code == 404
        assert json.loads(response.body)["title"] == "Not Found"

    @pytest.mark.asyncio
    async def test_http_exception_handler_starlette(self, mock_request):
        """Test Starlette HTTPException handler."""
        exc = StarletteHTTPException(status_code=405, detail="Method Not Allowed")

        response = await http_exception_handler(mock_request, exc)

        assert response.status_code == 405
        assert response.headers["Content-Type"] == "application/problem+json"

    @pytest.mark.asyncio
    async def test_http_exception_handler_with_headers(self, mock_request):
        """Test HTTPException handler with custom headers."""
        exc = HTTPException(
            status_code=503,
            detail="Busy",
            headers={"Retry-After": "60"}
        )

        response = await http_exception_handler(mock_request, exc)

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "60"

    @pytest.mark.asyncio
    async def test_validation_exception_handler(self, mock_request):
        """Test RequestValidationError handler."""
        errors = [
            {
                "loc": ("query", "get_total"),
                "msg": "Input should be a valid boolean",
                "type": "bool_parsing"
            }
        ]

        exc = RequestValidationError(errors)

        response = await validation_exception_handler(mock_request, exc)

        assert response.status_code == 422
        assert "query -> get_total" in json.loads(response.body)["detail"]

    @pytest.mark.asyncio
    async def test_general_exception_handler(self, mock_request):
        """Test general exception handler."""
        exc = Exception("Unexpected error")

        response = await general_exception_handler(mock_request, exc)

        assert response.status_code == 500
        assert json.loads(response.body)["detail"] == "An unexpected error occurred"

    @pytest.mark.asyncio
    async def test_pagination_validation_handler(self, mock_request):
        """Test that invalid pagination parameters become a 400."""
        with pytest.raises(ValidationError) as exc_info:
            PaginationConfig(default_limit=500, max_limit=10)

        response = await pagination_validation_handler(mock_request, exc_info.value)

        assert response.status_code == 400
        body = json.loads(response.body)
        assert body["title"] == "Bad Request"
        assert "default_limit cannot exceed max_limit" in body["detail"]

    @pytest.mark.asyncio
    async def test_server_errors_logged_as_warning(self, mock_request, caplog):
        """Test that 5xx problems are logged above info level."""
        with caplog.at_level("INFO", logger="seekpage.errors.handlers"):
            await problem_detail_exception_handler(mock_request, StoreError())

        assert caplog.records[-1].levelname == "WARNING"
