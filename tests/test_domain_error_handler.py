"""Tests for domain error handler to verify structured JSON error responses."""
import json
from datetime import datetime

import pytest
from fastapi.responses import JSONResponse

from adminrest.core.error_handlers import ERROR_STATUS_MAP, domain_error_handler
from adminrest.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    CsvHeaderError,
    DomainError,
    ImportFailedError,
    InvalidFilterOperatorError,
    NotFoundError,
    StructuredCellError,
    UpstreamError,
    ValidationError,
)


class MockRequest:
    """Mock FastAPI Request object for testing."""

    def __init__(self, request_id: str = "test-request-123"):
        self.state = type('State', (), {'request_id': request_id})()


class TestDomainErrorExceptions:
    """Test domain exception classes and their error codes."""

    def test_domain_error_base(self):
        """Test base DomainError class."""
        error = DomainError(
            code="TEST_001",
            message="Test error message",
            details={"key": "value"}
        )

        assert error.code == "TEST_001"
        assert error.message == "Test error message"
        assert error.details == {"key": "value"}
        assert str(error) == "Test error message"

    def test_not_found_error(self):
        """Test NotFoundError generates correct error code."""
        error = NotFoundError("resource", "Could not find resource: Invoice", {"resource": "Invoice"})

        assert error.code == "NF_RESOURCE_001"
        assert error.message == "Could not find resource: Invoice"
        assert error.details == {"resource": "Invoice"}

    def test_not_found_error_default_message(self):
        """Test NotFoundError generates default message when none provided."""
        error = NotFoundError("Article")

        assert error.code == "NF_ARTICLE_001"
        assert error.message == "Article not found"
        assert error.details == {}

    def test_validation_error(self):
        """Test ValidationError generates correct error code."""
        error = ValidationError("limit", "must be between 1 and 1000")

        assert error.code == "VAL_LIMIT_001"
        assert error.message == "Validation failed for limit: must be between 1 and 1000"
        assert error.details == {"field": "limit"}

    def test_csv_header_error(self):
        error = CsvHeaderError("nickname")

        assert error.message == 'The header "nickname" does not match any properties in the schema'
        assert error.details == {"header": "nickname"}

    def test_upstream_error_default(self):
        error = UpstreamError()

        assert error.code == "UPSTREAM_001"
        assert error.message == "An unknown error occured. Please try again."

    def test_import_failed_error_sorts_rows(self):
        """Row errors are reported in row order whatever order they settled in."""
        error = ImportFailedError({4: ValueError("late"), 1: StructuredCellError("tags", 1)})

        assert list(error.row_errors) == [1, 4]
        assert error.details == {"failed_rows": [1, 4]}
        assert error.to_errors() == {
            "error1": {"message": "Unable to add row: 1 with error: Error parsing array"},
            "error4": {"message": "Unable to add row: 4 with error: late"},
        }

    def test_import_failed_error_excess(self):
        error = ImportFailedError({row: ValueError("bad") for row in range(1, 10)}, display_limit=3)

        errors = error.to_errors()

        assert list(errors) == ["error1", "error2", "error3", "excess"]
        assert errors["excess"] == {"message": "And 6 more errors"}

    def test_authentication_error_default(self):
        """Test AuthenticationError with default code."""
        error = AuthenticationError("Invalid or expired token")

        assert error.code == "AUTH_001"
        assert error.message == "Invalid or expired token"
        assert error.details == {}

    def test_authorization_error_custom(self):
        """Test AuthorizationError with custom details."""
        error = AuthorizationError(
            "Requires role: admin",
            details={"required_role": "admin", "user_roles": ["editor"]}
        )

        assert error.code == "AUTH_006"
        assert error.details == {"required_role": "admin", "user_roles": ["editor"]}


class TestErrorStatusMap:
    """Test ERROR_STATUS_MAP mapping."""

    def test_not_found_status(self):
        assert ERROR_STATUS_MAP[NotFoundError] == 404

    def test_client_errors_are_400(self):
        for error_type in (
            ValidationError,
            InvalidFilterOperatorError,
            CsvHeaderError,
            StructuredCellError,
            ImportFailedError,
            UpstreamError,
        ):
            assert ERROR_STATUS_MAP[error_type] == 400

    def test_auth_statuses(self):
        assert ERROR_STATUS_MAP[AuthenticationError] == 401
        assert ERROR_STATUS_MAP[AuthorizationError] == 403


class TestDomainErrorHandler:
    """Test domain_error_handler function."""

    @pytest.mark.asyncio
    async def test_not_found_error_response(self):
        """Test NotFoundError returns 404 with structured JSON."""
        error = NotFoundError("Article", details={"id": "999"})
        request = MockRequest(request_id="req-123")

        response = await domain_error_handler(request, error)

        assert isinstance(response, JSONResponse)
        assert response.status_code == 404

        data = json.loads(response.body.decode())

        assert set(data) == {"errors", "meta"}
        error_dict = data["errors"]["error"]
        assert error_dict["code"] == "NF_ARTICLE_001"
        assert error_dict["message"] == "Article not found"
        assert error_dict["details"] == {"id": "999"}

    @pytest.mark.asyncio
    async def test_import_failure_response(self):
        """Test ImportFailedError returns its per-row messages as the errors object."""
        error = ImportFailedError({2: ValueError("bad views")})
        request = MockRequest(request_id="req-456")

        response = await domain_error_handler(request, error)

        assert response.status_code == 400
        data = json.loads(response.body.decode())
        assert data["errors"] == {
            "error2": {"message": "Unable to add row: 2 with error: bad views"}
        }

    @pytest.mark.asyncio
    async def test_response_includes_metadata(self):
        """Test error response includes request_id and timestamp."""
        error = NotFoundError("test_entity")
        request = MockRequest(request_id="test-request-id-12345")

        response = await domain_error_handler(request, error)

        data = json.loads(response.body.decode())

        assert data["meta"]["request_id"] == "test-request-id-12345"
        # Verify timestamp is a valid ISO datetime string
        datetime.fromisoformat(data["meta"]["timestamp"].replace('Z', '+00:00'))

    @pytest.mark.asyncio
    async def test_unknown_domain_error_returns_500(self):
        """Test unknown DomainError subclass returns 500."""

        class CustomDomainError(DomainError):
            """Custom domain error not in status map."""

        error = CustomDomainError("CUSTOM_001", "Custom error message")
        request = MockRequest(request_id="req-custom")

        response = await domain_error_handler(request, error)

        assert response.status_code == 500  # Default for unmapped errors
        data = json.loads(response.body.decode())
        assert data["errors"]["error"]["code"] == "CUSTOM_001"

    @pytest.mark.asyncio
    async def test_error_with_none_request_id(self):
        """Test error response when request has no request_id."""
        error = ValidationError("field", "Invalid field")

        # Create a mock request without request_id in state
        request = type('Request', (), {
            'state': type('State', (), {})()
        })()

        response = await domain_error_handler(request, error)

        data = json.loads(response.body.decode())

        # Should handle missing request_id gracefully
        assert data["meta"]["request_id"] is None
