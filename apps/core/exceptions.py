"""
Standardized error handling for the SafraReport editorial API.

Provides consistent error codes, exception classes, and response formatting.
Every error leaves the API as ``{"message", "code", "request_id"}``.
"""

import logging
import uuid
from enum import Enum
from typing import Any, Dict, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


# =============================================================================
# Error Codes
# =============================================================================

class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Validation errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_ARTICLE_ID = "INVALID_ARTICLE_ID"
    INVALID_COMMENT_ID = "INVALID_COMMENT_ID"
    INVALID_PARAMETERS = "INVALID_PARAMETERS"
    INVALID_TRANSITION = "INVALID_TRANSITION"

    # Authentication/Authorization (401/403)
    AUTHENTICATION_REQUIRED = "AUTHENTICATION_REQUIRED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
    RATE_LIMITED = "RATE_LIMITED"

    # Resource errors (404)
    NOT_FOUND = "NOT_FOUND"
    ARTICLE_NOT_FOUND = "ARTICLE_NOT_FOUND"
    COMMENT_NOT_FOUND = "COMMENT_NOT_FOUND"
    VERSION_NOT_FOUND = "VERSION_NOT_FOUND"

    # Database errors
    DATABASE_ERROR = "DATABASE_ERROR"

    # Server errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Error Response Schema
# =============================================================================

class ErrorResponse:
    """Standardized error response."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None,
    ):
        self.code = code
        self.message = message
        self.field = field
        self.details = details
        self.request_id = request_id or str(uuid.uuid4())

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "message": self.message,
            "code": self.code.value if isinstance(self.code, ErrorCode) else self.code,
            "request_id": self.request_id,
        }
        if self.field:
            result["field"] = self.field
        if self.details:
            result["details"] = self.details
        return result

    def to_response(self, status_code: int = 400) -> Response:
        return Response(self.to_dict(), status=status_code)


# =============================================================================
# Custom Exceptions
# =============================================================================

class EditorialException(APIException):
    """Base exception for editorial API errors."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = ErrorCode.INTERNAL_ERROR
    default_detail = "An error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message or self.default_detail
        self.error_code = code or self.error_code
        self.field = field
        self.error_details = details or {}

        if status_code:
            self.status_code = status_code

        super().__init__(detail=self.message)

    def get_error_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        return ErrorResponse(
            code=self.error_code,
            message=self.message,
            field=self.field,
            details=self.error_details if self.error_details else None,
            request_id=request_id,
        )


class ValidationError(EditorialException):
    """Malformed input."""
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = ErrorCode.VALIDATION_ERROR
    default_detail = "Validation failed"


class InvalidArticleIdError(ValidationError):
    """Article id did not parse as a positive integer."""
    error_code = ErrorCode.INVALID_ARTICLE_ID
    default_detail = "Invalid article ID"


class InvalidTransitionError(EditorialException):
    """Workflow precondition violated by the article's current status."""
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = ErrorCode.INVALID_TRANSITION
    default_detail = "Invalid workflow transition"


class NotFoundError(EditorialException):
    """Resource not found."""
    status_code = status.HTTP_404_NOT_FOUND
    error_code = ErrorCode.NOT_FOUND
    default_detail = "Resource not found"


class UnauthorizedError(EditorialException):
    """Caller lacks the role or ownership the operation requires."""
    status_code = status.HTTP_403_FORBIDDEN
    error_code = ErrorCode.INSUFFICIENT_PERMISSIONS
    default_detail = "You do not have permission to perform this action"


class StorageError(EditorialException):
    """Underlying store failure. The client only ever sees a generic message."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = ErrorCode.DATABASE_ERROR
    default_detail = "A storage error occurred"


# =============================================================================
# Exception Handler
# =============================================================================

GENERIC_SERVER_MESSAGE = "An unexpected error occurred"

DRF_STATUS_CODES = {
    status.HTTP_401_UNAUTHORIZED: ErrorCode.AUTHENTICATION_REQUIRED,
    status.HTTP_403_FORBIDDEN: ErrorCode.PERMISSION_DENIED,
    status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
    status.HTTP_429_TOO_MANY_REQUESTS: ErrorCode.RATE_LIMITED,
}

# Clients need these to re-authenticate or back off
PRESERVED_DRF_HEADERS = ('WWW-Authenticate', 'Retry-After')


def _code_for_drf_status(status_code: int) -> ErrorCode:
    if status_code >= 500:
        return ErrorCode.INTERNAL_ERROR
    return DRF_STATUS_CODES.get(status_code, ErrorCode.VALIDATION_ERROR)


def _describe_drf_payload(data):
    """Split a DRF error payload into (message, details)."""
    if isinstance(data, dict):
        if 'detail' in data:
            return str(data['detail']), None
        return "Validation failed", data
    if isinstance(data, list):
        return (str(data[0]) if data else "Validation failed"), {"errors": data}
    return str(data), None


def get_request_id(request) -> str:
    """Get or generate request ID from request."""
    if hasattr(request, 'request_id'):
        return request.request_id
    return str(uuid.uuid4())


def editorial_exception_handler(exc, context):
    """
    Custom exception handler for the editorial API.

    Converts all exceptions to the standardized error response format.
    """
    request = context.get('request')
    request_id = get_request_id(request) if request else str(uuid.uuid4())

    if isinstance(exc, EditorialException):
        if exc.status_code >= 500:
            logger.error(
                f"API Error: {exc.error_code.value}: {exc.message}",
                exc_info=exc,
                extra={"request_id": request_id, "error_code": exc.error_code.value},
            )
            error_response = ErrorResponse(
                code=exc.error_code,
                message=GENERIC_SERVER_MESSAGE,
                request_id=request_id,
            )
            return error_response.to_response(exc.status_code)

        logger.info(
            f"API Error: {exc.error_code.value}: {exc.message}",
            extra={
                "request_id": request_id,
                "error_code": exc.error_code.value,
                "status_code": exc.status_code,
            }
        )
        return exc.get_error_response(request_id).to_response(exc.status_code)

    if isinstance(exc, DjangoValidationError):
        if hasattr(exc, 'message_dict'):
            details = exc.message_dict
            message = "Validation failed"
        else:
            details = {"errors": exc.messages}
            message = exc.messages[0] if exc.messages else "Validation failed"

        return ErrorResponse(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            details=details,
            request_id=request_id,
        ).to_response(status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, Http404):
        return ErrorResponse(
            code=ErrorCode.NOT_FOUND,
            message=str(exc) if str(exc) else "Resource not found",
            request_id=request_id,
        ).to_response(status.HTTP_404_NOT_FOUND)

    if isinstance(exc, DatabaseError):
        logger.exception(
            f"Database error: {type(exc).__name__}",
            extra={"request_id": request_id},
        )
        return ErrorResponse(
            code=ErrorCode.DATABASE_ERROR,
            message=GENERIC_SERVER_MESSAGE,
            request_id=request_id,
        ).to_response(status.HTTP_500_INTERNAL_SERVER_ERROR)

    # DRF's own exceptions (auth, permissions, throttling, serializer errors)
    response = drf_exception_handler(exc, context)

    if response is not None:
        message, details = _describe_drf_payload(response.data)
        wrapped = ErrorResponse(
            code=_code_for_drf_status(response.status_code),
            message=message,
            details=details,
            request_id=request_id,
        ).to_response(response.status_code)
        for header in PRESERVED_DRF_HEADERS:
            if header in response:
                wrapped[header] = response[header]
        return wrapped

    # Unhandled exception - log and return generic error
    logger.exception(
        f"Unhandled exception: {type(exc).__name__}",
        extra={
            "request_id": request_id,
            "exception_type": type(exc).__name__,
        }
    )

    return ErrorResponse(
        code=ErrorCode.INTERNAL_ERROR,
        message=GENERIC_SERVER_MESSAGE,
        request_id=request_id,
    ).to_response(status.HTTP_500_INTERNAL_SERVER_ERROR)


# =============================================================================
# Response Helpers
# =============================================================================

def success_response(
    data: Any = None,
    message: Optional[str] = None,
    status_code: int = 200,
    **extra: Any,
) -> Response:
    """
    Create a standardized success response.

    Produces ``{"success": true, "message"?, "data"?, **extra}``.
    """
    response_data: Dict[str, Any] = {'success': True}

    if message:
        response_data['message'] = message

    if data is not None:
        response_data['data'] = data

    response_data.update(extra)

    return Response(response_data, status=status_code)


def created_response(data: Any = None, message: str = "Created successfully") -> Response:
    """Create a 201 Created response."""
    return success_response(data=data, message=message, status_code=201)
