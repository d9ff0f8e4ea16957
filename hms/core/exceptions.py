from typing import Dict, Any, List, Optional
from fastapi import status
import logging

logger = logging.getLogger(__name__)


class BaseCustomException(Exception):
    """Base class for custom exceptions"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
        errors: Optional[List[Dict[str, str]]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.error_code = error_code
        self.errors = errors
        super().__init__(self.message)


class ValidationError(BaseCustomException):
    """Malformed or missing request fields"""

    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
        errors: Optional[List[Dict[str, str]]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
            error_code=error_code or "VALIDATION_ERROR",
            errors=errors
        )


class AuthenticationError(BaseCustomException):
    """Missing credential or unknown principal"""

    def __init__(
        self,
        message: str = "Authentication required",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            details=details,
            error_code=error_code or "AUTHENTICATION_ERROR"
        )


class InvalidCredentialError(AuthenticationError):
    """Bad signature, malformed token or password mismatch"""

    def __init__(self, message: str = "Invalid token.", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details, error_code="INVALID_CREDENTIAL")


class CredentialExpiredError(AuthenticationError):
    """Token past its expiry"""

    def __init__(self, message: str = "Token expired.", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details, error_code="CREDENTIAL_EXPIRED")


class AuthorizationError(BaseCustomException):
    """Role or ownership check failed"""

    def __init__(
        self,
        message: str = "Access denied",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            details=details,
            error_code=error_code or "AUTHORIZATION_ERROR"
        )


class AccountInactiveError(AuthorizationError):
    """Principal exists but has been deactivated"""

    def __init__(self, message: str = "Account is inactive.", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details, error_code="ACCOUNT_INACTIVE")


class NotFoundError(BaseCustomException):
    """Exception for resource not found errors"""

    def __init__(
        self,
        message: str = "Resource not found",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details=details,
            error_code=error_code or "NOT_FOUND_ERROR"
        )


class ConflictError(BaseCustomException):
    """Uniqueness violation"""

    def __init__(
        self,
        message: str = "Resource conflict",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
            error_code=error_code or "CONFLICT_ERROR"
        )


class InvalidTargetError(BaseCustomException):
    """Referenced entity exists but fails a business precondition"""

    def __init__(
        self,
        message: str = "Invalid target",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
            error_code=error_code or "INVALID_TARGET"
        )


class DatabaseError(BaseCustomException):
    """Exception for database errors"""

    def __init__(
        self,
        message: str = "Database operation failed",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
            error_code=error_code or "DATABASE_ERROR"
        )


class ExternalServiceError(BaseCustomException):
    """Object storage or other upstream failure"""

    def __init__(
        self,
        message: str = "External service error",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
            error_code=error_code or "EXTERNAL_SERVICE_ERROR"
        )


def create_error_response(
    message: str,
    errors: Optional[List[Dict[str, str]]] = None,
    error_code: Optional[str] = None
) -> Dict[str, Any]:
    """Create the standard failure envelope"""
    response: Dict[str, Any] = {"success": False, "message": message}

    if error_code:
        response["error_code"] = error_code

    if errors:
        response["errors"] = errors

    return response


def format_validation_errors(raw_errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Flatten pydantic error dicts into field/message pairs"""
    formatted = []
    for error in raw_errors:
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "form")]
        formatted.append({
            "field": ".".join(location) or "request",
            "message": error.get("msg", "Invalid value")
        })
    return formatted


def handle_database_error(error: Exception, operation: str = "database operation") -> BaseCustomException:
    """Classify a driver error raised while writing"""
    logger.error(f"Database error during {operation}: {error}")

    if "unique" in str(error).lower() or "duplicate" in str(error).lower():
        return ConflictError(
            message="A record with the same unique value already exists",
            details={"operation": operation},
            error_code="UNIQUE_VIOLATION"
        )

    if "foreign key" in str(error).lower():
        return ConflictError(
            message="Record is still referenced by other records",
            details={"operation": operation},
            error_code="REFERENCE_VIOLATION"
        )

    return DatabaseError(
        message="Database operation failed",
        details={"operation": operation},
        error_code="DATABASE_OPERATION_ERROR"
    )


def handle_external_service_error(
    error: Exception,
    service_name: str,
    operation: str = "request"
) -> ExternalServiceError:
    """Handle external service errors"""
    logger.error(f"External service error for {service_name}: {error}")

    return ExternalServiceError(
        message=f"External service {service_name} failed during {operation}",
        details={
            "service_name": service_name,
            "operation": operation
        },
        error_code="UPSTREAM_FAILURE"
    )
