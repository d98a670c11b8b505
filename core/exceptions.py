"""
Custom Exception Classes for the VidShare API.

Every failure a handler can produce is one of a small set of exception types,
each tied to a fixed HTTP status. Handlers and services raise them; the
translation boundary in `core.middleware` turns them into the uniform error
envelope `{statusCode, message, success, errors}`.

Taxonomy:
- validation (400): missing or malformed fields and identifiers.
- authentication (401): no viewer identity or an invalid token.
- forbidden (403): caller is not the owner, or a self-action is disallowed.
- not found (404): well-formed identifier with no matching row.
- internal (500): storage or asset-store failures. These are never retried and
  never translated into domain-specific kinds.
"""

from typing import Any, Dict, List, Optional


class VideoShareError(Exception):
    """Base exception class for the VidShare API"""

    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        errors: Optional[List[Any]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.errors = errors or []
        self.details = details or {}
        super().__init__(self.message)

    def to_envelope(self) -> Dict[str, Any]:
        return error_envelope(self.status_code, self.message, self.errors)


class ValidationError(VideoShareError):
    """Raised when input validation fails"""

    status_code = 400
    error_code = "VALIDATION_ERROR"


class InvalidIdentifierError(ValidationError):
    """Raised when an identifier is missing or not in the expected format"""

    def __init__(self, field: str, value: Any = None):
        super().__init__(
            f"Invalid {field}",
            errors=[{"field": field, "reason": "malformed identifier"}],
            details={"field": field, "value": str(value)},
        )
        self.field = field


class AuthenticationError(VideoShareError):
    """Raised when the request carries no valid viewer identity"""

    status_code = 401
    error_code = "AUTHENTICATION_ERROR"


class ForbiddenError(VideoShareError):
    """Raised when the caller may not perform the action"""

    status_code = 403
    error_code = "FORBIDDEN"


class NotFoundError(VideoShareError):
    """Raised when a well-formed identifier matches nothing"""

    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Any = None):
        super().__init__(
            f"{resource} not found",
            details={"resource": resource, "id": str(identifier)},
        )
        self.resource = resource


class AssetStoreError(VideoShareError):
    """Raised when the binary asset store rejects or fails an operation"""

    status_code = 500
    error_code = "ASSET_STORE_ERROR"

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Asset store operation '{operation}' failed",
            details={"operation": operation, "reason": reason},
        )
        self.operation = operation
        self.reason = reason


class DatabaseError(VideoShareError):
    """Raised when database operations fail"""

    status_code = 500
    error_code = "DATABASE_ERROR"

    def __init__(self, operation: str, reason: str):
        super().__init__(
            "Internal server error",
            details={"operation": operation, "reason": reason},
        )


def error_envelope(
    status_code: int, message: str, errors: Optional[List[Any]] = None
) -> Dict[str, Any]:
    """Build the uniform error body"""
    return {
        "statusCode": status_code,
        "message": message,
        "success": False,
        "errors": list(errors or []),
    }
