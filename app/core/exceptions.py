"""Domain exceptions raised by services and mapped to HTTP errors by the endpoints."""
from fastapi import HTTPException, status


class ComplianceAuditError(Exception):
    """Base exception for the compliance audit service."""

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class ValidationError(ComplianceAuditError):
    """Raised when a request references unknown or malformed data."""
    pass


class NotFoundError(ComplianceAuditError):
    """Raised when a requested resource does not exist."""
    pass


class ConflictError(ComplianceAuditError):
    """Raised when an operation conflicts with the current state of a resource."""
    pass


class TransactionFailure(ComplianceAuditError):
    """Raised when a datastore error aborts a transactional workflow."""
    pass


class AIServiceError(ComplianceAuditError):
    """Raised when AI analysis is unavailable or the provider fails."""

    def __init__(self, message: str = "AI analysis failed", unavailable: bool = False):
        self.unavailable = unavailable
        super().__init__(message)


def to_http_exception(exc: ComplianceAuditError) -> HTTPException:
    """Translate a domain exception into the workflow error envelope."""
    if isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ValidationError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(exc, ConflictError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, AIServiceError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE if exc.unavailable else status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail={"success": False, "message": exc.message})
