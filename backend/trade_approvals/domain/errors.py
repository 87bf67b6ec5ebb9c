"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""

    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    http_status = 400


class RuleValidationError(ValidationError):
    """Approval rule definition is malformed"""
    error_code = "RULE_VALIDATION_ERROR"


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    http_status = 404


class RuleNotFoundError(NotFoundError):
    """Approval rule not found"""
    error_code = "RULE_NOT_FOUND"


class ApprovalRequestNotFoundError(NotFoundError):
    """Approval request not found"""
    error_code = "APPROVAL_REQUEST_NOT_FOUND"


class TicketNotFoundError(NotFoundError):
    """Ticket not found"""
    error_code = "TICKET_NOT_FOUND"


# Workflow command errors
class InvalidRoleError(DomainError):
    """Role is not one of the request's required approvers"""
    error_code = "INVALID_ROLE"
    http_status = 400


# Conflict Errors
class ConflictError(DomainError):
    """Resource conflict (e.g., concurrent modification)"""
    error_code = "CONFLICT"
    http_status = 409


class ConcurrencyError(ConflictError):
    """Request is being modified by another caller"""
    error_code = "CONCURRENCY_CONFLICT"


class InvalidStateError(ConflictError):
    """Action not valid for current state"""
    error_code = "INVALID_STATE"


class AlreadyTerminalError(InvalidStateError):
    """Approval request already approved or rejected"""
    error_code = "ALREADY_TERMINAL"


class DuplicateApprovalError(ConflictError):
    """Role already approved this request"""
    error_code = "DUPLICATE_APPROVAL"


class AlreadyExistsError(ConflictError):
    """Resource already exists"""
    error_code = "ALREADY_EXISTS"


class ActiveRequestExistsError(AlreadyExistsError):
    """Ticket already has a pending approval request"""
    error_code = "ACTIVE_REQUEST_EXISTS"
