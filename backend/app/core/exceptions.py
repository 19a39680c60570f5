"""
Custom exception hierarchy for structured error handling.

WHY: Custom exceptions provide:
1. Consistent error handling across the API
2. HTTP status code mapping for FastAPI
3. Structured error responses with contextual data
4. No sensitive data leaks in error messages

Workflow orchestration splits these into two groups:
- Fatal (raised, abort the bot personality workflow): ValidationError,
  NotFoundError, DependencyError
- Captured (recorded in the phase trace, never raised out of the workflow):
  ExternalServiceError / N8nError, PersistenceWarning
"""

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base exception class for all application exceptions.

    All custom exceptions should inherit from this class.
    """

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        """
        Initialize exception with message and context.

        Args:
            message: Human-readable error message
            status_code: HTTP status code (overrides class default)
            **context: Additional context for debugging (filtered in to_dict)
        """
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize exception to dictionary for JSON response.

        Returns:
            Dictionary with error details (sensitive fields filtered out)
        """
        sensitive_fields = {"password", "token", "secret", "key", "api_key"}
        filtered_context = {
            k: v for k, v in self.context.items() if k.lower() not in sensitive_fields
        }

        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": filtered_context if filtered_context else None,
        }


# ============================================================================
# Authentication Exceptions
# ============================================================================


class AuthenticationError(AppException):
    """
    Raised when authentication fails.

    HTTP Status: 401 Unauthorized
    """

    status_code = 401
    default_message = "Authentication failed"


class TokenExpiredError(AuthenticationError):
    """Raised when JWT token has expired."""

    default_message = "Token has expired"


class TokenInvalidError(AuthenticationError):
    """Raised when JWT token is malformed or has invalid signature."""

    default_message = "Token is invalid"


# ============================================================================
# Validation Exceptions
# ============================================================================


class ValidationError(AppException):
    """
    Raised when input validation fails.

    WHY: Missing or malformed workflow references are rejected before any
    persistence is attempted.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "Validation failed"


# ============================================================================
# Resource Exceptions
# ============================================================================


class ResourceNotFoundError(AppException):
    """
    Raised when a requested resource doesn't exist.

    HTTP Status: 404 Not Found
    """

    status_code = 404
    default_message = "Resource not found"


# The orchestration layer speaks of NotFoundError; both names are the same class.
NotFoundError = ResourceNotFoundError


class MessagingSessionNotFoundError(ResourceNotFoundError):
    """Raised when a messaging session doesn't exist."""

    default_message = "Messaging session not found"


class KnowledgeBaseItemNotFoundError(ResourceNotFoundError):
    """Raised when a knowledge base item doesn't exist."""

    default_message = "Knowledge base item not found"


class BotPersonalityNotFoundError(ResourceNotFoundError):
    """Raised when a bot personality doesn't exist."""

    default_message = "Bot personality not found"


# ============================================================================
# Business Logic Exceptions
# ============================================================================


class BusinessRuleViolation(AppException):
    """
    Raised when a business rule is violated.

    HTTP Status: 422 Unprocessable Entity
    """

    status_code = 422
    default_message = "Business rule violation"


class InvalidStateTransitionError(BusinessRuleViolation):
    """
    Raised when an invalid state transition is attempted.

    WHY: A cancelled bot personality cannot be cancelled again.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "Invalid state transition"


# ============================================================================
# External Service Exceptions
# ============================================================================


class ExternalServiceError(AppException):
    """
    Base exception for external service failures.

    WHY: External API failures should return 502 Bad Gateway, indicating
    the problem is with an upstream service, not our application.

    HTTP Status: 502 Bad Gateway
    """

    status_code = 502
    default_message = "External service error"


class N8nError(ExternalServiceError):
    """
    Raised when n8n API calls fail.

    WHY: n8n activation failures are retried through the task queue and
    never abort a bot personality workflow.

    HTTP Status: 502 Bad Gateway
    """

    default_message = "Workflow automation error"


class SlackNotificationError(ExternalServiceError):
    """
    Raised when Slack webhook calls fail.

    WHY: Notifications are best-effort delivery and must not block
    the main operation.

    HTTP Status: 502 Bad Gateway
    """

    default_message = "Slack notification error"


# ============================================================================
# Database Exceptions
# ============================================================================


class DatabaseError(AppException):
    """
    Raised when database operations fail.

    HTTP Status: 500 Internal Server Error
    """

    status_code = 500
    default_message = "Database error"


class DependencyError(DatabaseError):
    """
    Raised when the Phase 1 transaction fails for a reason other than
    validation or a missing reference.

    The transaction is rolled back entirely before this is raised.

    HTTP Status: 500 Internal Server Error
    """

    default_message = "Bot personality workflow transaction failed"


class PersistenceWarning(DatabaseError):
    """
    A non-fatal persistence failure after Phase 1 committed.

    Raised internally by the status update and configuration cache push,
    then captured into the phase trace. Never escapes the orchestrator.
    """

    default_message = "Persistence step failed"


# ============================================================================
# Audit Log Exceptions
# ============================================================================


class AuditLogImmutableError(AppException):
    """
    Raised when attempting to update or delete an audit log.

    HTTP Status: 403 Forbidden
    """

    status_code = 403
    default_message = "Audit logs are immutable and cannot be modified"
