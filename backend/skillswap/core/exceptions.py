# backend/skillswap/core/exceptions.py
"""
Domain-specific exceptions for the SkillSwap session engine.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
Every exception carries a machine-readable ``code`` and a ``details``
mapping so callers can render an actionable message without
re-deriving the cause.
"""

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }

    def to_http_exception(self) -> HTTPException:
        """Convert to an HTTPException using the class status code."""
        return HTTPException(status_code=self.status_code, detail=self.to_dict())


class ValidationException(DomainException):
    """Raised when input or a business rule fails validation."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class AuthorizationException(ValidationException):
    """Raised when the actor may not perform the requested transition."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(
        self,
        message: str = "You do not have access to this session",
        *,
        actor_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> None:
        details: Dict[str, Any] = {}
        if actor_id:
            details["actor_id"] = actor_id
        if session_id:
            details["session_id"] = session_id
        super().__init__(message=message, code="NOT_AUTHORIZED", details=details)


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class SessionStateException(ValidationException):
    """Raised when a transition is not legal from the session's current status."""

    def __init__(self, session_id: str, current_status: str, attempted: str, message: str) -> None:
        super().__init__(
            message=message,
            code="INVALID_SESSION_STATE",
            details={
                "session_id": session_id,
                "current_status": current_status,
                "attempted": attempted,
            },
        )


class CancellationWindowException(ValidationException):
    """Raised when an accepted session is cancelled inside the cancellation window."""

    def __init__(self, session_id: str, required_hours: int, hours_until_session: float) -> None:
        super().__init__(
            message=(
                f"Cannot cancel confirmed session with less than {required_hours} hours notice"
            ),
            code="CANCELLATION_WINDOW",
            details={
                "session_id": session_id,
                "required_hours": required_hours,
                "hours_until_session": round(max(0.0, hours_until_session), 2),
            },
        )


class SchedulingConflictException(ConflictException):
    """Raised when a proposed interval overlaps a participant's active sessions."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        requester_conflicts: Optional[List[Dict[str, Any]]] = None,
        provider_conflicts: Optional[List[Dict[str, Any]]] = None,
        conflict_scope: Optional[str] = None,
    ) -> None:
        details: Dict[str, Any] = {
            "requester_conflicts": requester_conflicts or [],
            "provider_conflicts": provider_conflicts or [],
        }
        if conflict_scope:
            details["conflict_scope"] = conflict_scope
        super().__init__(
            message=message or "This time slot conflicts with an existing session",
            code="SCHEDULING_CONFLICT",
            details=details,
        )

    @property
    def requester_conflicts(self) -> List[Dict[str, Any]]:
        return list(self.details.get("requester_conflicts", []))

    @property
    def provider_conflicts(self) -> List[Dict[str, Any]]:
        return list(self.details.get("provider_conflicts", []))


class ConcurrentModificationException(ConflictException):
    """Raised when a session changed underneath the current operation."""

    def __init__(self, session_id: Optional[str] = None) -> None:
        super().__init__(
            message="The session was modified by another request. Please reload and retry.",
            code="CONCURRENT_MODIFICATION",
            details={"session_id": session_id} if session_id else {},
        )


class LockTimeoutException(ConflictException):
    """Raised when a participant lock cannot be acquired in time."""

    def __init__(self, keys: List[str], timeout_s: float) -> None:
        super().__init__(
            message="Another booking for these participants is in progress. Please retry.",
            code="LOCK_TIMEOUT",
            details={"lock_keys": keys, "timeout_seconds": timeout_s},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
