# 📄 File: app/shared/core/exceptions.py
# 🧭 Purpose (Layman Explanation):
# This file defines all the special error types the subscription engine uses to say
# what went wrong (missing plan, subscription already active, database trouble) in a clear way.
# 🧪 Purpose (Technical Summary):
# Custom exception hierarchy providing specific error types with HTTP status codes,
# error details, and proper serialization for API responses and error handling.
# 🔗 Dependencies:
# FastAPI HTTPException, typing, HTTP status constants
# 🔄 Connected Modules / Calls From:
# Lifecycle services, repositories, unit of work, scheduler, API exception handlers

from typing import Any, Dict, List, Optional
from fastapi import HTTPException, status


class SubscriptionEngineException(Exception):
    """
    Base exception class for the subscription engine.
    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.error_code = error_code or self.__class__.__name__.upper()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
                "status_code": self.status_code
            }
        }

    def to_http_exception(self) -> HTTPException:
        """Convert to FastAPI HTTPException."""
        return HTTPException(
            status_code=self.status_code,
            detail=self.to_dict()["error"]
        )


# =============================================================================
# VALIDATION & LOOKUP EXCEPTIONS
# =============================================================================

class ValidationError(SubscriptionEngineException):
    """
    Exception raised for data validation failures.
    Used for malformed durations, usage ceilings, discounts, pagination, etc.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        value: Optional[Any] = None,
        constraint: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}

        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        if constraint:
            details["constraint"] = constraint

        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
            error_code="VALIDATION_ERROR"
        )


class NotFoundError(SubscriptionEngineException):
    """
    Exception raised when requested resource is not found.
    Used for missing contributors, packages and subscriptions.
    """

    def __init__(
        self,
        message: str = "Resource not found",
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}

        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id

        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details=details,
            error_code="NOT_FOUND"
        )


# =============================================================================
# BUSINESS LOGIC EXCEPTIONS
# =============================================================================

class ConflictError(SubscriptionEngineException):
    """
    Exception raised when an operation conflicts with the current state.
    Used for an already active subscription, inactive packages, double payment,
    double cancellation and illegal status transitions.
    """

    def __init__(
        self,
        message: str = "Operation conflicts with current state",
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        current_state: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}

        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id
        if current_state:
            details["current_state"] = current_state

        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=details,
            error_code="CONFLICT"
        )


class SchedulerError(SubscriptionEngineException):
    """
    Exception raised for scheduler misuse.
    Used for unknown job names and invalid cadences.
    """

    def __init__(
        self,
        message: str = "Scheduler error",
        job_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}

        if job_name:
            details["job_name"] = job_name

        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
            error_code="SCHEDULER_ERROR"
        )


# =============================================================================
# INFRASTRUCTURE EXCEPTIONS
# =============================================================================

class DatabaseError(SubscriptionEngineException):
    """
    Exception raised for database operation failures.
    Used for connection issues, query failures, etc.
    """

    def __init__(
        self,
        message: str = "Database error",
        operation: Optional[str] = None,
        table: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}

        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table

        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
            error_code="DATABASE_ERROR"
        )


class TransactionError(SubscriptionEngineException):
    """
    Exception raised when a multi-entity write fails.

    On a transactional backend everything was rolled back. On a sequential
    backend ``partial`` is True: some steps may have been applied and callers
    must re-fetch state before retrying.
    """

    def __init__(
        self,
        message: str = "Database transaction failed",
        operation: Optional[str] = None,
        partial: bool = False,
        failed_compensations: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}

        if operation:
            details["operation"] = operation
        details["partial"] = partial
        if failed_compensations:
            details["failed_compensations"] = failed_compensations

        self.partial = partial
        self.failed_compensations = failed_compensations or []

        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
            error_code="TRANSACTION_ERROR"
        )
