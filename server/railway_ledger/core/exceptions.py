"""Ledger exceptions carrying Problem Details style payloads."""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Stable error codes surfaced to callers of the coordinator."""
    INVALID_DATE = "INVALID_DATE"
    INVALID_REQUEST = "INVALID_REQUEST"
    SERVICE_NOT_FOUND = "SERVICE_NOT_FOUND"
    NOT_FOUND = "NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    ALREADY_CANCELLED = "ALREADY_CANCELLED"
    CONFLICT = "CONFLICT"
    PAYMENT_DECLINED = "PAYMENT_DECLINED"
    CORRUPT_PERSISTED_STATE = "CORRUPT_PERSISTED_STATE"
    PERSISTENCE_WRITE_FAILURE = "PERSISTENCE_WRITE_FAILURE"


class LedgerError(Exception):
    """
    Base exception for ledger errors.

    Mirrors the RFC 9457 Problem Details shape so that any layer can render
    a short, specific message without knowing the concrete error type.
    """

    def __init__(
        self,
        code: ErrorCode,
        title: str,
        detail: Optional[str] = None,
        extensions: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize the ledger error.

        Args:
            code: Stable application error code
            title: Short, human-readable summary of the problem type
            detail: Human-readable explanation specific to this occurrence
            extensions: Additional problem-specific information
        """
        self.code = code
        self.title = title
        self.detail = detail
        self.extensions = extensions or {}

        self.problem_details = {
            "type": f"about:blank#{code.value.lower()}",
            "title": self.title,
            "code": self.code.value,
        }

        if self.detail:
            self.problem_details["detail"] = self.detail

        self.problem_details.update(self.extensions)

        super().__init__(detail or title)


class InvalidDateError(LedgerError):
    """Exception for a date string that is not MM/DD/YYYY."""

    def __init__(self, value: str):
        super().__init__(
            code=ErrorCode.INVALID_DATE,
            title="Invalid Date",
            detail=f"Date '{value}' is not a valid MM/DD/YYYY date",
            extensions={"value": value},
        )


class ValidationError(LedgerError):
    """Exception for request validation errors."""

    def __init__(
        self,
        detail: str = "The request data failed validation",
        errors: Optional[Dict[str, Any]] = None,
    ):
        extensions = {}
        if errors:
            extensions["errors"] = errors

        super().__init__(
            code=ErrorCode.INVALID_REQUEST,
            title="Validation Error",
            detail=detail,
            extensions=extensions,
        )


class NotFoundError(LedgerError):
    """Exception for resource not found errors."""

    def __init__(
        self,
        resource_type: str = "booking",
        resource_id: Optional[str] = None,
        detail: Optional[str] = None,
        code: ErrorCode = ErrorCode.NOT_FOUND,
    ):
        if not detail:
            detail = f"The requested {resource_type}"
            if resource_id:
                detail += f" '{resource_id}'"
            detail += " could not be found"

        extensions = {
            "resource_type": resource_type,
        }
        if resource_id:
            extensions["resource_id"] = resource_id

        super().__init__(
            code=code,
            title="Resource Not Found",
            detail=detail,
            extensions=extensions,
        )


class ServiceNotFoundError(NotFoundError):
    """Exception when a service id does not resolve to a catalog entry."""

    def __init__(self, service_id: str):
        super().__init__(
            resource_type="service",
            resource_id=service_id,
            code=ErrorCode.SERVICE_NOT_FOUND,
        )


class ConflictError(LedgerError):
    """Exception for resource conflict errors."""

    def __init__(
        self,
        detail: str = "The request conflicts with the current state of the resource",
        conflicting_resource: Optional[Dict[str, Any]] = None,
    ):
        extensions = {}
        if conflicting_resource:
            extensions["conflicting_resource"] = conflicting_resource

        super().__init__(
            code=ErrorCode.CONFLICT,
            title="Resource Conflict",
            detail=detail,
            extensions=extensions,
        )


class InvalidTransitionError(LedgerError):
    """Exception for a booking status change the state machine forbids."""

    def __init__(self, reference: str, current: str, requested: str):
        super().__init__(
            code=ErrorCode.INVALID_TRANSITION,
            title="Invalid Status Transition",
            detail=f"Booking {reference} cannot move from {current} to {requested}",
            extensions={
                "reference": reference,
                "current_status": current,
                "requested_status": requested,
            },
        )


class AlreadyCancelledError(LedgerError):
    """Exception when cancelling a booking that is already cancelled."""

    def __init__(self, reference: str):
        super().__init__(
            code=ErrorCode.ALREADY_CANCELLED,
            title="Already Cancelled",
            detail=f"Booking {reference} is already cancelled",
            extensions={"reference": reference},
        )


class PaymentDeclinedError(LedgerError):
    """Exception when the payment capability declines a charge."""

    def __init__(self, reference: str, amount: Any):
        super().__init__(
            code=ErrorCode.PAYMENT_DECLINED,
            title="Payment Declined",
            detail=f"Payment of {amount} for booking {reference} was declined; ticket not issued",
            extensions={"reference": reference, "amount": str(amount)},
        )


class CorruptPersistedStateError(LedgerError):
    """Exception for persisted data that cannot be parsed."""

    def __init__(self, source: str, detail: str):
        super().__init__(
            code=ErrorCode.CORRUPT_PERSISTED_STATE,
            title="Corrupt Persisted State",
            detail=detail,
            extensions={"source": source},
        )


class PersistenceWriteError(LedgerError):
    """Exception when a snapshot, counter or log write fails."""

    def __init__(self, target: str, detail: str):
        super().__init__(
            code=ErrorCode.PERSISTENCE_WRITE_FAILURE,
            title="Persistence Write Failure",
            detail=detail,
            extensions={"target": target},
        )
