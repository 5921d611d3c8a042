"""
Domain exceptions for the reservation core.

Services raise these; routers convert them with ``to_http_exception()`` so the
booking UI can tell a full slot from a closed one or an invalid pax count.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainError(Exception):
    """Base exception for all domain errors."""

    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR

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

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.http_status,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationError(DomainError):
    """Raised when request data breaks a business rule before any write."""

    http_status = status.HTTP_400_BAD_REQUEST


class NotFoundError(DomainError):
    """Unknown reservation, slot, course or customer token."""

    http_status = status.HTTP_404_NOT_FOUND


class CapacityExceededError(DomainError):
    """The slot is full or the booking lost the race for the last seats."""

    http_status = status.HTTP_409_CONFLICT

    def __init__(self, slot_id: str, requested: int, available: int) -> None:
        super().__init__(
            f"Not enough availability. Only {max(available, 0)} spots available.",
            details={
                "constraint": "full",
                "slotId": slot_id,
                "requestedPax": requested,
                "availablePax": max(available, 0),
            },
        )


class OperatingHoursClosedError(DomainError):
    """Slot time is outside the active-hours allow-list, holiday mode is on, or the slot is closed."""

    http_status = status.HTTP_409_CONFLICT

    def __init__(self, message: str, reason: str, **details: Any) -> None:
        super().__init__(message, details={"constraint": "closed", "reason": reason, **details})


class InvalidTransitionError(DomainError):
    http_status = status.HTTP_409_CONFLICT

    def __init__(self, reservation_id: str, current: str, target: str) -> None:
        super().__init__(
            f"Cannot move reservation from {current} to {target}",
            details={"reservationId": reservation_id, "from": current, "to": target},
        )


class ExternalServiceError(DomainError):
    """Payment gateway or email provider failed or timed out."""

    def __init__(self, service: str, message: str, retryable: bool = True) -> None:
        self.service = service
        self.retryable = retryable
        super().__init__(message, details={"service": service, "retryable": retryable})

    @property
    def http_status(self) -> int:  # type: ignore[override]
        if self.retryable:
            return status.HTTP_503_SERVICE_UNAVAILABLE
        return status.HTTP_502_BAD_GATEWAY
