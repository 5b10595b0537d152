"""Errors raised by the booking helpers; `app.main` turns them into JSON error responses."""

from typing import Optional, Dict, Any

from app.utils.availability import AvailabilityResult, RejectionReason


class BookingError(Exception):
    """Base exception for service booking errors."""

    status_code = 400

    def __init__(
        self,
        message: str,
        code: str = "BOOKING_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(BookingError):
    status_code = 404

    def __init__(self, what: str, ident=None):
        super().__init__(
            message=f"{what} not found",
            code="NOT_FOUND",
            details={"id": str(ident)} if ident is not None else None,
        )


class PermissionDeniedError(BookingError):
    status_code = 403

    def __init__(self, message: str):
        super().__init__(message=message, code="FORBIDDEN")


class ServiceInactiveError(BookingError):
    def __init__(self, service_id):
        super().__init__(
            message="This service is not currently available",
            code="SERVICE_INACTIVE",
            details={"service_id": str(service_id)},
        )


class ReservationInvalidError(BookingError):
    def __init__(self, message: str):
        super().__init__(message=message, code="RESERVATION_INVALID")


class BookingRejectedError(BookingError):
    """A booking request failed one of the admission rules."""

    def __init__(self, result: AvailabilityResult):
        self.result = result
        details = {"available": False}
        if result.spots_left is not None:
            details["spots_left"] = result.spots_left
        super().__init__(
            message=result.message or "Not available",
            code=result.reason.value if result.reason else "NOT_AVAILABLE",
            details=details,
        )


class SlotUnavailableError(BookingRejectedError):
    """
    The slot filled up between validation and commit. Retryable: the caller
    may ask again and will see the fresh count.
    """

    status_code = 409

    def __init__(self, spots_left: Optional[int] = None):
        super().__init__(
            AvailabilityResult.reject(
                RejectionReason.SLOT_TAKEN,
                "This time slot is no longer available, please try again",
                spots_left=spots_left,
            )
        )
        self.details["retryable"] = True


class InvalidTransitionError(BookingError):
    status_code = 409

    def __init__(self, current, target):
        super().__init__(
            message=f"Cannot move a booking from {current.value} to {target.value}",
            code="INVALID_TRANSITION",
            details={"current": current.value, "target": target.value},
        )
