"""
Custom exceptions for the CityPulse ticketing service.
"""

from typing import Any, Dict, Optional, List
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for the platform."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    DUPLICATE_RESOURCE = "DUPLICATE_RESOURCE"

    # Booking errors
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    EVENT_NOT_BOOKABLE = "EVENT_NOT_BOOKABLE"
    ALREADY_CANCELLED = "ALREADY_CANCELLED"
    EVENT_ALREADY_STARTED = "EVENT_ALREADY_STARTED"
    NOT_CANCELLABLE = "NOT_CANCELLABLE"

    # Coupon errors
    INVALID_COUPON = "INVALID_COUPON"
    COUPON_EXPIRED = "COUPON_EXPIRED"
    USAGE_LIMIT_REACHED = "USAGE_LIMIT_REACHED"
    COUPON_NOT_VALID_FOR_EVENT = "COUPON_NOT_VALID_FOR_EVENT"
    DUPLICATE_COUPON_CODE = "DUPLICATE_COUPON_CODE"

    # Event errors
    INVALID_EVENT_STATE = "INVALID_EVENT_STATE"

    # External service errors
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    EMAIL_SERVICE_ERROR = "EMAIL_SERVICE_ERROR"


class CityPulseError(Exception):
    """Base exception class for the platform."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.suggestions = suggestions or []
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        result = {
            "error_code": self.error_code.value,
            "message": self.message,
        }

        if self.details:
            result["details"] = self.details

        if self.suggestions:
            result["suggestions"] = self.suggestions

        return result


class ValidationError(CityPulseError):
    """Exception raised for validation errors."""

    def __init__(self, message: str, field_errors: Optional[Dict[str, List[str]]] = None, **kwargs):
        details = kwargs.pop("details", None)
        super().__init__(
            message,
            error_code=ErrorCode.VALIDATION_ERROR,
            details={"field_errors": field_errors} if field_errors else details,
            **kwargs
        )
        self.field_errors = field_errors or {}


class NotFoundError(CityPulseError):
    """Base exception for resource not found errors."""

    def __init__(self, message: str, resource_type: Optional[str] = None, resource_id: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id} if resource_type else None,
            **kwargs
        )


class EventNotFoundError(NotFoundError):
    """Exception raised when an event is not found."""

    def __init__(self, event_id: str, **kwargs):
        super().__init__(
            f"Event {event_id} not found",
            resource_type="event",
            resource_id=str(event_id),
            suggestions=["Check the event ID", "Browse available events"],
            **kwargs
        )


class BookingNotFoundError(NotFoundError):
    """Exception raised when a booking is not found."""

    def __init__(self, booking_id: str, **kwargs):
        super().__init__(
            f"Booking {booking_id} not found",
            resource_type="booking",
            resource_id=str(booking_id),
            suggestions=["Check the booking ID", "View your bookings"],
            **kwargs
        )


class CouponNotFoundError(NotFoundError):
    """Exception raised when a coupon is not found."""

    def __init__(self, coupon_id: str, **kwargs):
        super().__init__(
            f"Coupon {coupon_id} not found",
            resource_type="coupon",
            resource_id=str(coupon_id),
            **kwargs
        )


class PrincipalNotFoundError(NotFoundError):
    """Exception raised when a user or organizer account is not found."""

    def __init__(self, principal_id: str, kind: str = "principal", **kwargs):
        super().__init__(
            f"{kind.capitalize()} {principal_id} not found",
            resource_type=kind,
            resource_id=str(principal_id),
            **kwargs
        )


class NotificationNotFoundError(NotFoundError):
    """Exception raised when a notification is not found."""

    def __init__(self, notification_id: str, **kwargs):
        super().__init__(
            f"Notification {notification_id} not found",
            resource_type="notification",
            resource_id=str(notification_id),
            **kwargs
        )


class ReviewNotFoundError(NotFoundError):
    """Exception raised when a review is not found."""

    def __init__(self, review_id: str, **kwargs):
        super().__init__(
            f"Review {review_id} not found",
            resource_type="review",
            resource_id=str(review_id),
            **kwargs
        )


class AuthenticationError(CityPulseError):
    """Exception raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed", **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.UNAUTHORIZED,
            suggestions=["Check your credentials", "Login again"],
            **kwargs
        )


class AuthorizationError(CityPulseError):
    """Exception raised when the caller does not own the resource it acts on."""

    def __init__(
        self,
        message: str = "Not authorized",
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        action: Optional[str] = None,
        **kwargs
    ):
        details = None
        if resource_type:
            details = {"resource_type": resource_type, "resource_id": resource_id, "action": action}
        super().__init__(
            message,
            error_code=ErrorCode.FORBIDDEN,
            details=details,
            **kwargs
        )


class DuplicateResourceError(CityPulseError):
    """Exception raised when a unique field is already taken."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, error_code=kwargs.pop("error_code", ErrorCode.DUPLICATE_RESOURCE), **kwargs)


class BusinessLogicError(CityPulseError):
    """Base exception for business logic violations."""
    pass


class CapacityExceededError(BusinessLogicError):
    """Exception raised when an event cannot seat the requested tickets."""

    def __init__(self, requested: int, available: int, event_id: Optional[str] = None, **kwargs):
        available = max(available, 0)
        super().__init__(
            f"Only {available} seats available",
            error_code=ErrorCode.CAPACITY_EXCEEDED,
            details={"requested": requested, "available": available, "event_id": event_id},
            suggestions=["Try booking fewer tickets", "Check similar events"],
            **kwargs
        )
        self.requested = requested
        self.available = available


class EventNotBookableError(BusinessLogicError):
    """Exception raised when an event is not open for bookings."""

    def __init__(self, event_id: str, status: str, **kwargs):
        super().__init__(
            f"Event {event_id} is not open for booking (status: {status})",
            error_code=ErrorCode.EVENT_NOT_BOOKABLE,
            details={"event_id": str(event_id), "status": status},
            **kwargs
        )


class AlreadyCancelledError(BusinessLogicError):
    """Exception raised when cancelling a booking twice."""

    def __init__(self, booking_id: str, **kwargs):
        super().__init__(
            "Booking is already cancelled",
            error_code=ErrorCode.ALREADY_CANCELLED,
            details={"booking_id": str(booking_id)},
            **kwargs
        )


class EventAlreadyStartedError(BusinessLogicError):
    """Exception raised when cancelling a booking for an event that has begun."""

    def __init__(self, event_id: str, **kwargs):
        super().__init__(
            "Cannot cancel bookings for events that have already started",
            error_code=ErrorCode.EVENT_ALREADY_STARTED,
            details={"event_id": str(event_id)},
            **kwargs
        )


class NotCancellableError(BusinessLogicError):
    """Exception raised when deleting a booking that is still confirmed."""

    def __init__(self, booking_id: str, current_status: str, **kwargs):
        super().__init__(
            "Only cancelled bookings can be deleted",
            error_code=ErrorCode.NOT_CANCELLABLE,
            details={"booking_id": str(booking_id), "current_status": current_status},
            suggestions=["Cancel the booking first"],
            **kwargs
        )


class InvalidEventStateError(BusinessLogicError):
    """Exception raised for event updates that break lifecycle or capacity rules."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, error_code=ErrorCode.INVALID_EVENT_STATE, **kwargs)


class CouponError(BusinessLogicError):
    """Base exception for coupon validation failures."""
    pass


class InvalidCouponError(CouponError):
    """Exception raised when no active coupon matches the code."""

    def __init__(self, code: str, **kwargs):
        super().__init__(
            "Invalid coupon code",
            error_code=ErrorCode.INVALID_COUPON,
            details={"code": code},
            **kwargs
        )


class CouponExpiredError(CouponError):
    """Exception raised when a coupon is past its expiry date."""

    def __init__(self, code: str, **kwargs):
        super().__init__(
            "Coupon has expired",
            error_code=ErrorCode.COUPON_EXPIRED,
            details={"code": code},
            **kwargs
        )


class UsageLimitReachedError(CouponError):
    """Exception raised when a coupon has no uses left."""

    def __init__(self, code: str, usage_limit: int, **kwargs):
        super().__init__(
            "Coupon usage limit reached",
            error_code=ErrorCode.USAGE_LIMIT_REACHED,
            details={"code": code, "usage_limit": usage_limit},
            **kwargs
        )


class CouponNotValidForEventError(CouponError):
    """Exception raised when a coupon is scoped to a different event."""

    def __init__(self, code: str, event_id: str, **kwargs):
        super().__init__(
            "Coupon not valid for this event",
            error_code=ErrorCode.COUPON_NOT_VALID_FOR_EVENT,
            details={"code": code, "event_id": str(event_id)},
            **kwargs
        )


class DuplicateCouponCodeError(DuplicateResourceError):
    """Exception raised when an organizer reuses a coupon code."""

    def __init__(self, code: str, **kwargs):
        super().__init__(
            "Coupon code already exists",
            error_code=ErrorCode.DUPLICATE_COUPON_CODE,
            details={"code": code},
            **kwargs
        )


class ExternalServiceError(CityPulseError):
    """Exception raised for external service failures."""

    def __init__(self, service_name: str, message: str, **kwargs):
        super().__init__(
            f"{service_name} service error: {message}",
            error_code=kwargs.pop("error_code", ErrorCode.EXTERNAL_SERVICE_ERROR),
            details=kwargs.pop("details", {"service_name": service_name}),
            suggestions=["Try again later"],
            **kwargs
        )


class EmailServiceError(ExternalServiceError):
    """Exception raised when the SMTP transport rejects or fails a send."""

    def __init__(self, message: str, **kwargs):
        super().__init__("email", message, error_code=ErrorCode.EMAIL_SERVICE_ERROR, **kwargs)
