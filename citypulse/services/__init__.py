"""Business logic services for the CityPulse ticketing service."""

from .principal_service import PrincipalService
from .event_service import EventService
from .coupon_service import CouponService
from .booking_service import BookingService, BookingResult
from .cascade_service import CascadeService
from .notification_service import NotificationService
from .review_service import ReviewService

__all__ = [
    "PrincipalService",
    "EventService",
    "CouponService",
    "BookingService",
    "BookingResult",
    "CascadeService",
    "NotificationService",
    "ReviewService",
]
