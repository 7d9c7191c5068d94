"""
Database models for the CityPulse ticketing service.
"""

from .base import Base
from .principal import Principal, PrincipalKind, User, Organizer
from .event import Event, EventCategory, EventStatus, EventType, TicketType
from .coupon import Coupon
from .booking import Booking, BookingStatus, PaymentStatus
from .notification import Notification, NotificationSeverity
from .review import Review

__all__ = [
    "Base",
    "Principal",
    "PrincipalKind",
    "User",
    "Organizer",
    "Event",
    "EventCategory",
    "EventStatus",
    "EventType",
    "TicketType",
    "Coupon",
    "Booking",
    "BookingStatus",
    "PaymentStatus",
    "Notification",
    "NotificationSeverity",
    "Review",
]
