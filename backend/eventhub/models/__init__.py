from eventhub.models.user import User, UserRole
from eventhub.models.event import Event, EventStatus
from eventhub.models.booking import Booking, BookingStatus, CancelledBy, PaymentMethod, PaymentStatus

__all__ = [
    "User", "UserRole",
    "Event", "EventStatus",
    "Booking", "BookingStatus", "CancelledBy", "PaymentMethod", "PaymentStatus",
]
