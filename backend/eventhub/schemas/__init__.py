from eventhub.schemas.user import UserCreate, UserResponse, UserLogin, Token
from eventhub.schemas.event import (
    EventCreate, EventUpdate, EventReject, EventResponse, EventListResponse,
)
from eventhub.schemas.booking import (
    BookingCreate, BookingCancel, BookingResponse, BookingListResponse, BookingCancelResponse,
)

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token",
    "EventCreate", "EventUpdate", "EventReject", "EventResponse", "EventListResponse",
    "BookingCreate", "BookingCancel", "BookingResponse", "BookingListResponse",
    "BookingCancelResponse",
]
