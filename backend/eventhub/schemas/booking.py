"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from eventhub.models.booking import MAX_SEATS_PER_BOOKING, PaymentMethod, PaymentStatus


class PaymentInfo(BaseModel):
    method: PaymentMethod = PaymentMethod.STRIPE
    status: PaymentStatus = PaymentStatus.COMPLETED


class BookingCreate(BaseModel):
    event_id: int = Field(..., gt=0)
    number_of_seats: int = Field(default=1, ge=1, le=MAX_SEATS_PER_BOOKING)
    payment: Optional[PaymentInfo] = None
    special_requests: Optional[str] = Field(None, max_length=500)


class BookingCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class BookingCancellation(BaseModel):
    is_cancelled: bool
    cancelled_at: Optional[datetime]
    cancelled_by: Optional[str]
    reason: Optional[str]


class BookingPayment(BaseModel):
    method: str
    status: str


class BookingResponse(BaseModel):
    id: int
    booking_code: str
    ticket_code: str
    user_id: int
    user_name: str
    user_email: str
    user_phone: Optional[str]
    event_id: int
    event_title: str
    event_date: datetime
    event_location: str
    event_image: Optional[str]
    number_of_seats: int
    price_per_seat: float
    total_amount: float
    payment: BookingPayment
    status: str
    cancellation: BookingCancellation
    special_requests: Optional[str]
    booked_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingListResponse(BaseModel):
    bookings: list[BookingResponse]
    total: int
    page: int
    page_size: int


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int
    status: str
    seats_released: int
