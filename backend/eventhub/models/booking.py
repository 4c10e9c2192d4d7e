"""
Booking model: an immutable purchase record for a fixed seat count.

Key design decisions:
- User and event details are copied by value at booking time, so a booking
  keeps the terms it was bought under no matter how the event changes later
- `user_id` / `event_id` are denormalized keys without foreign-key
  constraints: bookings outlive deleted events and users
- `total_amount` is recomputed from `number_of_seats * price_per_seat`
  whenever the row is flushed
- Status changes are limited to cancellation; the row is never re-priced
"""

import enum

from sqlalchemy import (
    Column, Integer, String, DateTime, Numeric, Boolean, Index, CheckConstraint, event,
)

from eventhub.db.base import Base, TimestampMixin, utcnow

MAX_SEATS_PER_BOOKING = 10


class BookingStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


class PaymentMethod(str, enum.Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    PAYPAL = "paypal"
    GOOGLE_PAY = "google_pay"
    STRIPE = "stripe"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class CancelledBy(str, enum.Enum):
    USER = "user"
    ORGANIZER = "organizer"
    ADMIN = "admin"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_code = Column(String(20), nullable=False, unique=True)
    ticket_code = Column(String(10), nullable=False, unique=True)

    # User snapshot
    user_id = Column(Integer, nullable=False, index=True)
    user_name = Column(String(100), nullable=False)
    user_email = Column(String(255), nullable=False)
    user_phone = Column(String(32), nullable=True)

    # Event snapshot
    event_id = Column(Integer, nullable=False, index=True)
    event_title = Column(String(200), nullable=False)
    event_date = Column(DateTime(timezone=True), nullable=False)
    event_location = Column(String(255), nullable=False)
    event_image = Column(String(500), nullable=True)

    number_of_seats = Column(Integer, nullable=False)
    price_per_seat = Column(Numeric(10, 2), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)

    payment_method = Column(String(20), nullable=False, default=PaymentMethod.STRIPE.value)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.COMPLETED.value)

    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)

    # Cancellation
    is_cancelled = Column(Boolean, nullable=False, default=False)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(String(20), nullable=True)
    cancellation_reason = Column(String(500), nullable=True)

    special_requests = Column(String(500), nullable=True)
    booked_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint(
            f"number_of_seats >= 1 AND number_of_seats <= {MAX_SEATS_PER_BOOKING}",
            name="check_booking_seats_range",
        ),
        CheckConstraint("price_per_seat >= 0", name="check_booking_price_non_negative"),
        CheckConstraint(
            "status IN ('confirmed', 'pending', 'cancelled', 'completed', 'no_show')",
            name="check_booking_status",
        ),
        Index("ix_bookings_user_status", "user_id", "status"),
        Index("ix_bookings_event_status", "event_id", "status"),
        Index("ix_bookings_created_at", "created_at"),
    )

    @property
    def payment(self) -> dict:
        return {"method": self.payment_method, "status": self.payment_status}

    @property
    def cancellation(self) -> dict:
        return {
            "is_cancelled": bool(self.is_cancelled),
            "cancelled_at": self.cancelled_at,
            "cancelled_by": self.cancelled_by,
            "reason": self.cancellation_reason,
        }

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, code={self.booking_code}, event={self.event_id}, status={self.status})>"


@event.listens_for(Booking, "before_insert")
@event.listens_for(Booking, "before_update")
def _compute_total_amount(mapper, connection, target: Booking) -> None:
    if target.number_of_seats is not None and target.price_per_seat is not None:
        target.total_amount = target.number_of_seats * target.price_per_seat
