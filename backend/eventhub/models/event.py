"""
Event model with seat inventory tracking.

Key design decisions:
- `available_seats` is denormalized for performance (avoids SUM query on bookings)
- `booked_seats` counts seats taken by bookings; cancellation releases them
- Stats (`total_bookings`, `total_revenue`) are updated in the same statement
  that moves seats, never recomputed in the background
- `version` is the ORM version counter: concurrent edits to the same event
  fail instead of overwriting each other
- Index on `event_date` for range queries, `status` + `event_date` for the
  public listing
"""

import enum

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Numeric, Float, ForeignKey, Index, CheckConstraint,
)
from sqlalchemy.orm import relationship

from eventhub.db.base import Base, TimestampMixin


class EventStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    slug = Column(String(200), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=False)
    short_description = Column(String(300), nullable=True)
    category = Column(String(100), nullable=False, index=True)
    event_date = Column(DateTime(timezone=True), nullable=False)
    event_time = Column(String(20), nullable=False)

    # Location
    venue = Column(String(255), nullable=False)
    address = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=True)
    country = Column(String(100), nullable=False)
    zip_code = Column(String(20), nullable=True)

    # Seat inventory
    total_seats = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)
    booked_seats = Column(Integer, nullable=False, default=0)

    price = Column(Numeric(10, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")
    banner_image = Column(String(500), nullable=True)

    organizer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Moderation
    status = Column(String(20), nullable=False, default=EventStatus.PENDING.value)
    approved_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(String(500), nullable=True)

    # Stats
    total_bookings = Column(Integer, nullable=False, default=0)
    total_revenue = Column(Numeric(12, 2), nullable=False, default=0)
    average_rating = Column(Float, nullable=False, default=0)
    total_reviews = Column(Integer, nullable=False, default=0)

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    # Relationships
    organizer = relationship("User", back_populates="events", foreign_keys=[organizer_id])

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        # Keep the inventory triple sane at the DB level
        CheckConstraint("available_seats >= 0", name="check_available_seats_non_negative"),
        CheckConstraint("total_seats > 0", name="check_total_seats_positive"),
        CheckConstraint("available_seats <= total_seats", name="check_available_lte_total"),
        CheckConstraint("booked_seats >= 0", name="check_booked_seats_non_negative"),
        CheckConstraint("price >= 0", name="check_price_non_negative"),
        CheckConstraint(
            "status IN ('draft', 'pending', 'approved', 'rejected', 'cancelled', 'completed')",
            name="check_event_status",
        ),
        Index("ix_events_event_date", "event_date"),
        # Composite index for the public listing: approved events sorted by date
        Index("ix_events_status_date", "status", "event_date"),
        Index("ix_events_category_date", "category", "event_date"),
    )

    @property
    def stats(self) -> dict:
        return {
            "total_bookings": self.total_bookings or 0,
            "total_revenue": self.total_revenue or 0,
            "average_rating": self.average_rating or 0,
            "total_reviews": self.total_reviews or 0,
        }

    @property
    def location(self) -> dict:
        return {
            "venue": self.venue,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "zip_code": self.zip_code,
        }

    @property
    def approval(self) -> dict:
        return {
            "is_approved": self.status == EventStatus.APPROVED.value,
            "approved_by_id": self.approved_by_id,
            "approved_at": self.approved_at,
            "rejection_reason": self.rejection_reason,
        }

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, available={self.available_seats}/{self.total_seats})>"
