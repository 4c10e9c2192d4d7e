"""
User model: attendee, organizer, or admin account.

`total_bookings`, `total_spent` and `events_created` are lifetime counters
maintained by the booking and event services inside their own transactions.
"""

import enum

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric, CheckConstraint
from sqlalchemy.orm import relationship

from eventhub.db.base import Base, TimestampMixin


class UserRole(str, enum.Enum):
    GUEST = "guest"
    USER = "user"
    ORGANIZER = "organizer"
    ADMIN = "admin"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.USER.value, index=True)
    phone = Column(String(32), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)

    # Lifetime stats
    total_bookings = Column(Integer, nullable=False, default=0)
    total_spent = Column(Numeric(12, 2), nullable=False, default=0)
    events_created = Column(Integer, nullable=False, default=0)

    # Relationships
    events = relationship("Event", back_populates="organizer", foreign_keys="Event.organizer_id")

    __table_args__ = (
        CheckConstraint(
            "role IN ('guest', 'user', 'organizer', 'admin')",
            name="check_user_role",
        ),
    )

    @property
    def stats(self) -> dict:
        return {
            "total_bookings": self.total_bookings or 0,
            "total_spent": self.total_spent or 0,
            "events_created": self.events_created or 0,
        }

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
