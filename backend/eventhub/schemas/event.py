"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class EventLocation(BaseModel):
    venue: str = Field(..., min_length=1, max_length=255)
    address: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)


class EventCreate(BaseModel):
    title: str = Field(..., min_length=5, max_length=200)
    description: str = Field(..., min_length=20, max_length=5000)
    short_description: Optional[str] = Field(None, max_length=300)
    category: str = Field(..., min_length=1, max_length=100)
    event_date: datetime
    event_time: str = Field(..., min_length=1, max_length=20)
    location: EventLocation
    total_seats: int = Field(..., gt=0, le=100000)
    price: Decimal = Field(..., ge=0, le=1000000, max_digits=10, decimal_places=2)
    currency: str = Field("USD", min_length=3, max_length=3)
    banner_image: Optional[str] = Field(None, max_length=500)


class EventUpdate(BaseModel):
    """Partial update. Moderation status is deliberately not editable here."""

    title: Optional[str] = Field(None, min_length=5, max_length=200)
    description: Optional[str] = Field(None, min_length=20, max_length=5000)
    short_description: Optional[str] = Field(None, max_length=300)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    event_date: Optional[datetime] = None
    event_time: Optional[str] = Field(None, min_length=1, max_length=20)
    location: Optional[EventLocation] = None
    total_seats: Optional[int] = Field(None, gt=0, le=100000)
    price: Optional[Decimal] = Field(None, ge=0, le=1000000, max_digits=10, decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    banner_image: Optional[str] = Field(None, max_length=500)


class EventReject(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class EventStats(BaseModel):
    total_bookings: int
    total_revenue: float
    average_rating: float
    total_reviews: int


class EventApproval(BaseModel):
    is_approved: bool
    approved_by_id: Optional[int]
    approved_at: Optional[datetime]
    rejection_reason: Optional[str]


class EventResponse(BaseModel):
    id: int
    title: str
    slug: str
    description: str
    short_description: Optional[str]
    category: str
    event_date: datetime
    event_time: str
    location: EventLocation
    total_seats: int
    available_seats: int
    booked_seats: int
    price: float
    currency: str
    banner_image: Optional[str]
    organizer_id: int
    status: str
    approval: EventApproval
    stats: EventStats
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False
