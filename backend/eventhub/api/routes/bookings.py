"""
Booking endpoints with concurrency-safe seat reservation.
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.db.session import get_db
from eventhub.models.booking import BookingStatus
from eventhub.models.user import User
from eventhub.schemas.booking import (
    BookingCreate, BookingCancel, BookingResponse, BookingListResponse, BookingCancelResponse,
)
from eventhub.services.booking_service import (
    book_seats, cancel_booking, delete_booking, get_booking, get_user_bookings, list_all_bookings,
)
from eventhub.services.cache_service import invalidate_event_cache
from eventhub.core.permissions import require_admin
from eventhub.core.config import get_settings
from eventhub.core.security import get_current_user, get_current_user_id

settings = get_settings()
router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Book seats for an event.

    The seat decrement is a single conditional UPDATE, so concurrent requests
    can never oversell. When seats run out the request fails with 409.
    """
    booking = await book_seats(
        db,
        user_id,
        booking_data.event_id,
        booking_data.number_of_seats,
        payment=booking_data.payment,
        special_requests=booking_data.special_requests,
    )
    # Listing pages show available_seats
    await invalidate_event_cache()
    return booking


@router.get("/me", response_model=list[BookingResponse])
async def list_my_bookings(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Get all bookings for the authenticated user."""
    return await get_user_bookings(db, user_id)


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=settings.BOOKINGS_MAX_PAGE_SIZE),
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Admin: every booking, newest first."""
    bookings, total = await list_all_bookings(
        db, page, page_size, booking_status.value if booking_status else None,
    )
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking_endpoint(
    booking_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_booking(db, booking_id, user)


@router.post("/{booking_id}/cancel", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    cancel_data: Optional[BookingCancel] = Body(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking and release seats back to the event."""
    reason = cancel_data.reason if cancel_data else None
    booking = await cancel_booking(db, booking_id, user, reason=reason)
    await invalidate_event_cache()
    return BookingCancelResponse(
        message="Booking cancelled",
        booking_id=booking.id,
        status=booking.status,
        seats_released=booking.number_of_seats,
    )


@router.delete("/{booking_id}")
async def delete_booking_endpoint(
    booking_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Admin: remove the record. Seats are NOT returned to the event."""
    await delete_booking(db, booking_id, admin)
    return {"message": "Booking deleted"}
