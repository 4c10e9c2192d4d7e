"""
Event endpoints: organizer CRUD, admin moderation, and the public listing.
Only the anonymous approved-events listing is cached in Redis.
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.db.session import get_db
from eventhub.models.event import EventStatus
from eventhub.models.user import User
from eventhub.schemas.booking import BookingResponse
from eventhub.schemas.event import (
    EventCreate, EventUpdate, EventReject, EventResponse, EventListResponse,
)
from eventhub.services.booking_service import get_event_bookings
from eventhub.services.event_service import (
    create_event, get_event, list_events, update_event, delete_event, approve_event, reject_event,
)
from eventhub.services.cache_service import (
    get_cached_events, set_cached_events, invalidate_event_cache, make_event_list_key,
)
from eventhub.core.permissions import require_admin
from eventhub.core.security import get_current_user, get_optional_user
from eventhub.core.config import get_settings
from eventhub.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()
router = APIRouter(prefix="/events", tags=["Events"])


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a new event in `pending` status. Organizers and admins only."""
    event = await create_event(db, event_data, user)
    await invalidate_event_cache()
    return event


@router.get("", response_model=EventListResponse)
async def list_events_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=settings.EVENTS_MAX_PAGE_SIZE),
    q: Optional[str] = Query(None, max_length=200),
    category: Optional[str] = Query(None),
    event_status: Optional[EventStatus] = Query(None, alias="status"),
    organizer_id: Optional[int] = Query(None),
    upcoming_only: bool = Query(False),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """
    List events with pagination and filters.
    Anonymous listings of approved events are cached; cache is invalidated
    whenever events or seat counts change.
    """
    status_value = event_status.value if event_status else None
    cacheable = viewer is None and status_value in (None, EventStatus.APPROVED.value)
    cache_key = make_event_list_key(
        page=page,
        page_size=page_size,
        q=q,
        category=category,
        status=status_value,
        organizer_id=organizer_id,
        upcoming=upcoming_only,
    )

    if cacheable:
        cached = await get_cached_events(cache_key)
        if cached:
            logger.info("events_list_cache_hit", page=page)
            cached["cached"] = True
            return EventListResponse(**cached)

    events, total = await list_events(
        db,
        viewer=viewer,
        page=page,
        page_size=page_size,
        q=q,
        category=category,
        status=status_value,
        organizer_id=organizer_id,
        upcoming_only=upcoming_only,
    )

    response = EventListResponse(
        events=[EventResponse.model_validate(e) for e in events],
        total=total,
        page=page,
        page_size=page_size,
        cached=False,
    )

    if cacheable:
        await set_cached_events(cache_key, response.model_dump(mode="json"))

    return response


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: int,
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a single event by ID. Not cached (needs real-time seat counts)."""
    return await get_event(db, event_id, viewer)


@router.get("/{event_id}/bookings", response_model=list[BookingResponse])
async def list_event_bookings_endpoint(
    event_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Bookings for an event. Its organizer or an admin only."""
    return await get_event_bookings(db, event_id, user)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    event_id: int,
    event_data: EventUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Edit an event. Owner or admin; moderation status is never changed here."""
    event = await update_event(db, event_id, event_data, user)
    await invalidate_event_cache()
    return event


@router.delete("/{event_id}")
async def delete_event_endpoint(
    event_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await delete_event(db, event_id, user)
    await invalidate_event_cache()
    return {"message": "Event deleted"}


@router.post("/{event_id}/approve", response_model=EventResponse)
async def approve_event_endpoint(
    event_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    event = await approve_event(db, event_id, admin)
    await invalidate_event_cache()
    return event


@router.post("/{event_id}/reject", response_model=EventResponse)
async def reject_event_endpoint(
    event_id: int,
    rejection: Optional[EventReject] = Body(None),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    event = await reject_event(db, event_id, admin, rejection.reason if rejection else None)
    await invalidate_event_cache()
    return event
