"""
Event service: organizer CRUD and admin moderation.

Moderation state machine over `status`:
  pending --approve--> approved
  pending --reject---> rejected
An admin may flip an event between approved and rejected at any time.
Organizer edits never change the status, and nothing moves an event back
to pending.

Seat inventory belongs to the booking engine. The one exception is a
capacity edit here: changing `total_seats` shifts `available_seats` by the
same delta, refused if the seats already sold no longer fit.
"""

from datetime import datetime, timezone
from typing import Optional

from slugify import slugify
from sqlalchemy import select, func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from eventhub.models.event import Event, EventStatus
from eventhub.models.user import User
from eventhub.schemas.event import EventCreate, EventUpdate
from eventhub.core.exceptions import (
    Conflict, NotFound, PermissionDenied, TransientError, ValidationError,
)
from eventhub.core.metrics import record_moderation
from eventhub.core.permissions import (
    authorize, can_create_event, can_manage_event, is_admin,
)
from eventhub.core.logging import get_logger

logger = get_logger(__name__)

SLUG_MAX_LENGTH = 200


def make_slug(title: str) -> str:
    slug = slugify(title, max_length=SLUG_MAX_LENGTH)
    if not slug:
        raise ValidationError("Title must contain letters or digits", field="title")
    return slug


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _ensure_future(event_date: datetime) -> datetime:
    event_date = _as_utc(event_date)
    if event_date <= datetime.now(timezone.utc):
        raise ValidationError("Event date must be in the future", field="event_date")
    return event_date


async def _ensure_slug_free(db: AsyncSession, slug: str, exclude_id: Optional[int] = None) -> None:
    query = select(Event.id).where(Event.slug == slug)
    if exclude_id is not None:
        query = query.where(Event.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise Conflict("An event with a similar title already exists. Please choose a different title.")


async def load_event(db: AsyncSession, event_id: int) -> Event:
    """Fetch an event with fresh column values, or raise NotFound."""
    result = await db.execute(
        select(Event).where(Event.id == event_id).execution_options(populate_existing=True)
    )
    event = result.scalar_one_or_none()
    if not event:
        raise NotFound(f"Event {event_id} not found")
    return event


async def create_event(db: AsyncSession, event_data: EventCreate, organizer: User) -> Event:
    """Create a pending event with full seat availability."""
    authorize(organizer, can_create_event, message="Only organizers can create events")

    event_date = _ensure_future(event_data.event_date)
    slug = make_slug(event_data.title)
    await _ensure_slug_free(db, slug)

    location = event_data.location
    event = Event(
        title=event_data.title,
        slug=slug,
        description=event_data.description,
        short_description=event_data.short_description,
        category=event_data.category,
        event_date=event_date,
        event_time=event_data.event_time,
        venue=location.venue,
        address=location.address,
        city=location.city,
        state=location.state,
        country=location.country,
        zip_code=location.zip_code,
        total_seats=event_data.total_seats,
        available_seats=event_data.total_seats,  # All seats available initially
        booked_seats=0,
        price=event_data.price,
        currency=event_data.currency.upper(),
        banner_image=event_data.banner_image,
        organizer_id=organizer.id,
        status=EventStatus.PENDING.value,
    )
    db.add(event)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise Conflict("An event with a similar title already exists. Please choose a different title.")

    # Organizer stats move with the event row
    await db.execute(
        update(User)
        .where(User.id == organizer.id)
        .values(events_created=User.events_created + 1)
        .execution_options(synchronize_session=False)
    )
    await db.refresh(event)
    await db.refresh(organizer)

    logger.info(
        "event_created",
        event_id=event.id,
        title=event.title,
        seats=event.total_seats,
        organizer_id=organizer.id,
    )
    return event


async def get_event(db: AsyncSession, event_id: int, viewer: Optional[User] = None) -> Event:
    """Get a single event. Unapproved events are visible to their organizer and admins only."""
    event = await load_event(db, event_id)
    if event.status != EventStatus.APPROVED.value:
        authorize(viewer, can_manage_event, event, message="This event is pending approval")
    return event


async def list_events(
    db: AsyncSession,
    viewer: Optional[User] = None,
    page: int = 1,
    page_size: int = 20,
    q: Optional[str] = None,
    category: Optional[str] = None,
    status: Optional[str] = None,
    organizer_id: Optional[int] = None,
    upcoming_only: bool = False,
) -> tuple[list[Event], int]:
    """
    List events with pagination and filters.

    Admins see every status. Organizers listing their own events see every
    status of those. Everyone else only sees approved events.
    """
    query = select(Event)

    sees_everything = is_admin(viewer) or (
        viewer is not None and organizer_id is not None and organizer_id == viewer.id
    )
    if sees_everything:
        if status:
            query = query.where(Event.status == status)
    else:
        if status and status != EventStatus.APPROVED.value:
            raise PermissionDenied("Only approved events are publicly listed")
        query = query.where(Event.status == EventStatus.APPROVED.value)

    if category:
        query = query.where(Event.category == category)
    if organizer_id is not None:
        query = query.where(Event.organizer_id == organizer_id)
    if q:
        pattern = f"%{q.strip()}%"
        query = query.where(or_(Event.title.ilike(pattern), Event.description.ilike(pattern)))
    if upcoming_only:
        query = query.where(Event.event_date >= datetime.now(timezone.utc))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    events_query = (
        query
        .order_by(Event.event_date.asc(), Event.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(events_query)
    events = list(result.scalars().all())

    return events, total


async def update_event(db: AsyncSession, event_id: int, event_data: EventUpdate, actor: User) -> Event:
    """
    Apply a partial update. Owner or admin only; status is left untouched.
    """
    event = await load_event(db, event_id)
    authorize(actor, can_manage_event, event)

    changes = event_data.model_dump(exclude_unset=True)
    location = changes.pop("location", None)

    if "event_date" in changes:
        changes["event_date"] = _ensure_future(changes["event_date"])

    if "title" in changes and changes["title"] != event.title:
        slug = make_slug(changes["title"])
        await _ensure_slug_free(db, slug, exclude_id=event.id)
        changes["slug"] = slug

    if "total_seats" in changes:
        new_total = changes["total_seats"]
        new_available = event.available_seats + (new_total - event.total_seats)
        if new_available < 0:
            raise ValidationError(
                f"Cannot reduce capacity to {new_total}: "
                f"{event.total_seats - event.available_seats} seats are already taken",
                field="total_seats",
            )
        changes["available_seats"] = new_available

    if "currency" in changes:
        changes["currency"] = changes["currency"].upper()

    for field, value in changes.items():
        setattr(event, field, value)
    if location:
        for field, value in location.items():
            setattr(event, field, value)

    try:
        await db.flush()
    except StaleDataError:
        await db.rollback()
        raise TransientError("Event was modified concurrently. Please retry.")
    except IntegrityError:
        await db.rollback()
        raise Conflict("An event with a similar title already exists. Please choose a different title.")
    await db.refresh(event)

    logger.info("event_updated", event_id=event.id, fields=sorted(changes), actor_id=actor.id)
    return event


async def delete_event(db: AsyncSession, event_id: int, actor: User) -> None:
    """Delete an event at any status. Existing bookings keep their snapshots."""
    event = await load_event(db, event_id)
    authorize(actor, can_manage_event, event)

    await db.delete(event)
    try:
        await db.flush()
    except StaleDataError:
        await db.rollback()
        raise TransientError("Event was modified concurrently. Please retry.")

    logger.info("event_deleted", event_id=event_id, actor_id=actor.id)


async def approve_event(db: AsyncSession, event_id: int, admin: User) -> Event:
    authorize(admin, is_admin, message="Admin access required")
    event = await load_event(db, event_id)

    event.status = EventStatus.APPROVED.value
    event.approved_by_id = admin.id
    event.approved_at = datetime.now(timezone.utc)
    event.rejection_reason = None
    await _flush_moderation(db, event)

    record_moderation("approved")
    logger.info("event_approved", event_id=event.id, admin_id=admin.id)
    return event


async def reject_event(db: AsyncSession, event_id: int, admin: User, reason: Optional[str] = None) -> Event:
    authorize(admin, is_admin, message="Admin access required")
    event = await load_event(db, event_id)

    event.status = EventStatus.REJECTED.value
    event.approved_by_id = None
    event.approved_at = None
    event.rejection_reason = reason
    await _flush_moderation(db, event)

    record_moderation("rejected")
    logger.info("event_rejected", event_id=event.id, admin_id=admin.id, reason=reason)
    return event


async def _flush_moderation(db: AsyncSession, event: Event) -> None:
    try:
        await db.flush()
    except StaleDataError:
        await db.rollback()
        raise TransientError("Event was modified concurrently. Please retry.")
    await db.refresh(event)
