"""
Booking engine: seat reservation, cancellation and the aggregate counters
that move with them.

CONCURRENCY STRATEGY: Conditional Decrement with a Floor Guard
===============================================================

Problem:
  Two users try to book the last seat simultaneously.
  Both read available_seats=1, both decrement to 0, both succeed.
  Result: Overbooking.

Solution:
  The availability check is repeated inside the write itself:

    UPDATE events
       SET available_seats = available_seats - :n,
           booked_seats    = booked_seats + :n,
           total_bookings  = total_bookings + :n,
           total_revenue   = total_revenue + price * :n,
           version         = version + 1
     WHERE id = :event_id AND available_seats >= :n

  The database serializes writers on the row, so of N concurrent requests
  for k < N seats exactly k see a matching row. A request that matches no
  row lost the race and fails with InsufficientInventory without writing
  anything. The CHECK constraint available_seats >= 0 is the final safety net.

  The earlier SELECT only exists to produce a precise error message and to
  fail fast without taking a write lock.

  Failed transactions are never retried here. A write conflict reported by
  the store surfaces as TransientError and the client decides.

Bookkeeping:
  - Event stats move in the same UPDATE as the seats
  - User stats move in a second UPDATE inside the same transaction
  - Cancellation restores seats and event revenue (both clamped), but leaves
    the user's lifetime spend/booking counters alone
  - Admin hard delete removes the record only; seats are NOT restored
"""

import secrets
import string
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update, case, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.models.booking import (
    Booking, BookingStatus, CancelledBy, MAX_SEATS_PER_BOOKING, PaymentMethod, PaymentStatus,
)
from eventhub.models.event import Event
from eventhub.models.user import User
from eventhub.schemas.booking import PaymentInfo
from eventhub.core.exceptions import (
    AlreadyCancelled, Conflict, DomainError, InsufficientInventory, NotFound,
    PermissionDenied, TransientError, ValidationError, is_transient_db_error,
)
from eventhub.core.metrics import (
    booking_latency, record_booking_attempt, record_cancellation, seats_booked,
)
from eventhub.core.permissions import (
    authorize, can_manage_event, is_admin, is_booking_owner, is_event_organizer,
)
from eventhub.core.logging import get_logger

logger = get_logger(__name__)

TICKET_CODE_ALPHABET = string.ascii_uppercase + string.digits
TICKET_CODE_LENGTH = 10
BOOKING_CODE_PREFIX = "BK-"
BOOKING_CODE_LENGTH = 8
MAX_CODE_ATTEMPTS = 5


def generate_ticket_code() -> str:
    """10 characters from A-Z0-9."""
    return "".join(secrets.choice(TICKET_CODE_ALPHABET) for _ in range(TICKET_CODE_LENGTH))


def generate_booking_code() -> str:
    alphabet = string.ascii_letters + string.digits
    return BOOKING_CODE_PREFIX + "".join(secrets.choice(alphabet) for _ in range(BOOKING_CODE_LENGTH))


async def _allocate_codes(db: AsyncSession) -> tuple[str, str]:
    """
    Draw a booking code and ticket code that are not in use yet.
    The unique indexes still reject a collision that slips in concurrently.
    """
    for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
        booking_code = generate_booking_code()
        ticket_code = generate_ticket_code()
        taken = await db.execute(
            select(Booking.id)
            .where(or_(Booking.booking_code == booking_code, Booking.ticket_code == ticket_code))
            .limit(1)
        )
        if taken.first() is None:
            return booking_code, ticket_code
        logger.warning("booking_code_collision", attempt=attempt)

    raise Conflict("Could not allocate a unique ticket code. Please try again.")


async def _get_fresh(db: AsyncSession, model, pk: int):
    result = await db.execute(
        select(model).where(model.id == pk).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _rollback(db: AsyncSession, exc: Exception) -> Exception:
    """Roll back a half-applied booking transaction; return the error to raise."""
    await db.rollback()
    if isinstance(exc, IntegrityError):
        return Conflict("Could not allocate a unique ticket code. Please try again.")
    if is_transient_db_error(exc):
        return TransientError()
    return exc


async def book_seats(
    db: AsyncSession,
    user_id: int,
    event_id: int,
    number_of_seats: int = 1,
    payment: Optional[PaymentInfo] = None,
    special_requests: Optional[str] = None,
) -> Booking:
    """
    Reserve seats and create a confirmed booking in one transaction.

    Raises NotFound, InsufficientInventory, Conflict or TransientError.
    """
    with booking_latency.time():
        try:
            booking = await _book_seats(
                db, user_id, event_id, number_of_seats, payment, special_requests,
            )
        except InsufficientInventory:
            record_booking_attempt("sold_out")
            raise
        except NotFound:
            record_booking_attempt("not_found")
            raise
        except ValidationError:
            record_booking_attempt("invalid")
            raise
        except TransientError:
            record_booking_attempt("transient")
            raise
        except DomainError:
            record_booking_attempt("conflict")
            raise
        except Exception:
            record_booking_attempt("error")
            raise

    record_booking_attempt("success")
    seats_booked.inc(number_of_seats)
    return booking


async def _book_seats(
    db: AsyncSession,
    user_id: int,
    event_id: int,
    number_of_seats: int,
    payment: Optional[PaymentInfo],
    special_requests: Optional[str],
) -> Booking:
    if not 1 <= number_of_seats <= MAX_SEATS_PER_BOOKING:
        raise ValidationError(
            f"number_of_seats must be between 1 and {MAX_SEATS_PER_BOOKING}",
            field="number_of_seats",
        )

    # Step 1: Read current state
    event = await _get_fresh(db, Event, event_id)
    if not event:
        raise NotFound(f"Event {event_id} not found")

    user = await _get_fresh(db, User, user_id)
    if not user:
        raise NotFound("User not found")

    if event.available_seats < number_of_seats:
        logger.warning(
            "booking_failed_no_seats",
            event_id=event_id,
            requested=number_of_seats,
            available=event.available_seats,
        )
        raise InsufficientInventory(number_of_seats, event.available_seats)

    # Step 2: Take the seats, guarded by the same availability condition
    reserved = await db.execute(
        update(Event)
        .where(Event.id == event_id, Event.available_seats >= number_of_seats)
        .values(
            available_seats=Event.available_seats - number_of_seats,
            booked_seats=Event.booked_seats + number_of_seats,
            total_bookings=Event.total_bookings + number_of_seats,
            total_revenue=Event.total_revenue + Event.price * number_of_seats,
            version=Event.version + 1,
        )
        .execution_options(synchronize_session=False)
    )

    if reserved.rowcount == 0:
        # A concurrent booking took the seats after our read
        await db.rollback()
        logger.warning(
            "booking_failed_no_seats",
            event_id=event_id,
            requested=number_of_seats,
            reason="lost_race",
        )
        raise InsufficientInventory(number_of_seats)

    try:
        # The row is now locked by this transaction; its price is what we charged
        await db.refresh(event)

        # Step 3: Create the booking with a snapshot of user and event
        booking_code, ticket_code = await _allocate_codes(db)
        payment = payment or PaymentInfo()
        booking = Booking(
            booking_code=booking_code,
            ticket_code=ticket_code,
            user_id=user.id,
            user_name=user.name,
            user_email=user.email,
            user_phone=user.phone or "",
            event_id=event.id,
            event_title=event.title,
            event_date=event.event_date,
            event_location=", ".join(part for part in (event.venue, event.city) if part) or "Online/TBA",
            event_image=event.banner_image,
            number_of_seats=number_of_seats,
            price_per_seat=event.price,
            total_amount=event.price * number_of_seats,
            payment_method=PaymentMethod(payment.method).value,
            payment_status=PaymentStatus(payment.status).value,
            status=BookingStatus.CONFIRMED.value,
            special_requests=special_requests,
        )
        db.add(booking)
        await db.flush()

        # Step 4: Lifetime stats for the buyer
        await db.execute(
            update(User)
            .where(User.id == user.id)
            .values(
                total_bookings=User.total_bookings + number_of_seats,
                total_spent=User.total_spent + booking.total_amount,
            )
            .execution_options(synchronize_session=False)
        )
        await db.refresh(user)
        await db.refresh(booking)
    except Exception as exc:
        error = await _rollback(db, exc)
        if error is exc:
            raise
        raise error from exc

    logger.info(
        "booking_created",
        booking_id=booking.id,
        booking_code=booking.booking_code,
        user_id=user.id,
        event_id=event.id,
        seats=number_of_seats,
        total_amount=str(booking.total_amount),
        seats_left=event.available_seats,
    )
    return booking


def _cancellation_actor(actor: User, booking: Booking, event: Optional[Event]) -> CancelledBy:
    if is_booking_owner(actor, booking):
        return CancelledBy.USER
    if is_event_organizer(actor, event):
        return CancelledBy.ORGANIZER
    if is_admin(actor):
        return CancelledBy.ADMIN
    raise PermissionDenied("You are not allowed to cancel this booking")


async def cancel_booking(
    db: AsyncSession,
    booking_id: int,
    actor: User,
    reason: Optional[str] = None,
) -> Booking:
    """
    Cancel a booking and release its seats back to the event.

    Only the status flip from a non-cancelled state wins, so a double cancel
    (sequential or concurrent) restores seats exactly once.
    """
    booking = await _get_fresh(db, Booking, booking_id)
    if not booking:
        raise NotFound("Booking not found")

    event = await _get_fresh(db, Event, booking.event_id)
    cancelled_by = _cancellation_actor(actor, booking, event)

    if booking.status == BookingStatus.CANCELLED.value:
        raise AlreadyCancelled()

    now = datetime.now(timezone.utc)
    flipped = await db.execute(
        update(Booking)
        .where(Booking.id == booking.id, Booking.status != BookingStatus.CANCELLED.value)
        .values(
            status=BookingStatus.CANCELLED.value,
            is_cancelled=True,
            cancelled_at=now,
            cancelled_by=cancelled_by.value,
            cancellation_reason=reason,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if flipped.rowcount == 0:
        await db.rollback()
        raise AlreadyCancelled()

    seats = booking.number_of_seats
    amount = booking.total_amount
    try:
        if event is not None:
            restored_available = Event.available_seats + seats
            remaining_booked = Event.booked_seats - seats
            remaining_revenue = Event.total_revenue - amount
            await db.execute(
                update(Event)
                .where(Event.id == event.id)
                .values(
                    available_seats=case(
                        (restored_available > Event.total_seats, Event.total_seats),
                        else_=restored_available,
                    ),
                    booked_seats=case((remaining_booked < 0, 0), else_=remaining_booked),
                    total_revenue=case((remaining_revenue < 0, 0), else_=remaining_revenue),
                    version=Event.version + 1,
                )
                .execution_options(synchronize_session=False)
            )
            await db.refresh(event)
        await db.refresh(booking)
    except Exception as exc:
        error = await _rollback(db, exc)
        if error is exc:
            raise
        raise error from exc

    record_cancellation(cancelled_by.value, seats)
    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        actor_id=actor.id,
        cancelled_by=cancelled_by.value,
        event_id=booking.event_id,
        seats_restored=seats if event is not None else 0,
        event_missing=event is None,
    )
    return booking


async def delete_booking(db: AsyncSession, booking_id: int, actor: User) -> None:
    """
    Admin hard delete. Removes the record without touching seat inventory
    or any stats; use cancel_booking to give seats back.
    """
    authorize(actor, is_admin, message="Admin access required")

    booking = await _get_fresh(db, Booking, booking_id)
    if not booking:
        raise NotFound("Booking not found")

    await db.delete(booking)
    await db.flush()

    logger.info(
        "booking_deleted",
        booking_id=booking_id,
        admin_id=actor.id,
        event_id=booking.event_id,
        status=booking.status,
    )


async def get_booking(db: AsyncSession, booking_id: int, actor: User) -> Booking:
    """Single booking, visible to its owner, the event's organizer, or an admin."""
    booking = await _get_fresh(db, Booking, booking_id)
    if not booking:
        raise NotFound("Booking not found")

    if not (is_booking_owner(actor, booking) or is_admin(actor)):
        event = await _get_fresh(db, Event, booking.event_id)
        authorize(actor, is_event_organizer, event, message="You are not allowed to view this booking")
    return booking


async def get_user_bookings(db: AsyncSession, user_id: int) -> list[Booking]:
    """Get all bookings for a user, newest first."""
    result = await db.execute(
        select(Booking)
        .where(Booking.user_id == user_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_event_bookings(db: AsyncSession, event_id: int, actor: User) -> list[Booking]:
    """Bookings for one event; organizer of that event or admin only."""
    event = await _get_fresh(db, Event, event_id)
    if not event:
        raise NotFound(f"Event {event_id} not found")
    authorize(actor, can_manage_event, event)

    result = await db.execute(
        select(Booking)
        .where(Booking.event_id == event_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def list_all_bookings(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 50,
    status: Optional[str] = None,
) -> tuple[list[Booking], int]:
    """Admin view over every booking."""
    query = select(Booking)
    if status:
        query = query.where(Booking.status == status)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()

    result = await db.execute(
        query
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all()), total
