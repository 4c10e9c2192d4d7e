"""
Composable authorization predicates.

A predicate takes the acting user plus the resource it acts on and returns a
bool. Services combine them with `any_of` and call `authorize` before doing
any work, which raises PermissionDenied instead of relying on middleware
ordering. `require_roles` wraps the same check as a route dependency.
"""

from typing import Any, Callable, Optional

from fastapi import Depends

from eventhub.core.exceptions import PermissionDenied
from eventhub.core.security import get_current_user
from eventhub.models.booking import Booking
from eventhub.models.event import Event
from eventhub.models.user import User, UserRole

Predicate = Callable[[Optional[User], Any], bool]


def is_admin(user: Optional[User], resource: Any = None) -> bool:
    return user is not None and user.role == UserRole.ADMIN.value


def has_role(*roles: UserRole) -> Predicate:
    allowed = {role.value for role in roles}

    def check(user: Optional[User], resource: Any = None) -> bool:
        return user is not None and user.role in allowed

    return check


def is_event_organizer(user: Optional[User], event: Event) -> bool:
    return user is not None and event is not None and event.organizer_id == user.id


def is_booking_owner(user: Optional[User], booking: Booking) -> bool:
    return user is not None and booking is not None and booking.user_id == user.id


def any_of(*predicates: Predicate) -> Predicate:
    def check(user: Optional[User], resource: Any = None) -> bool:
        return any(predicate(user, resource) for predicate in predicates)

    return check


def authorize(
    user: Optional[User],
    predicate: Predicate,
    resource: Any = None,
    message: str = "Permission denied",
) -> None:
    if not predicate(user, resource):
        raise PermissionDenied(message)


# Common combinations
can_manage_event = any_of(is_event_organizer, is_admin)
can_create_event = has_role(UserRole.ORGANIZER, UserRole.ADMIN)


def require_roles(*roles: UserRole):
    """Route dependency: the authenticated user must hold one of `roles`."""
    predicate = has_role(*roles)
    names = " or ".join(role.value for role in roles)

    async def dependency(user: User = Depends(get_current_user)) -> User:
        authorize(user, predicate, message=f"{names.capitalize()} access required")
        return user

    return dependency


require_admin = require_roles(UserRole.ADMIN)
