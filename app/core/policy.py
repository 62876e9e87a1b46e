"""Role capabilities and the property status transition table.

Both the booking lifecycle and the property directory ask this module before
mutating anything; nothing here touches the database.
"""
import enum
from typing import Dict, FrozenSet

from app.core.errors import AuthorizationError, ConflictError
from app.models.enums import PropertyStatus, Role
from app.schemas.auth import Actor


class Action(str, enum.Enum):
    create_booking = "create_booking"
    update_own_booking = "update_own_booking"
    respond_time_change = "respond_time_change"
    list_bookings = "list_bookings"
    change_booking_status = "change_booking_status"
    request_time_change = "request_time_change"
    view_booking_analytics = "view_booking_analytics"
    view_property_details = "view_property_details"
    manage_wishlist = "manage_wishlist"
    manage_own_properties = "manage_own_properties"
    moderate_properties = "moderate_properties"


PERMISSIONS: Dict[Action, FrozenSet[Role]] = {
    Action.create_booking: frozenset({Role.user}),
    Action.update_own_booking: frozenset({Role.user}),
    Action.respond_time_change: frozenset({Role.user}),
    Action.list_bookings: frozenset({Role.user, Role.admin}),
    Action.change_booking_status: frozenset({Role.admin}),
    Action.request_time_change: frozenset({Role.admin}),
    Action.view_booking_analytics: frozenset({Role.admin}),
    Action.view_property_details: frozenset({Role.user}),
    Action.manage_wishlist: frozenset({Role.user}),
    Action.manage_own_properties: frozenset({Role.owner}),
    Action.moderate_properties: frozenset({Role.admin}),
}

DENIED_MESSAGES: Dict[Action, str] = {
    Action.create_booking: "Only users can book properties",
    Action.update_own_booking: "Only users can update their bookings",
    Action.respond_time_change: "Only users can respond to time change requests",
    Action.change_booking_status: "Only admins can update booking status",
    Action.request_time_change: "Only admins can request a time change",
    Action.view_booking_analytics: "Only admins can view booking analytics",
    Action.manage_own_properties: "Only owners can manage properties",
    Action.moderate_properties: "Only admins can moderate properties",
}

# target status -> statuses it may be reached from
PROPERTY_TRANSITIONS: Dict[PropertyStatus, FrozenSet[PropertyStatus]] = {
    PropertyStatus.approved: frozenset({PropertyStatus.pending, PropertyStatus.rejected}),
    PropertyStatus.published: frozenset({PropertyStatus.approved}),
    PropertyStatus.sold: frozenset({PropertyStatus.published}),
    PropertyStatus.rejected: frozenset({PropertyStatus.pending, PropertyStatus.approved, PropertyStatus.published}),
    PropertyStatus.pending: frozenset({PropertyStatus.approved, PropertyStatus.published}),
}

TRANSITION_MESSAGES: Dict[PropertyStatus, str] = {
    PropertyStatus.approved: "Only pending or rejected properties can be approved",
    PropertyStatus.published: "Property must be approved first before publishing",
    PropertyStatus.sold: "Only published properties can be marked as sold",
    PropertyStatus.rejected: "Sold properties cannot be rejected",
    PropertyStatus.pending: "Only approved or published properties can be sent back for review",
}


def can(role: Role, action: Action) -> bool:
    return role in PERMISSIONS.get(action, frozenset())


def authorize(actor: Actor, action: Action) -> None:
    if not can(actor.role, action):
        raise AuthorizationError(DENIED_MESSAGES.get(action, "Access denied."))


def allowed_sources(target: PropertyStatus) -> FrozenSet[PropertyStatus]:
    return PROPERTY_TRANSITIONS.get(target, frozenset())


def check_property_transition(current: PropertyStatus, target: PropertyStatus) -> bool:
    """Return True when the move must be applied, False for a same-status no-op.

    Raises ConflictError when the table does not allow ``current -> target``.
    """
    if current == target:
        return False
    if current not in allowed_sources(target):
        raise ConflictError(
            TRANSITION_MESSAGES.get(target, "Invalid status transition"),
            details={"current_status": current.value, "requested_status": target.value},
        )
    return True
