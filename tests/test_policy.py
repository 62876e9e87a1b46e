import uuid

import pytest

from app.core.errors import AuthorizationError, ConflictError
from app.core.policy import Action, authorize, can, check_property_transition
from app.models.enums import PropertyStatus, Role
from app.schemas.auth import Actor


def test_only_users_create_bookings():
    assert can(Role.user, Action.create_booking)
    assert not can(Role.owner, Action.create_booking)
    assert not can(Role.admin, Action.create_booking)


def test_admin_only_booking_moderation():
    for action in (Action.change_booking_status, Action.request_time_change, Action.view_booking_analytics):
        assert can(Role.admin, action)
        assert not can(Role.user, action)
        assert not can(Role.owner, action)


def test_owner_manages_properties_admin_moderates():
    assert can(Role.owner, Action.manage_own_properties)
    assert not can(Role.admin, Action.manage_own_properties)
    assert can(Role.admin, Action.moderate_properties)
    assert not can(Role.owner, Action.moderate_properties)


def test_authorize_raises_with_role_message():
    owner = Actor(id=uuid.uuid4(), role=Role.owner)
    with pytest.raises(AuthorizationError) as exc:
        authorize(owner, Action.create_booking)
    assert exc.value.message == "Only users can book properties"


@pytest.mark.parametrize(
    "current,target",
    [
        (PropertyStatus.approved, PropertyStatus.published),
        (PropertyStatus.published, PropertyStatus.sold),
        (PropertyStatus.pending, PropertyStatus.approved),
        (PropertyStatus.rejected, PropertyStatus.approved),
        (PropertyStatus.pending, PropertyStatus.rejected),
        (PropertyStatus.published, PropertyStatus.rejected),
        (PropertyStatus.published, PropertyStatus.pending),
    ],
)
def test_allowed_transitions(current, target):
    assert check_property_transition(current, target) is True


@pytest.mark.parametrize(
    "current,target",
    [
        (PropertyStatus.pending, PropertyStatus.published),
        (PropertyStatus.rejected, PropertyStatus.published),
        (PropertyStatus.pending, PropertyStatus.sold),
        (PropertyStatus.approved, PropertyStatus.sold),
        (PropertyStatus.sold, PropertyStatus.rejected),
        (PropertyStatus.sold, PropertyStatus.published),
    ],
)
def test_blocked_transitions(current, target):
    with pytest.raises(ConflictError) as exc:
        check_property_transition(current, target)
    assert exc.value.details == {"current_status": current.value, "requested_status": target.value}


def test_same_status_is_noop():
    for status in PropertyStatus:
        assert check_property_transition(status, status) is False


def test_publish_requires_approval_message():
    with pytest.raises(ConflictError, match="approved first"):
        check_property_transition(PropertyStatus.pending, PropertyStatus.published)
