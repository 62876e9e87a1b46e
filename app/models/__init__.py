from .base import Base
from .enums import Role, PropertyType, PropertyStatus, BookingStatus
from .user import User
from .owner import Owner, owner_properties
from .property import Property
from .booking import Booking
from .wishlist import WishlistItem

__all__ = [
    "Base",
    "Role",
    "PropertyType",
    "PropertyStatus",
    "BookingStatus",
    "User",
    "Owner",
    "owner_properties",
    "Property",
    "Booking",
    "WishlistItem",
]
