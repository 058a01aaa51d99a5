# backend/app/core/enums.py
"""
Core enums for the Room Rental platform.

Query-shaping enums shared by the booking routes, service and repository.
"""

from enum import Enum


class BookingListType(str, Enum):
    """Which side of the booking the listed user is on."""

    OWNER = "owner"
    SEEKER = "seeker"


class BookingSortField(str, Enum):
    """Columns bookings may be sorted by."""

    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    STATUS = "status"
    AMOUNT = "amount"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"
