"""Models module exporting all database models."""

from .booking import BookingRecord, RiderRecord
from .service import SeatAllocationRecord, ServiceRecord
from .user import UserRecord

__all__ = [
    # Catalog entities
    "ServiceRecord",
    "SeatAllocationRecord",

    # Booking entities
    "BookingRecord",
    "RiderRecord",

    # Directory entity
    "UserRecord",
]
