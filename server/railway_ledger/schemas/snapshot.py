"""Logical snapshot of the persisted ledger."""

from pydantic import BaseModel, Field

from .booking import Booking
from .service import Service
from .user import User


class ServiceSnapshot(BaseModel):
    """A catalog entry with its per-date seat map."""

    service: Service
    seat_map: dict[str, int] = Field(default_factory=dict, description="Journey date to seats available")


class Snapshot(BaseModel):
    """Services, bookings and users as rewritten after every mutation."""

    services: list[ServiceSnapshot] = Field(default_factory=list)
    bookings: list[Booking] = Field(default_factory=list)
    users: list[User] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.services or self.bookings or self.users)
