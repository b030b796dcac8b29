"""Booking-related Pydantic schemas."""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .common import Problem


class BookingStatus(str, Enum):
    """Booking status enumeration."""
    CONFIRMED = "CONFIRMED"
    WAITLISTED = "WAITLISTED"
    CANCELLED = "CANCELLED"


class Gender(str, Enum):
    """Rider gender as collected at the counter."""
    MALE = "M"
    FEMALE = "F"
    OTHER = "O"


class Rider(BaseModel):
    """One traveller on a booking."""

    name: str = Field(..., min_length=1, max_length=128)
    age: int = Field(..., ge=1, le=119)
    gender: Gender

    model_config = {"from_attributes": True}


class Booking(BaseModel):
    """Booking record held by the booking ledger."""

    reference: str = Field(..., min_length=1, description="Booking reference (PNR)")
    service_id: str = Field(..., description="Booked service")
    journey_date: str = Field(..., description="Date of journey (MM/DD/YYYY)")
    riders: list[Rider] = Field(..., min_length=1, description="Riders in booking order")
    fare: Decimal = Field(..., ge=0, description="Total fare charged")
    status: BookingStatus = Field(..., description="Booking status")

    model_config = {"from_attributes": True}

    @property
    def seat_count(self) -> int:
        return len(self.riders)


class BookingRequest(BaseModel):
    """Request schema for booking one group on one service and date."""

    service_id: str = Field(..., min_length=1, description="Service to book")
    journey_date: str = Field(..., description="Date of journey (MM/DD/YYYY)")
    riders: list[Rider] = Field(..., min_length=1, description="Riders in the group")


class BookingResult(str, Enum):
    """Final state of a booking request."""
    CONFIRMED = "CONFIRMED"
    WAITLISTED = "WAITLISTED"
    REJECTED = "REJECTED"


class BookingOutcome(BaseModel):
    """Response schema for a booking request."""

    result: BookingResult
    service_id: str
    journey_date: str
    reference: Optional[str] = Field(None, description="Issued reference, also set for declined payments")
    fare: Optional[Decimal] = None
    waitlist_rank: Optional[int] = Field(None, description="Queue rank when waitlisted")
    problem: Optional[Problem] = None

    @property
    def succeeded(self) -> bool:
        return self.result != BookingResult.REJECTED


class CancellationResult(str, Enum):
    """Final state of a cancellation request."""
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"


class CancellationOutcome(BaseModel):
    """Response schema for a cancellation request."""

    result: CancellationResult
    reference: str
    prior_status: Optional[BookingStatus] = None
    refund: Optional[Decimal] = None
    promoted: list[str] = Field(default_factory=list, description="References confirmed from the waitlist")
    problem: Optional[Problem] = None


class PromotionOutcome(BaseModel):
    """Response schema for a waitlist promotion pass."""

    service_id: str
    journey_date: str
    seats_before: Optional[int] = None
    seats_after: Optional[int] = None
    promoted: list[str] = Field(default_factory=list)
    problem: Optional[Problem] = None
