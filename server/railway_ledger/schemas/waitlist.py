"""Waitlist-related Pydantic schemas."""

from pydantic import BaseModel, Field


class WaitlistEntry(BaseModel):
    """A waitlisted booking awaiting freed seats on one service and date."""

    reference: str = Field(..., description="Waitlisted booking reference")
    queue_key: str = Field(..., description="Queue key in service|date form")
    seats: int = Field(..., ge=1, description="Seats needed to promote the booking")
    rank: int = Field(..., ge=1, description="FIFO rank within the queue")
