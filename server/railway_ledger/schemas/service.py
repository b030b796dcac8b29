"""Service (train) Pydantic schemas."""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field


class ServiceKind(str, Enum):
    """Closed set of service kinds."""
    EXPRESS = "EXPRESS"


class Service(BaseModel):
    """A scheduled service with fixed capacity and a per-seat fare."""

    id: str = Field(..., min_length=1, max_length=16, pattern=r"^\S+$", description="Train number, e.g. ET001")
    kind: ServiceKind = Field(ServiceKind.EXPRESS, description="Service kind")
    name: str = Field(..., min_length=1, max_length=128, description="Display name")
    source: str = Field(..., min_length=1, max_length=64, description="Origin station")
    destination: str = Field(..., min_length=1, max_length=64, description="Terminal station")
    total_seats: int = Field(..., ge=1, description="Seats available on every date")
    base_fare: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2, description="Fare per seat")
    has_pantry: bool = Field(False, description="Express services only: pantry car attached")

    model_config = {"frozen": True, "from_attributes": True}


class ServiceAvailability(BaseModel):
    """A service together with its seats on one date."""

    service: Service
    journey_date: str
    seats_available: int = Field(..., ge=0)
