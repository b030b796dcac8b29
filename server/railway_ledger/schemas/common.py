"""Common Pydantic schemas and value helpers."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from pydantic import BaseModel, Field

from ..core.exceptions import ErrorCode

DATE_FORMAT_HINT = "MM/DD/YYYY"

CENTS = Decimal("0.01")


def is_valid_date(value: str) -> bool:
    """
    Check a journey date in MM/DD/YYYY form.

    Only the shape and the month/day ranges are checked; day 31 is accepted
    for every month.
    """
    if not isinstance(value, str) or len(value) != 10:
        return False
    if value[2] != "/" or value[5] != "/":
        return False
    digits = value[0:2] + value[3:5] + value[6:10]
    if not (digits.isascii() and digits.isdigit()):
        return False
    month = int(value[0:2])
    day = int(value[3:5])
    return 1 <= month <= 12 and 1 <= day <= 31


def queue_key(service_id: str, journey_date: str) -> str:
    """Compound key partitioning waitlist queues."""
    return f"{service_id}|{journey_date}"


def to_money(value) -> Decimal:
    """Quantize an amount to two decimal places."""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal) -> int:
    """Convert an amount to minor units (e.g., paise)."""
    return int(to_money(amount) * 100)


def from_minor_units(value: int) -> Decimal:
    return (Decimal(value) / 100).quantize(CENTS)


class Problem(BaseModel):
    """Failure summary attached to an outcome."""

    code: ErrorCode = Field(..., description="Application-specific error code")
    title: str = Field(..., description="Short human-readable summary")
    detail: Optional[str] = Field(None, description="Human-readable explanation")
