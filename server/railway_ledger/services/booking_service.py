"""Booking ledger owning booking records and their status transitions."""

import logging
from decimal import Decimal
from typing import Optional

from ..core.exceptions import ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from ..schemas.booking import Booking, BookingStatus, Rider

logger = logging.getLogger(__name__)

# Allowed status changes; anything else is rejected
TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.WAITLISTED: frozenset({BookingStatus.CANCELLED, BookingStatus.CONFIRMED}),
    BookingStatus.CANCELLED: frozenset(),
}


class BookingLedger:
    """Booking records in insertion order, indexed by reference."""

    def __init__(self):
        self._bookings: dict[str, Booking] = {}

    def create(
        self,
        reference: str,
        service_id: str,
        journey_date: str,
        riders: list[Rider],
        fare: Decimal,
        status: BookingStatus,
    ) -> Booking:
        """
        Record a new booking.

        Args:
            reference: Issued booking reference
            service_id: Booked service
            journey_date: Date of journey
            riders: Riders in booking order
            fare: Total fare charged
            status: Initial status

        Returns:
            The stored booking

        Raises:
            ValidationError: If the reference is empty
            ConflictError: If the reference is already recorded
        """
        if not reference:
            raise ValidationError(detail="Booking reference must not be empty")
        if reference in self._bookings:
            raise ConflictError(
                detail=f"Booking reference {reference} already exists",
                conflicting_resource={"reference": reference}
            )

        booking = Booking(
            reference=reference,
            service_id=service_id,
            journey_date=journey_date,
            riders=list(riders),
            fare=fare,
            status=status,
        )
        self._bookings[reference] = booking
        return booking

    def add(self, booking: Booking) -> Booking:
        """Insert a booking loaded from a snapshot."""
        return self.create(
            booking.reference,
            booking.service_id,
            booking.journey_date,
            booking.riders,
            booking.fare,
            booking.status,
        )

    def find(self, reference: str) -> Optional[Booking]:
        """Get booking by reference."""
        return self._bookings.get(reference)

    def get(self, reference: str) -> Booking:
        """Get booking by reference or raise NotFoundError."""
        booking = self.find(reference)
        if booking is None:
            raise NotFoundError(resource_type="booking", resource_id=reference)
        return booking

    def set_status(self, reference: str, new_status: BookingStatus) -> Booking:
        """
        Move a booking to ``new_status``.

        Raises:
            NotFoundError: If the booking does not exist
            InvalidTransitionError: If the state machine forbids the change
        """
        booking = self.get(reference)
        if new_status not in TRANSITIONS[booking.status]:
            logger.warning(
                "Booking status transition rejected",
                extra={
                    "reference": reference,
                    "current_status": booking.status.value,
                    "requested_status": new_status.value
                }
            )
            raise InvalidTransitionError(reference, booking.status.value, new_status.value)

        previous = booking.status
        booking.status = new_status
        logger.info(
            "Booking status changed",
            extra={
                "reference": reference,
                "from_status": previous.value,
                "to_status": new_status.value
            }
        )
        return booking

    def all(self) -> list[Booking]:
        """All bookings in insertion order."""
        return list(self._bookings.values())

    def for_service(self, service_id: str) -> list[Booking]:
        return [b for b in self._bookings.values() if b.service_id == service_id]

    def __len__(self) -> int:
        return len(self._bookings)
