"""Inventory ledger holding per-service, per-date seat counts."""

import logging

from ..core.exceptions import InvalidDateError
from ..schemas.common import is_valid_date
from ..schemas.service import Service

logger = logging.getLogger(__name__)


class InventoryLedger:
    """
    Seat allocation for every (service, date) pair.

    Allocations are created lazily at full capacity the first time a valid
    date is queried or booked, and always satisfy
    ``0 <= seats_available <= service.total_seats``.
    """

    def __init__(self):
        self._allocations: dict[tuple[str, str], int] = {}

    def available_seats(self, service: Service, journey_date: str) -> int:
        """
        Return seats available for a service on a date.

        Args:
            service: Service being queried
            journey_date: Date in MM/DD/YYYY form

        Returns:
            Seats currently available

        Raises:
            InvalidDateError: If the date is malformed
        """
        key = (service.id, journey_date)
        if key not in self._allocations:
            if not is_valid_date(journey_date):
                raise InvalidDateError(journey_date)
            self._allocations[key] = service.total_seats
            logger.debug(
                "Seat allocation initialized",
                extra={
                    "service_id": service.id,
                    "journey_date": journey_date,
                    "seats_available": service.total_seats
                }
            )
        return self._allocations[key]

    def reserve(self, service: Service, journey_date: str, count: int) -> bool:
        """
        Take ``count`` seats if that many are available.

        Returns:
            True if the seats were taken, False with no change otherwise
        """
        if count <= 0:
            return False

        available = self.available_seats(service, journey_date)
        if available < count:
            logger.info(
                "Seat reservation refused - insufficient seats",
                extra={
                    "service_id": service.id,
                    "journey_date": journey_date,
                    "requested_seats": count,
                    "available_seats": available
                }
            )
            return False

        self._allocations[(service.id, journey_date)] = available - count
        return True

    def release(self, service: Service, journey_date: str, count: int) -> int:
        """
        Return ``count`` seats to the pool, clamped to the service capacity.

        Returns:
            Seats available after the release
        """
        available = self.available_seats(service, journey_date)
        restored = available + max(count, 0)
        if restored > service.total_seats:
            # Only a double release can get here
            logger.warning(
                "Seat release clamped to capacity",
                extra={
                    "service_id": service.id,
                    "journey_date": journey_date,
                    "released_seats": count,
                    "available_before": available,
                    "total_seats": service.total_seats
                }
            )
            restored = service.total_seats

        self._allocations[(service.id, journey_date)] = restored
        return restored

    def seat_map(self, service_id: str) -> dict[str, int]:
        """Seats available per known date for a service, in creation order."""
        return {
            journey_date: seats
            for (sid, journey_date), seats in self._allocations.items()
            if sid == service_id
        }

    def restore(self, service: Service, seat_map: dict[str, int]) -> None:
        """Load persisted allocations for a service; values must already be validated."""
        for journey_date, seats in seat_map.items():
            self._allocations[(service.id, journey_date)] = seats

    def drop_service(self, service_id: str) -> None:
        """Forget every allocation of a removed service."""
        for key in [key for key in self._allocations if key[0] == service_id]:
            del self._allocations[key]
