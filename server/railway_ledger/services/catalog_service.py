"""Service catalog operations."""

import logging
from typing import Optional

from ..core.exceptions import ConflictError, ServiceNotFoundError
from ..schemas.service import Service, ServiceAvailability
from .inventory_service import InventoryLedger

logger = logging.getLogger(__name__)


class ServiceCatalog:
    """Scheduled services in the order they were added."""

    def __init__(self, inventory: InventoryLedger):
        self.inventory = inventory
        self._services: dict[str, Service] = {}

    def add(self, service: Service) -> Service:
        """
        Add a new service.

        Args:
            service: Service to add

        Returns:
            The added service

        Raises:
            ConflictError: If a service with the same id already exists
        """
        existing = self.find(service.id)
        if existing:
            logger.warning(
                "Service creation failed - id already exists",
                extra={"service_id": service.id, "existing_name": existing.name}
            )
            raise ConflictError(
                detail=f"Service '{service.id}' already exists",
                conflicting_resource={
                    "id": existing.id,
                    "name": existing.name
                }
            )

        self._services[service.id] = service
        logger.info(
            "Service added successfully",
            extra={
                "service_id": service.id,
                "service_name": service.name,
                "total_seats": service.total_seats
            }
        )
        return service

    def remove(self, service_id: str) -> Service:
        """
        Remove a service and its seat allocations.

        Bookings referring to the service are kept as history.

        Raises:
            ServiceNotFoundError: If the service does not exist
        """
        service = self.get(service_id)
        del self._services[service_id]
        self.inventory.drop_service(service_id)
        logger.info("Service removed", extra={"service_id": service_id})
        return service

    def find(self, service_id: str) -> Optional[Service]:
        """Get service by id."""
        return self._services.get(service_id)

    def get(self, service_id: str) -> Service:
        """
        Get service by id or raise ServiceNotFoundError.

        Args:
            service_id: Train number to search for

        Returns:
            Service entity

        Raises:
            ServiceNotFoundError: If service not found
        """
        service = self.find(service_id)
        if not service:
            logger.warning(
                "Service not found",
                extra={"service_id": service_id}
            )
            raise ServiceNotFoundError(service_id)
        return service

    def all(self) -> list[Service]:
        return list(self._services.values())

    def availability(self, journey_date: str, services: Optional[list[Service]] = None) -> list[ServiceAvailability]:
        """
        Seats available on ``journey_date`` for each service.

        Raises:
            InvalidDateError: If the date is malformed
        """
        return [
            ServiceAvailability(
                service=service,
                journey_date=journey_date,
                seats_available=self.inventory.available_seats(service, journey_date),
            )
            for service in (self.all() if services is None else services)
        ]

    def search(self, source: str, destination: str, journey_date: str) -> list[ServiceAvailability]:
        """Direct services on a route with their availability on a date."""
        matches = [
            service for service in self._services.values()
            if service.source == source and service.destination == destination
        ]
        logger.info(
            "Service search completed",
            extra={
                "source": source,
                "destination": destination,
                "journey_date": journey_date,
                "total_found": len(matches)
            }
        )
        return self.availability(journey_date, matches)
