"""Snapshot store persisting the full ledger through SQLAlchemy."""

import logging
from collections import defaultdict
from decimal import Decimal

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload, sessionmaker

from ..core.exceptions import CorruptPersistedStateError, PersistenceWriteError
from ..models import BookingRecord, RiderRecord, SeatAllocationRecord, ServiceRecord, UserRecord
from ..schemas.booking import Booking, BookingStatus, Rider
from ..schemas.common import from_minor_units, is_valid_date, queue_key, to_minor_units
from ..schemas.service import Service, ServiceKind
from ..schemas.snapshot import ServiceSnapshot, Snapshot
from ..schemas.user import User, UserRole

logger = logging.getLogger(__name__)


def default_snapshot() -> Snapshot:
    """Catalog and accounts used when nothing has been persisted yet."""
    return Snapshot(
        services=[
            ServiceSnapshot(service=Service(
                id="ET001",
                kind=ServiceKind.EXPRESS,
                name="Fast Express",
                source="CityA",
                destination="CityB",
                total_seats=10,
                base_fare=Decimal("55.00"),
                has_pantry=True,
            )),
            ServiceSnapshot(service=Service(
                id="SR205",
                kind=ServiceKind.EXPRESS,
                name="Slow Runner",
                source="CityB",
                destination="CityC",
                total_seats=50,
                base_fare=Decimal("75.50"),
                has_pantry=False,
            )),
        ],
        users=[
            User(role=UserRole.ADMIN, username="admin", password="123"),
            User(role=UserRole.CUSTOMER, username="user", password="123"),
        ],
    )


def _parse_service(record: ServiceRecord) -> Service:
    try:
        return Service(
            id=record.id,
            kind=record.kind,
            name=record.name,
            source=record.source,
            destination=record.destination,
            total_seats=record.total_seats,
            base_fare=from_minor_units(record.base_fare_minor),
            has_pantry=record.has_pantry,
        )
    except (PydanticValidationError, TypeError, ArithmeticError) as e:
        raise CorruptPersistedStateError("services", f"Service {record.id!r} unreadable: {e}") from e


def _parse_booking(record: BookingRecord) -> Booking:
    if not is_valid_date(record.journey_date):
        raise CorruptPersistedStateError(
            "bookings", f"Booking {record.reference!r} has malformed date {record.journey_date!r}"
        )
    try:
        return Booking(
            reference=record.reference,
            service_id=record.service_id,
            journey_date=record.journey_date,
            riders=[
                Rider(name=rider.name, age=rider.age, gender=rider.gender)
                for rider in record.riders
            ],
            fare=from_minor_units(record.fare_minor),
            status=record.status,
        )
    except (PydanticValidationError, TypeError, ArithmeticError) as e:
        raise CorruptPersistedStateError("bookings", f"Booking {record.reference!r} unreadable: {e}") from e


def _parse_user(record: UserRecord) -> User:
    try:
        return User(role=record.role, username=record.username, password=record.password)
    except PydanticValidationError as e:
        raise CorruptPersistedStateError("users", f"User {record.username!r} unreadable: {e}") from e


class SnapshotStore:
    """
    Full-snapshot persistence of services, seat maps, bookings and users.

    ``save`` rewrites every table in a single transaction. ``load`` never
    raises on bad rows: each unreadable row is skipped with a warning and each
    out-of-range seat count is rebuilt from the confirmed bookings.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def save(self, snapshot: Snapshot) -> None:
        """
        Replace the persisted state with ``snapshot``.

        Raises:
            PersistenceWriteError: If the transaction fails
        """
        try:
            with self.session_factory.begin() as session:
                session.execute(delete(RiderRecord))
                session.execute(delete(BookingRecord))
                session.execute(delete(SeatAllocationRecord))
                session.execute(delete(ServiceRecord))
                session.execute(delete(UserRecord))

                for position, entry in enumerate(snapshot.services):
                    service = entry.service
                    session.add(ServiceRecord(
                        id=service.id,
                        position=position,
                        kind=service.kind.value,
                        name=service.name,
                        source=service.source,
                        destination=service.destination,
                        total_seats=service.total_seats,
                        base_fare_minor=to_minor_units(service.base_fare),
                        has_pantry=service.has_pantry,
                        allocations=[
                            SeatAllocationRecord(journey_date=journey_date, seats_available=seats)
                            for journey_date, seats in entry.seat_map.items()
                        ],
                    ))

                for booking in snapshot.bookings:
                    session.add(BookingRecord(
                        reference=booking.reference,
                        service_id=booking.service_id,
                        journey_date=booking.journey_date,
                        fare_minor=to_minor_units(booking.fare),
                        status=booking.status.value,
                        riders=[
                            RiderRecord(position=position, name=rider.name, age=rider.age, gender=rider.gender.value)
                            for position, rider in enumerate(booking.riders)
                        ],
                    ))
                    # Keep insertion order stable through autoincrement ids
                    session.flush()

                for user in snapshot.users:
                    session.add(UserRecord(role=user.role.value, username=user.username, password=user.password))
        except SQLAlchemyError as e:
            logger.error("Snapshot save failed", extra={"error": str(e)})
            raise PersistenceWriteError("snapshot", f"Snapshot save failed: {e}") from e

        logger.debug(
            "Snapshot saved",
            extra={
                "services": len(snapshot.services),
                "bookings": len(snapshot.bookings),
                "users": len(snapshot.users)
            }
        )

    def load(self) -> Snapshot:
        """Read the persisted snapshot, degrading bad rows to safe defaults."""
        with self.session_factory() as session:
            service_rows = session.scalars(
                select(ServiceRecord)
                .options(selectinload(ServiceRecord.allocations))
                .order_by(ServiceRecord.position)
            ).all()
            booking_rows = session.scalars(
                select(BookingRecord)
                .options(selectinload(BookingRecord.riders))
                .order_by(BookingRecord.id)
            ).all()
            user_rows = session.scalars(select(UserRecord).order_by(UserRecord.id)).all()

            bookings = self._load_rows(booking_rows, _parse_booking)
            users = self._load_rows(user_rows, _parse_user)

            confirmed_seats: dict[str, int] = defaultdict(int)
            for booking in bookings:
                if booking.status == BookingStatus.CONFIRMED:
                    confirmed_seats[queue_key(booking.service_id, booking.journey_date)] += booking.seat_count

            services = []
            for record in service_rows:
                try:
                    service = _parse_service(record)
                except CorruptPersistedStateError as e:
                    logger.warning("Skipping corrupt persisted row", extra=e.problem_details)
                    continue
                seat_map = {
                    allocation.journey_date: allocation.seats_available
                    for allocation in record.allocations
                }
                services.append(ServiceSnapshot(
                    service=service,
                    seat_map=self._checked_seat_map(service, seat_map, confirmed_seats),
                ))

        return Snapshot(services=services, bookings=bookings, users=users)

    @staticmethod
    def _load_rows(rows, parse) -> list:
        loaded = []
        for row in rows:
            try:
                loaded.append(parse(row))
            except CorruptPersistedStateError as e:
                logger.warning("Skipping corrupt persisted row", extra=e.problem_details)
        return loaded

    @staticmethod
    def _checked_seat_map(
        service: Service,
        seat_map: dict[str, int],
        confirmed_seats: dict[str, int],
    ) -> dict[str, int]:
        checked = {}
        for journey_date, seats in seat_map.items():
            if not is_valid_date(journey_date):
                logger.warning(
                    "Dropping seat allocation with malformed date",
                    extra={"service_id": service.id, "journey_date": journey_date}
                )
                continue
            if not isinstance(seats, int) or not 0 <= seats <= service.total_seats:
                rebuilt = max(service.total_seats - confirmed_seats[queue_key(service.id, journey_date)], 0)
                logger.warning(
                    "Seat allocation out of range - rebuilt from confirmed bookings",
                    extra={
                        "service_id": service.id,
                        "journey_date": journey_date,
                        "persisted_seats": seats,
                        "rebuilt_seats": rebuilt
                    }
                )
                seats = rebuilt
            checked[journey_date] = seats
        return checked
