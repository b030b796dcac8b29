"""Reservation coordinator: booking, cancellation and waitlist promotion."""

from decimal import Decimal
from typing import Optional

from opentelemetry import trace

from ..core.exceptions import (
    AlreadyCancelledError,
    InvalidDateError,
    LedgerError,
    NotFoundError,
    PaymentDeclinedError,
    PersistenceWriteError,
    ServiceNotFoundError,
    ValidationError,
)
from ..core.observability import get_logger, metrics_collector
from ..schemas.booking import (
    Booking,
    BookingOutcome,
    BookingRequest,
    BookingResult,
    BookingStatus,
    CancellationOutcome,
    CancellationResult,
    PromotionOutcome,
)
from ..schemas.common import Problem, is_valid_date, queue_key, to_money
from ..schemas.service import Service
from ..schemas.snapshot import ServiceSnapshot, Snapshot
from .booking_service import BookingLedger
from .catalog_service import ServiceCatalog
from .inventory_service import InventoryLedger
from .payment_service import PaymentGateway, TransactionLog
from .reference_service import ReferenceGenerator
from .snapshot_service import SnapshotStore
from .user_service import UserDirectory
from .waitlist_service import WaitlistQueue

logger = get_logger(__name__)
tracer = trace.get_tracer(__name__)

DEFAULT_REFUND_RATIO = 0.8
DEFAULT_MAX_RIDERS = 6


def _problem(error: LedgerError) -> Problem:
    return Problem(code=error.code, title=error.title, detail=error.detail)


class ReservationCoordinator:
    """
    Orchestrates inventory, references, payments, bookings and waitlists.

    Business failures never escape as exceptions: every public operation
    returns an outcome carrying either the result or a ``Problem``.
    The snapshot is saved after each operation that changed state.
    """

    def __init__(
        self,
        catalog: ServiceCatalog,
        bookings: BookingLedger,
        waitlist: WaitlistQueue,
        references: ReferenceGenerator,
        payments: PaymentGateway,
        transaction_log: TransactionLog,
        users: UserDirectory,
        store: Optional[SnapshotStore] = None,
        refund_ratio: float = DEFAULT_REFUND_RATIO,
        max_riders_per_group: int = DEFAULT_MAX_RIDERS,
    ):
        self.catalog = catalog
        self.bookings = bookings
        self.waitlist = waitlist
        self.references = references
        self.payments = payments
        self.transaction_log = transaction_log
        self.users = users
        self.store = store
        self.refund_ratio = refund_ratio
        self.max_riders_per_group = max_riders_per_group

    @property
    def inventory(self) -> InventoryLedger:
        return self.catalog.inventory

    # Booking

    def book(self, request: BookingRequest) -> BookingOutcome:
        """
        Book one group on one service and date.

        A reference is issued before payment is attempted, so a declined
        payment still consumes one.

        Args:
            request: Service, date and riders to book

        Returns:
            CONFIRMED or WAITLISTED outcome, or REJECTED with a problem
        """
        with tracer.start_as_current_span("reservation.book") as span:
            span.set_attribute("ledger.service_id", request.service_id)
            span.set_attribute("ledger.journey_date", request.journey_date)
            span.set_attribute("ledger.riders", len(request.riders))
            try:
                outcome = self._book(request)
            except LedgerError as e:
                logger.warning(
                    "Booking request rejected",
                    service_id=request.service_id,
                    journey_date=request.journey_date,
                    code=e.code.value,
                    detail=e.detail,
                )
                outcome = BookingOutcome(
                    result=BookingResult.REJECTED,
                    service_id=request.service_id,
                    journey_date=request.journey_date,
                    problem=_problem(e),
                )
            span.set_attribute("ledger.result", outcome.result.value)
            metrics_collector.record_booking(request.service_id, outcome.result.value)
            return outcome

    def book_many(self, requests: list[BookingRequest]) -> list[BookingOutcome]:
        """Book several groups; each succeeds or fails on its own."""
        return [self.book(request) for request in requests]

    def _book(self, request: BookingRequest) -> BookingOutcome:
        if not is_valid_date(request.journey_date):
            raise InvalidDateError(request.journey_date)
        if len(request.riders) > self.max_riders_per_group:
            raise ValidationError(
                detail=f"A group may hold at most {self.max_riders_per_group} riders",
                errors={"riders": len(request.riders)},
            )

        service = self.catalog.get(request.service_id)
        rider_count = len(request.riders)
        fare = to_money(service.base_fare * rider_count)

        reference = self.references.next()
        while self.bookings.find(reference) is not None:
            logger.error("Issued reference already recorded - skipping", reference=reference)
            reference = self.references.next()
        self.transaction_log.record(reference, "BOOKING_ATTEMPT", "PENDING_PAYMENT")

        available = self.inventory.available_seats(service, request.journey_date)
        if available >= rider_count:
            if not self.payments.attempt_payment(fare):
                return self._payment_declined(request, reference, fare)
            if self.inventory.reserve(service, request.journey_date, rider_count):
                status = BookingStatus.CONFIRMED
                self.transaction_log.record(reference, "PAYMENT_SUCCESS", "COMMITTED")
            else:
                logger.error(
                    "Seats vanished between check and reserve - booking waitlisted",
                    reference=reference,
                    service_id=service.id,
                    journey_date=request.journey_date,
                )
                status = BookingStatus.WAITLISTED
                self.transaction_log.record(reference, "PAYMENT_SUCCESS", "WAITLISTED")
        else:
            # Waitlisted seats are paid for up front
            if not self.payments.attempt_payment(fare):
                return self._payment_declined(request, reference, fare)
            status = BookingStatus.WAITLISTED
            self.transaction_log.record(reference, "PAYMENT_SUCCESS", "WAITLISTED")

        booking = self.bookings.create(
            reference=reference,
            service_id=service.id,
            journey_date=request.journey_date,
            riders=request.riders,
            fare=fare,
            status=status,
        )

        rank = None
        key = queue_key(service.id, request.journey_date)
        if status == BookingStatus.WAITLISTED:
            rank = self.waitlist.enqueue(key, reference, booking.seat_count)
            metrics_collector.set_waitlist_depth(key, self.waitlist.depth(key))

        metrics_collector.set_seats_available(
            service.id, request.journey_date, self.inventory.available_seats(service, request.journey_date)
        )
        logger.info(
            "Booking recorded",
            reference=reference,
            service_id=service.id,
            journey_date=request.journey_date,
            status=status.value,
            seats=rider_count,
            fare=str(fare),
            waitlist_rank=rank,
        )

        self._persist()
        return BookingOutcome(
            result=BookingResult(status.value),
            service_id=service.id,
            journey_date=request.journey_date,
            reference=reference,
            fare=fare,
            waitlist_rank=rank,
        )

    def _payment_declined(self, request: BookingRequest, reference: str, fare) -> BookingOutcome:
        self.transaction_log.record(reference, "PAYMENT_FAILED", "ROLLED_BACK")
        metrics_collector.record_payment_declined(request.service_id)
        error = PaymentDeclinedError(reference, fare)
        logger.warning(
            "Payment declined - ticket not issued",
            reference=reference,
            service_id=request.service_id,
            fare=str(fare),
        )
        return BookingOutcome(
            result=BookingResult.REJECTED,
            service_id=request.service_id,
            journey_date=request.journey_date,
            reference=reference,
            fare=fare,
            problem=_problem(error),
        )

    # Cancellation

    def cancel(self, reference: str) -> CancellationOutcome:
        """
        Cancel a booking and refund it.

        Confirmed bookings refund ``refund_ratio`` of the fare and hand their
        seats to the waitlist; waitlisted bookings refund the full fare.
        Cancelling an already cancelled booking changes nothing.
        """
        with tracer.start_as_current_span("reservation.cancel") as span:
            span.set_attribute("ledger.reference", reference)
            try:
                outcome = self._cancel(reference)
            except LedgerError as e:
                logger.warning("Cancellation rejected", reference=reference, code=e.code.value, detail=e.detail)
                booking = self.bookings.find(reference)
                outcome = CancellationOutcome(
                    result=CancellationResult.REJECTED,
                    reference=reference,
                    prior_status=booking.status if booking else None,
                    problem=_problem(e),
                )
            span.set_attribute("ledger.result", outcome.result.value)
            return outcome

    def _cancel(self, reference: str) -> CancellationOutcome:
        booking = self.bookings.find(reference)
        if booking is None:
            raise NotFoundError(resource_type="booking", resource_id=reference)
        if booking.status == BookingStatus.CANCELLED:
            raise AlreadyCancelledError(reference)

        prior_status = booking.status
        self.transaction_log.record(reference, "CANCELLATION_ATTEMPT", "PENDING_REFUND")

        promoted: list[str] = []
        if prior_status == BookingStatus.CONFIRMED:
            service = self.catalog.find(booking.service_id)
            if service is None:
                self.transaction_log.record(reference, "CANCELLATION_FAILED", "SERVICE_NOT_FOUND")
                raise ServiceNotFoundError(booking.service_id)

            self.inventory.release(service, booking.journey_date, booking.seat_count)
            available = self.inventory.available_seats(service, booking.journey_date)
            logger.info(
                "Seats released",
                reference=reference,
                service_id=service.id,
                journey_date=booking.journey_date,
                freed_seats=booking.seat_count,
                available_seats=available,
            )
            promoted = self._promote(service, booking.journey_date, available)
            refund = to_money(booking.fare * Decimal(str(self.refund_ratio)))
            self.payments.issue_refund(refund)
            self.bookings.set_status(reference, BookingStatus.CANCELLED)
            self.transaction_log.record(reference, "CANCELLATION_SUCCESS", "COMMITTED")
        else:
            key = queue_key(booking.service_id, booking.journey_date)
            self.waitlist.remove(key, reference)
            metrics_collector.set_waitlist_depth(key, self.waitlist.depth(key))
            refund = to_money(booking.fare)
            self.payments.issue_refund(refund)
            self.bookings.set_status(reference, BookingStatus.CANCELLED)
            self.transaction_log.record(reference, "CANCELLATION_SUCCESS_WAITLISTED", "COMMITTED")

        metrics_collector.record_cancellation(prior_status.value)
        logger.info(
            "Booking cancelled",
            reference=reference,
            prior_status=prior_status.value,
            refund=str(refund),
            promoted=promoted,
        )

        self._persist()
        return CancellationOutcome(
            result=CancellationResult.CANCELLED,
            reference=reference,
            prior_status=prior_status,
            refund=refund,
            promoted=promoted,
        )

    # Waitlist promotion

    def promote_waitlist(self, service_id: str, journey_date: str) -> PromotionOutcome:
        """Promote waitlisted bookings into whatever seats are free right now."""
        with tracer.start_as_current_span("reservation.promote") as span:
            span.set_attribute("ledger.service_id", service_id)
            span.set_attribute("ledger.journey_date", journey_date)
            try:
                if not is_valid_date(journey_date):
                    raise InvalidDateError(journey_date)
                service = self.catalog.get(service_id)
            except LedgerError as e:
                return PromotionOutcome(service_id=service_id, journey_date=journey_date, problem=_problem(e))

            seats_before = self.inventory.available_seats(service, journey_date)
            promoted = self._promote(service, journey_date, seats_before)
            seats_after = self.inventory.available_seats(service, journey_date)
            if promoted:
                self._persist()
            return PromotionOutcome(
                service_id=service_id,
                journey_date=journey_date,
                seats_before=seats_before,
                seats_after=seats_after,
                promoted=promoted,
            )

    def _promote(self, service: Service, journey_date: str, freed_seats: int) -> list[str]:
        key = queue_key(service.id, journey_date)
        seats_needed = {entry.reference: entry.seats for entry in self.waitlist.entries(key)}
        promoted = self.waitlist.promote(
            key,
            freed_seats,
            lambda seats: self.inventory.reserve(service, journey_date, seats),
        )

        confirmed = []
        for reference in promoted:
            try:
                self.bookings.set_status(reference, BookingStatus.CONFIRMED)
            except LedgerError as e:
                self.inventory.release(service, journey_date, seats_needed[reference])
                logger.error(
                    "Promoted waitlist entry has no waitlisted booking - seats returned",
                    reference=reference,
                    queue_key=key,
                    seats=seats_needed[reference],
                    code=e.code.value,
                )
                continue
            self.transaction_log.record(reference, "WAITLIST_PROMOTED", "COMMITTED")
            confirmed.append(reference)

        if confirmed:
            metrics_collector.record_promotion(service.id, len(confirmed))
        metrics_collector.set_waitlist_depth(key, self.waitlist.depth(key))
        metrics_collector.set_seats_available(
            service.id, journey_date, self.inventory.available_seats(service, journey_date)
        )
        return confirmed

    # Catalog administration

    def add_service(self, service: Service) -> Service:
        """
        Add a service to the catalog and persist.

        Raises:
            ConflictError: If the service id is taken
        """
        self.catalog.add(service)
        self._persist()
        return service

    def remove_service(self, service_id: str) -> Service:
        """
        Remove a service and its seat maps; its bookings stay as history.

        Raises:
            ServiceNotFoundError: If the service does not exist
        """
        service = self.catalog.remove(service_id)
        logger.info(
            "Service removed from catalog",
            service_id=service_id,
            bookings_kept=len(self.bookings.for_service(service_id)),
        )
        self._persist()
        return service

    # Queries

    def find_booking(self, reference: str) -> Optional[Booking]:
        return self.bookings.find(reference)

    def waitlist_rank(self, reference: str) -> Optional[int]:
        entry = self.waitlist.find(reference)
        return entry.rank if entry else None

    def history(self, reference: str) -> list[str]:
        return self.transaction_log.history(reference)

    # Snapshot

    def export_snapshot(self) -> Snapshot:
        """Current services, seat maps, bookings and users."""
        return Snapshot(
            services=[
                ServiceSnapshot(service=service, seat_map=self.inventory.seat_map(service.id))
                for service in self.catalog.all()
            ],
            bookings=[booking.model_copy(deep=True) for booking in self.bookings.all()],
            users=self.users.all(),
        )

    def load_snapshot(self, snapshot: Snapshot) -> None:
        """Populate empty components from a snapshot, rebuilding waitlist queues."""
        for entry in snapshot.services:
            self.catalog.add(entry.service)
            self.inventory.restore(entry.service, entry.seat_map)

        for booking in snapshot.bookings:
            self.bookings.add(booking)
            if booking.status == BookingStatus.WAITLISTED:
                self.waitlist.enqueue(
                    queue_key(booking.service_id, booking.journey_date),
                    booking.reference,
                    booking.seat_count,
                )

        issued = [int(booking.reference) for booking in snapshot.bookings if booking.reference.isdigit()]
        if issued:
            self.references.ensure_above(max(issued))

        for user in snapshot.users:
            self.users.add(user)

        logger.info(
            "Snapshot loaded",
            services=len(snapshot.services),
            bookings=len(snapshot.bookings),
            users=len(snapshot.users),
        )

    def save(self) -> None:
        self._persist()

    def _persist(self) -> None:
        if self.store is None:
            return
        try:
            self.store.save(self.export_snapshot())
        except PersistenceWriteError as e:
            # In-memory state stays authoritative until the next successful save
            logger.error("Snapshot not persisted", code=e.code.value, detail=e.detail)
