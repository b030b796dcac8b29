"""Unit tests for the reservation coordinator."""

from decimal import Decimal

import pytest

from railway_ledger.core.exceptions import ErrorCode, PersistenceWriteError
from railway_ledger.main import LedgerContext
from railway_ledger.schemas.booking import BookingResult, BookingStatus, CancellationResult
from railway_ledger.services.reference_service import ReferenceGenerator

JOURNEY_DATE = "12/25/2025"
KEY = f"ET001|{JOURNEY_DATE}"


def _seats(context, service_id="ET001", journey_date=JOURNEY_DATE):
    return context.inventory.available_seats(context.catalog.get(service_id), journey_date)


def _events(coordinator, reference):
    return [line.split("|", 1)[1] for line in coordinator.history(reference)]


def test_book_confirmed(ledger_context, coordinator, make_request, payments):
    """Test a booking that fits is confirmed, charged and logged."""
    outcome = coordinator.book(make_request(3))

    assert outcome.result == BookingResult.CONFIRMED
    assert outcome.reference == "100000000001"
    assert outcome.fare == Decimal("165.00")
    assert outcome.waitlist_rank is None
    assert payments.charges == [Decimal("165.00")]
    assert _seats(ledger_context) == 7
    assert coordinator.find_booking("100000000001").status == BookingStatus.CONFIRMED
    assert _events(coordinator, "100000000001") == [
        "100000000001|BOOKING_ATTEMPT|PENDING_PAYMENT",
        "100000000001|PAYMENT_SUCCESS|COMMITTED",
    ]


def test_full_service_waitlists_then_promotes_on_cancel(ledger_context, coordinator, make_request, payments):
    """Test the sold-out ET001 flow: waitlist rank 1, then promotion when 3 seats free up."""
    first = coordinator.book(make_request(3))
    coordinator.book(make_request(6))
    coordinator.book(make_request(1))
    assert _seats(ledger_context) == 0

    waiting = coordinator.book(make_request(1))

    assert waiting.result == BookingResult.WAITLISTED
    assert waiting.waitlist_rank == 1
    assert coordinator.waitlist.entries(KEY)[0].reference == waiting.reference
    assert _events(coordinator, waiting.reference)[-1] == f"{waiting.reference}|PAYMENT_SUCCESS|WAITLISTED"

    cancelled = coordinator.cancel(first.reference)

    assert cancelled.result == CancellationResult.CANCELLED
    assert cancelled.prior_status == BookingStatus.CONFIRMED
    assert cancelled.refund == Decimal("132.00")
    assert cancelled.promoted == [waiting.reference]
    assert coordinator.find_booking(waiting.reference).status == BookingStatus.CONFIRMED
    assert coordinator.find_booking(first.reference).status == BookingStatus.CANCELLED
    assert _seats(ledger_context) == 2
    assert coordinator.waitlist.depth(KEY) == 0
    assert payments.refunds == [Decimal("132.00")]
    assert f"{waiting.reference}|WAITLIST_PROMOTED|COMMITTED" in _events(coordinator, waiting.reference)
    assert _events(coordinator, first.reference)[-2:] == [
        f"{first.reference}|CANCELLATION_ATTEMPT|PENDING_REFUND",
        f"{first.reference}|CANCELLATION_SUCCESS|COMMITTED",
    ]


def test_cancel_promotes_smaller_entry_past_larger_head(ledger_context, coordinator, make_request):
    """Test that freed seats go to the first entry that fits, keeping the head queued."""
    small_confirmed = coordinator.book(make_request(3))
    coordinator.book(make_request(5))
    coordinator.book(make_request(2))
    big = coordinator.book(make_request(5))
    small = coordinator.book(make_request(2))
    assert (big.waitlist_rank, small.waitlist_rank) == (1, 2)

    outcome = coordinator.cancel(small_confirmed.reference)

    assert outcome.promoted == [small.reference]
    assert [entry.reference for entry in coordinator.waitlist.entries(KEY)] == [big.reference]
    assert coordinator.waitlist_rank(big.reference) == 1
    assert _seats(ledger_context) == 1


def test_invalid_date_rejected_before_reference(ledger_context, coordinator, make_request, payments, test_settings):
    """Test that a malformed date burns no reference and attempts no payment."""
    outcome = coordinator.book(make_request(1, journey_date="13/40/2025"))

    assert outcome.result == BookingResult.REJECTED
    assert outcome.problem.code == ErrorCode.INVALID_DATE
    assert outcome.reference is None
    assert payments.charges == []
    assert coordinator.references.current == test_settings.reference_floor
    assert len(coordinator.bookings) == 0


def test_unknown_service_rejected(coordinator, make_request, payments):
    outcome = coordinator.book(make_request(1, service_id="ZZ999"))

    assert outcome.result == BookingResult.REJECTED
    assert outcome.problem.code == ErrorCode.SERVICE_NOT_FOUND
    assert outcome.reference is None
    assert payments.charges == []


def test_too_many_riders_rejected(coordinator, make_request, payments):
    """Test that a group above the per-group limit is rejected as an invalid request."""
    outcome = coordinator.book(make_request(7))

    assert outcome.result == BookingResult.REJECTED
    assert outcome.problem.code == ErrorCode.INVALID_REQUEST
    assert payments.charges == []


def test_declined_payment_burns_reference(ledger_context, coordinator, make_request, payments):
    """Test that a declined payment records nothing but still consumes its reference."""
    payments.outcomes = [False]

    declined = coordinator.book(make_request(2))

    assert declined.result == BookingResult.REJECTED
    assert declined.problem.code == ErrorCode.PAYMENT_DECLINED
    assert declined.reference == "100000000001"
    assert coordinator.find_booking("100000000001") is None
    assert _seats(ledger_context) == 10
    assert _events(coordinator, "100000000001")[-1] == "100000000001|PAYMENT_FAILED|ROLLED_BACK"

    retry = coordinator.book(make_request(2))

    assert retry.reference == "100000000002"
    assert retry.result == BookingResult.CONFIRMED


def test_declined_payment_while_waitlisting(ledger_context, coordinator, make_request, payments):
    coordinator.book(make_request(6))
    coordinator.book(make_request(4))
    payments.outcomes = [False]

    outcome = coordinator.book(make_request(1))

    assert outcome.problem.code == ErrorCode.PAYMENT_DECLINED
    assert coordinator.waitlist.depth(KEY) == 0


def test_cancel_waitlisted_refunds_in_full(ledger_context, coordinator, make_request, payments):
    """Test that cancelling a waitlisted booking leaves the queue and refunds the whole fare."""
    coordinator.book(make_request(6))
    coordinator.book(make_request(4))
    waiting = coordinator.book(make_request(2))

    outcome = coordinator.cancel(waiting.reference)

    assert outcome.result == CancellationResult.CANCELLED
    assert outcome.prior_status == BookingStatus.WAITLISTED
    assert outcome.refund == Decimal("110.00")
    assert outcome.promoted == []
    assert coordinator.waitlist.depth(KEY) == 0
    assert _seats(ledger_context) == 0
    assert _events(coordinator, waiting.reference)[-1] == (
        f"{waiting.reference}|CANCELLATION_SUCCESS_WAITLISTED|COMMITTED"
    )


def test_cancel_twice_is_noop(ledger_context, coordinator, make_request, payments):
    """Test that a second cancellation neither releases seats nor refunds again."""
    booking = coordinator.book(make_request(2))
    coordinator.cancel(booking.reference)

    again = coordinator.cancel(booking.reference)

    assert again.result == CancellationResult.REJECTED
    assert again.problem.code == ErrorCode.ALREADY_CANCELLED
    assert again.prior_status == BookingStatus.CANCELLED
    assert len(payments.refunds) == 1
    assert _seats(ledger_context) == 10


def test_cancel_unknown_reference(coordinator):
    outcome = coordinator.cancel("999999999999")

    assert outcome.result == CancellationResult.REJECTED
    assert outcome.problem.code == ErrorCode.NOT_FOUND


def test_cancel_after_service_removed(coordinator, make_request, payments):
    """Test that a confirmed booking on a removed service cannot be cancelled."""
    booking = coordinator.book(make_request(2))
    coordinator.remove_service("ET001")

    outcome = coordinator.cancel(booking.reference)

    assert outcome.problem.code == ErrorCode.SERVICE_NOT_FOUND
    assert coordinator.find_booking(booking.reference).status == BookingStatus.CONFIRMED
    assert payments.refunds == []


def test_book_many_groups_are_independent(coordinator, make_request):
    """Test that one failing group does not affect the others."""
    outcomes = coordinator.book_many([
        make_request(2),
        make_request(1, journey_date="02/30/20x5"),
        make_request(3, service_id="SR205"),
    ])

    assert [outcome.result for outcome in outcomes] == [
        BookingResult.CONFIRMED,
        BookingResult.REJECTED,
        BookingResult.CONFIRMED,
    ]
    assert outcomes[2].fare == Decimal("226.50")


def test_manual_promotion(ledger_context, coordinator, make_request):
    """Test promoting against seats freed outside a cancellation."""
    coordinator.book(make_request(5))
    coordinator.book(make_request(5))
    big = coordinator.book(make_request(5))
    small = coordinator.book(make_request(2))
    ledger_context.inventory.release(ledger_context.catalog.get("ET001"), JOURNEY_DATE, 3)

    outcome = coordinator.promote_waitlist("ET001", JOURNEY_DATE)

    assert outcome.problem is None
    assert outcome.seats_before == 3
    assert outcome.seats_after == 1
    assert outcome.promoted == [small.reference]
    assert coordinator.find_booking(small.reference).status == BookingStatus.CONFIRMED
    assert coordinator.waitlist_rank(big.reference) == 1


def test_manual_promotion_without_seats(coordinator, make_request):
    coordinator.book(make_request(6))
    coordinator.book(make_request(4))
    coordinator.book(make_request(1))

    outcome = coordinator.promote_waitlist("ET001", JOURNEY_DATE)

    assert outcome.seats_before == 0
    assert outcome.promoted == []


@pytest.mark.parametrize(
    "service_id,journey_date,code",
    [
        ("ET001", "12-25-2025", ErrorCode.INVALID_DATE),
        ("ZZ999", JOURNEY_DATE, ErrorCode.SERVICE_NOT_FOUND),
    ],
)
def test_manual_promotion_rejects_bad_input(coordinator, service_id, journey_date, code):
    outcome = coordinator.promote_waitlist(service_id, journey_date)

    assert outcome.problem.code == code
    assert outcome.promoted == []


def test_state_survives_restart(tmp_path, test_settings, make_request, payments):
    """Test that bookings, seat maps, waitlists and the counter reload from disk."""
    settings = test_settings.model_copy(update={"database_url": f"sqlite:///{tmp_path / 'ledger.db'}"})

    with LedgerContext(settings, payments=payments) as context:
        context.coordinator.book(make_request(6))
        context.coordinator.book(make_request(4))
        waiting = context.coordinator.book(make_request(2))

    with LedgerContext(settings, payments=payments) as context:
        coordinator = context.coordinator
        assert len(coordinator.bookings) == 3
        assert coordinator.find_booking(waiting.reference).status == BookingStatus.WAITLISTED
        assert coordinator.waitlist_rank(waiting.reference) == 1
        assert _seats(context) == 0
        assert [service.id for service in context.catalog.all()] == ["ET001", "SR205"]

        next_booking = coordinator.book(make_request(1, service_id="SR205"))
        assert int(next_booking.reference) > int(waiting.reference)


def test_persistence_failure_keeps_memory_state(ledger_context, coordinator, make_request, monkeypatch):
    """Test that a failed snapshot write is logged without undoing the booking."""

    def failing_save(snapshot):
        raise PersistenceWriteError("snapshot", "disk full")

    monkeypatch.setattr(ledger_context.store, "save", failing_save)

    outcome = coordinator.book(make_request(1))

    assert outcome.result == BookingResult.CONFIRMED
    assert coordinator.find_booking(outcome.reference) is not None


def test_export_snapshot_reflects_ledger(coordinator, make_request):
    coordinator.book(make_request(2))

    snapshot = coordinator.export_snapshot()

    assert snapshot.services[0].seat_map == {JOURNEY_DATE: 8}
    assert [booking.reference for booking in snapshot.bookings] == ["100000000001"]
    assert {user.username for user in snapshot.users} == {"admin", "user"}


@pytest.mark.parametrize("counter_contents", ["garbage", "42"])
def test_reset_counter_skips_references_from_snapshot(
    tmp_path, test_settings, make_request, payments, counter_contents
):
    """Test that a counter reset to the floor cannot reissue references already booked."""
    settings = test_settings.model_copy(update={"database_url": f"sqlite:///{tmp_path / 'ledger.db'}"})

    with LedgerContext(settings, payments=payments) as context:
        first = context.coordinator.book(make_request(3))
    settings.reference_counter_path.write_text(counter_contents, encoding="utf-8")

    with LedgerContext(settings, payments=payments) as context:
        coordinator = context.coordinator
        outcome = coordinator.book(make_request(2))

        assert outcome.result == BookingResult.CONFIRMED
        assert int(outcome.reference) > int(first.reference)
        assert _seats(context) == 5
        assert len(coordinator.bookings) == 2
        assert payments.charges == [Decimal("165.00"), Decimal("110.00")]
        assert payments.refunds == []


def test_book_skips_reference_already_recorded(tmp_path, coordinator, make_request, payments, test_settings):
    """Test that a generator lagging behind the ledger never overwrites a booking."""
    first = coordinator.book(make_request(1))
    coordinator.references = ReferenceGenerator(tmp_path / "stale_counter.txt", floor=test_settings.reference_floor)

    outcome = coordinator.book(make_request(1))

    assert outcome.result == BookingResult.CONFIRMED
    assert outcome.reference == "100000000002"
    assert coordinator.find_booking(first.reference).seat_count == 1
    assert len(coordinator.bookings) == 2
    assert len(payments.charges) == 2


def test_promotion_returns_seats_of_orphaned_entry(ledger_context, coordinator):
    """Test that a queued entry without a waitlisted booking gives its seats back."""
    coordinator.waitlist.enqueue(KEY, "999999999999", 2)

    outcome = coordinator.promote_waitlist("ET001", JOURNEY_DATE)

    assert outcome.promoted == []
    assert outcome.seats_after == 10
    assert _seats(ledger_context) == 10
    assert coordinator.waitlist.depth(KEY) == 0
