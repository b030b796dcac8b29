"""Interactive console for counter operators."""

import argparse
import sys
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from . import __version__
from .core.config import Settings
from .core.exceptions import LedgerError
from .main import LedgerContext, configure_observability
from .schemas.booking import (
    BookingOutcome,
    BookingRequest,
    BookingResult,
    BookingStatus,
    CancellationResult,
    Gender,
    Rider,
)
from .schemas.common import DATE_FORMAT_HINT, is_valid_date, queue_key
from .schemas.service import Service, ServiceKind
from .schemas.user import User, UserRole

MIN_AGE = 1
MAX_AGE = 119
MAX_NAME_LENGTH = 128


class SessionEnded(Exception):
    """Raised when the operator exits or input is exhausted."""


class ConsoleSession:
    """
    Login loop and role menus over a ledger context.

    Input and output are injectable so a session can be scripted.
    """

    def __init__(
        self,
        context: LedgerContext,
        input_fn: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
    ):
        self.context = context
        self.coordinator = context.coordinator
        self.settings = context.settings
        self._input = input_fn
        self._output = output

    def run(self) -> int:
        """Run until the operator quits; returns the process exit status."""
        self._say("=== Railway Reservation Ledger ===")
        try:
            while True:
                user = self._login()
                if user is None:
                    break
                if user.role == UserRole.ADMIN:
                    self._admin_menu(user)
                else:
                    self._customer_menu(user)
        except SessionEnded:
            pass
        self._say("Goodbye.")
        return 0

    # Input helpers

    def _say(self, text: str = "") -> None:
        self._output(text)

    def _ask(self, prompt: str) -> str:
        try:
            return self._input(prompt).strip()
        except EOFError:
            raise SessionEnded() from None

    def _ask_text(self, prompt: str, max_length: int = MAX_NAME_LENGTH) -> str:
        while True:
            value = self._ask(prompt)
            if not value:
                self._say("A value is required.")
                continue
            if len(value) > max_length:
                self._say(f"Please enter at most {max_length} characters.")
                continue
            return value

    def _ask_int(self, prompt: str, low: int, high: Optional[int] = None) -> int:
        while True:
            raw = self._ask(prompt)
            try:
                value = int(raw)
            except ValueError:
                self._say("Please enter a whole number.")
                continue
            if value < low or (high is not None and value > high):
                bound = f"between {low} and {high}" if high is not None else f"at least {low}"
                self._say(f"Please enter a number {bound}.")
                continue
            return value

    def _ask_fare(self, prompt: str) -> Decimal:
        while True:
            raw = self._ask(prompt)
            try:
                value = Decimal(raw)
            except InvalidOperation:
                self._say("Please enter an amount such as 55.00.")
                continue
            if not value.is_finite() or value <= 0:
                self._say("The fare must be positive.")
                continue
            return value

    def _ask_date(self, prompt: str = f"Journey date ({DATE_FORMAT_HINT}): ") -> str:
        while True:
            value = self._ask(prompt)
            if is_valid_date(value):
                return value
            self._say(f"Invalid date. Use {DATE_FORMAT_HINT}.")

    def _ask_gender(self) -> Gender:
        while True:
            value = self._ask("Gender (M/F/O): ").upper()
            try:
                return Gender(value)
            except ValueError:
                self._say("Please enter M, F or O.")

    def _ask_yes_no(self, prompt: str) -> bool:
        return self._ask(prompt).lower() in ("y", "yes")

    # Login

    def _login(self) -> Optional[User]:
        while True:
            self._say()
            username = self._ask("Username (or 'quit'): ")
            if username.lower() == "quit":
                return None
            password = self._ask("Password: ")
            user = self.context.users.authenticate(username, password)
            if user is not None:
                self._say(f"Welcome, {user.username} ({user.role.value}).")
                return user
            self._say("Invalid username or password.")

    # Admin

    def _admin_menu(self, user: User) -> None:
        actions = {
            "1": self._show_services,
            "2": self._show_availability,
            "3": self._add_service,
            "4": self._remove_service,
            "5": self._show_all_bookings,
            "6": self._process_waitlist,
            "7": self._show_waitlist,
        }
        while True:
            self._say()
            self._say("--- Admin Menu ---")
            self._say("1. View all services")
            self._say("2. View availability for a date")
            self._say("3. Add service")
            self._say("4. Remove service")
            self._say("5. View all bookings")
            self._say("6. Process waitlist")
            self._say("7. View waitlist")
            self._say("8. Switch user")
            self._say("9. Exit")
            choice = self._ask("Choice: ")
            if choice == "8":
                return
            if choice == "9":
                raise SessionEnded()
            action = actions.get(choice)
            if action is None:
                self._say("Invalid choice.")
                continue
            action()

    def _show_services(self) -> None:
        services = self.context.catalog.all()
        if not services:
            self._say("No services scheduled.")
            return
        for service in services:
            self._say(self._format_service(service))

    @staticmethod
    def _format_service(service: Service) -> str:
        pantry = " [pantry]" if service.has_pantry else ""
        return (
            f"{service.id} {service.name} ({service.kind.value}){pantry}: "
            f"{service.source} -> {service.destination}, "
            f"{service.total_seats} seats, fare {service.base_fare}"
        )

    def _show_availability(self) -> None:
        journey_date = self._ask_date()
        for item in self.context.catalog.availability(journey_date):
            self._say(f"{item.service.id} {item.service.name}: {item.seats_available}/{item.service.total_seats} seats available")

    def _add_service(self) -> None:
        service_id = self._ask_text("Train number: ")
        name = self._ask_text("Name: ")
        source = self._ask_text("Source: ")
        destination = self._ask_text("Destination: ")
        total_seats = self._ask_int("Total seats: ", 1)
        base_fare = self._ask_fare("Fare per seat: ")
        has_pantry = self._ask_yes_no("Pantry car (y/n): ")
        try:
            service = Service(
                id=service_id,
                kind=ServiceKind.EXPRESS,
                name=name,
                source=source,
                destination=destination,
                total_seats=total_seats,
                base_fare=base_fare,
                has_pantry=has_pantry,
            )
            self.coordinator.add_service(service)
        except PydanticValidationError as e:
            self._say(f"Service rejected: {e.errors()[0]['msg']}")
            return
        except LedgerError as e:
            self._say(f"Service rejected: {e.detail}")
            return
        self._say(f"Service {service.id} added.")

    def _remove_service(self) -> None:
        service_id = self._ask_text("Train number: ")
        try:
            self.coordinator.remove_service(service_id)
        except LedgerError as e:
            self._say(e.detail)
            return
        self._say(f"Service {service_id} removed.")

    def _show_all_bookings(self) -> None:
        bookings = self.coordinator.bookings.all()
        if not bookings:
            self._say("No bookings recorded.")
            return
        for booking in bookings:
            self._say(
                f"{booking.reference} {booking.service_id} {booking.journey_date} "
                f"{booking.status.value} seats={booking.seat_count} fare={booking.fare}"
            )

    def _process_waitlist(self) -> None:
        service_id = self._ask_text("Train number: ")
        journey_date = self._ask_date()
        outcome = self.coordinator.promote_waitlist(service_id, journey_date)
        if outcome.problem is not None:
            self._say(outcome.problem.detail or outcome.problem.title)
        elif not outcome.seats_before:
            self._say("No seats available for promotion.")
        elif not outcome.promoted:
            self._say("No waitlisted booking fits the available seats.")
        else:
            self._say(f"Promoted: {', '.join(outcome.promoted)}")
            self._say(f"Seats available now: {outcome.seats_after}")

    def _show_waitlist(self) -> None:
        service_id = self._ask_text("Train number: ")
        journey_date = self._ask_date()
        key = queue_key(service_id, journey_date)
        entries = self.coordinator.waitlist.entries(key)
        if not entries:
            self._say(f"Waitlist for {key} is empty.")
            return
        for entry in entries:
            self._say(f"WL{entry.rank}: {entry.reference} seats={entry.seats}")

    # Customer

    def _customer_menu(self, user: User) -> None:
        actions = {
            "1": self._search_services,
            "2": self._book_tickets,
            "3": self._view_booking,
            "4": self._cancel_booking,
            "5": self._show_history,
        }
        while True:
            self._say()
            self._say("--- Customer Menu ---")
            self._say("1. Search services")
            self._say("2. Book tickets")
            self._say("3. View booking")
            self._say("4. Cancel booking")
            self._say("5. Transaction history")
            self._say("6. Switch user")
            self._say("7. Exit")
            choice = self._ask("Choice: ")
            if choice == "6":
                return
            if choice == "7":
                raise SessionEnded()
            action = actions.get(choice)
            if action is None:
                self._say("Invalid choice.")
                continue
            action()

    def _search_services(self) -> None:
        source = self._ask_text("From: ")
        destination = self._ask_text("To: ")
        journey_date = self._ask_date()
        results = self.context.catalog.search(source, destination, journey_date)
        if not results:
            self._say("No direct services found.")
            return
        for item in results:
            self._say(f"{self._format_service(item.service)} | available: {item.seats_available}")

    def _book_tickets(self) -> None:
        group_count = self._ask_int(
            f"Number of groups (1-{self.settings.max_booking_groups}): ",
            1,
            self.settings.max_booking_groups,
        )
        requests = []
        for group in range(1, group_count + 1):
            self._say(f"Group {group}:")
            service_id = self._ask_text("Train number: ")
            journey_date = self._ask_date()
            rider_count = self._ask_int(
                f"Number of riders (1-{self.settings.max_riders_per_group}): ",
                1,
                self.settings.max_riders_per_group,
            )
            riders = []
            while len(riders) < rider_count:
                self._say(f"Rider {len(riders) + 1}:")
                try:
                    riders.append(Rider(
                        name=self._ask_text("Name: "),
                        age=self._ask_int("Age: ", MIN_AGE, MAX_AGE),
                        gender=self._ask_gender(),
                    ))
                except PydanticValidationError as e:
                    self._say(f"Rider rejected: {e.errors()[0]['msg']}")
            requests.append(BookingRequest(service_id=service_id, journey_date=journey_date, riders=riders))

        for outcome in self.coordinator.book_many(requests):
            self._say(self._format_booking_outcome(outcome))

    @staticmethod
    def _format_booking_outcome(outcome: BookingOutcome) -> str:
        if outcome.result == BookingResult.CONFIRMED:
            return f"Confirmed: reference {outcome.reference}, fare {outcome.fare}"
        if outcome.result == BookingResult.WAITLISTED:
            return (
                f"Waitlisted: reference {outcome.reference}, fare {outcome.fare}, "
                f"WL{outcome.waitlist_rank} on {queue_key(outcome.service_id, outcome.journey_date)}"
            )
        detail = outcome.problem.detail if outcome.problem else "unknown error"
        return f"Booking failed for {outcome.service_id} on {outcome.journey_date}: {detail}"

    def _view_booking(self) -> None:
        reference = self._ask_text("Reference: ")
        booking = self.coordinator.find_booking(reference)
        if booking is None:
            self._say(f"Booking {reference} not found.")
            return
        self._say(f"Reference: {booking.reference}")
        self._say(f"Service: {booking.service_id}  Date: {booking.journey_date}")
        status = booking.status.value
        if booking.status == BookingStatus.WAITLISTED:
            status += f" (WL{self.coordinator.waitlist_rank(reference)})"
        self._say(f"Status: {status}  Fare: {booking.fare}")
        for rider in booking.riders:
            self._say(f"  {rider.name}, {rider.age}, {rider.gender.value}")

    def _cancel_booking(self) -> None:
        reference = self._ask_text("Reference: ")
        outcome = self.coordinator.cancel(reference)
        if outcome.result == CancellationResult.REJECTED:
            self._say(outcome.problem.detail if outcome.problem else "Cancellation failed.")
            return
        self._say(f"Booking {reference} cancelled. Refund: {outcome.refund}")
        if outcome.promoted:
            self._say(f"Promoted from waitlist: {', '.join(outcome.promoted)}")

    def _show_history(self) -> None:
        reference = self._ask_text("Reference: ")
        lines = self.coordinator.history(reference)
        if not lines:
            self._say("No transactions found.")
            return
        for line in lines:
            self._say(line)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="railway-ledger",
        description="Single-operator railway reservation ledger",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--database-url", dest="database_url", help="SQLAlchemy URL for the snapshot database")
    parser.add_argument("--log-level", dest="log_level", help="DEBUG, INFO, WARNING, ERROR or CRITICAL")
    parser.add_argument("--seed", dest="payment_seed", type=int, help="Seed for the simulated payment gateway")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    overrides = {key: value for key, value in vars(args).items() if value is not None}
    settings = Settings(**overrides)

    configure_observability(settings)
    with LedgerContext(settings, instrument=True) as context:
        return ConsoleSession(context).run()


if __name__ == "__main__":
    sys.exit(main())
