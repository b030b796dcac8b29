"""Ledger components and the reservation coordinator."""

from .booking_service import BookingLedger
from .catalog_service import ServiceCatalog
from .inventory_service import InventoryLedger
from .payment_service import PaymentGateway, SimulatedPaymentGateway, TransactionLog
from .reference_service import ReferenceGenerator
from .reservation_service import ReservationCoordinator
from .snapshot_service import SnapshotStore, default_snapshot
from .user_service import UserDirectory
from .waitlist_service import WaitlistQueue

__all__ = [
    "BookingLedger",
    "InventoryLedger",
    "PaymentGateway",
    "ReferenceGenerator",
    "ReservationCoordinator",
    "ServiceCatalog",
    "SimulatedPaymentGateway",
    "SnapshotStore",
    "TransactionLog",
    "UserDirectory",
    "WaitlistQueue",
    "default_snapshot",
]
