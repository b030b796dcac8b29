"""Ledger context construction and lifecycle."""

import logging
import random
from typing import Optional

from .core.config import Settings
from .core.database import close_db, create_db_engine, create_session_factory, init_db
from .core.observability import instrument_sqlalchemy, setup_metrics, setup_structured_logging, setup_tracing
from .schemas.snapshot import Snapshot
from .services.booking_service import BookingLedger
from .services.catalog_service import ServiceCatalog
from .services.inventory_service import InventoryLedger
from .services.payment_service import PaymentGateway, SimulatedPaymentGateway, TransactionLog
from .services.reference_service import ReferenceGenerator
from .services.reservation_service import ReservationCoordinator
from .services.snapshot_service import SnapshotStore, default_snapshot
from .services.user_service import UserDirectory
from .services.waitlist_service import WaitlistQueue

logger = logging.getLogger(__name__)


def configure_observability(settings: Settings) -> None:
    """Set up logging, tracing and the metrics endpoint for a console session."""
    setup_structured_logging(settings)
    setup_tracing(settings)
    setup_metrics(settings)


class LedgerContext:
    """
    Everything one ledger session needs, built from settings.

    Opening a context creates the schema, loads the persisted snapshot (or
    the default catalog when nothing is stored yet) and wires the
    coordinator. Use as a context manager so the engine is disposed.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        payments: Optional[PaymentGateway] = None,
        instrument: bool = False,
    ):
        self.settings = settings or Settings()

        self.engine = create_db_engine(self.settings.database_url)
        if instrument:
            instrument_sqlalchemy(self.engine)
        init_db(self.engine)
        self.store = SnapshotStore(create_session_factory(self.engine))

        if payments is None:
            payments = SimulatedPaymentGateway(
                success_rate=self.settings.payment_success_rate,
                rng=random.Random(self.settings.payment_seed),
            )

        self.inventory = InventoryLedger()
        self.catalog = ServiceCatalog(self.inventory)
        self.users = UserDirectory()
        self.coordinator = ReservationCoordinator(
            catalog=self.catalog,
            bookings=BookingLedger(),
            waitlist=WaitlistQueue(),
            references=ReferenceGenerator(
                self.settings.reference_counter_path,
                floor=self.settings.reference_floor,
            ),
            payments=payments,
            transaction_log=TransactionLog(self.settings.transaction_log_path),
            users=self.users,
            store=self.store,
            refund_ratio=self.settings.cancellation_refund_ratio,
            max_riders_per_group=self.settings.max_riders_per_group,
        )

        self._load()

    def _load(self) -> None:
        snapshot = self.store.load()
        seeded = False
        if snapshot.is_empty and self.settings.seed_defaults:
            snapshot = default_snapshot()
            seeded = True
        self.coordinator.load_snapshot(snapshot)
        if seeded:
            self.coordinator.save()
            logger.info("Default catalog and accounts seeded")

    def snapshot(self) -> Snapshot:
        return self.coordinator.export_snapshot()

    def close(self) -> None:
        """Flush the snapshot and dispose of the engine."""
        self.coordinator.save()
        close_db(self.engine)
        logger.info("Ledger context closed")

    def __enter__(self) -> "LedgerContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
