"""Payment capability and the append-only transaction log."""

import logging
import random
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class PaymentGateway(Protocol):
    """Capability the coordinator uses to charge and refund fares."""

    def attempt_payment(self, amount: Decimal) -> bool:
        ...

    def issue_refund(self, amount: Decimal) -> None:
        ...


class SimulatedPaymentGateway:
    """Mock gateway approving each charge with a fixed probability."""

    def __init__(self, success_rate: float = 0.8, rng: Optional[random.Random] = None):
        self.success_rate = success_rate
        self.rng = rng or random.Random()
        self.refunds: list[Decimal] = []

    def attempt_payment(self, amount: Decimal) -> bool:
        approved = self.rng.random() < self.success_rate
        logger.info(
            "Payment attempted",
            extra={"amount": str(amount), "approved": approved}
        )
        return approved

    def issue_refund(self, amount: Decimal) -> None:
        self.refunds.append(amount)
        logger.info("Refund issued", extra={"amount": str(amount)})


class TransactionLog:
    """
    Append-only event log, one ``timestamp|reference|event|status`` line per event.

    Write failures are logged and swallowed; the ledger state is not rolled back.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def record(self, reference: str, event: str, status: str) -> None:
        timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        line = f"{timestamp}|{reference}|{event}|{status}\n"
        try:
            with self.path.open("a", encoding="utf-8") as log_file:
                log_file.write(line)
        except OSError as e:
            logger.error(
                "Failed to append transaction log",
                extra={
                    "log_path": str(self.path),
                    "reference": reference,
                    "event": event,
                    "error": str(e)
                }
            )

    def history(self, reference: str) -> list[str]:
        """Lines recorded for ``reference``, oldest first."""
        try:
            with self.path.open("r", encoding="utf-8") as log_file:
                lines = [line.rstrip("\n") for line in log_file]
        except FileNotFoundError:
            return []
        return [
            line for line in lines
            if len(line.split("|")) == 4 and line.split("|")[1] == reference
        ]
