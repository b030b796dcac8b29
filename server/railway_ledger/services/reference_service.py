"""Booking reference (PNR) generator backed by a counter file."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_REFERENCE_FLOOR = 100_000_000_000
MAX_REFERENCE = 2**63 - 1


class ReferenceGenerator:
    """
    Issue strictly increasing booking references that survive restarts.

    The last issued value is written to ``counter_path`` before each reference
    is handed out. A missing, unreadable or too-small persisted value resets
    the counter to ``floor``.
    """

    def __init__(self, counter_path: Path, floor: int = DEFAULT_REFERENCE_FLOOR):
        self.counter_path = Path(counter_path)
        self.floor = floor
        self._current = self._load()

    @property
    def current(self) -> int:
        """Last issued value (or the floor before the first issue)."""
        return self._current

    def next(self) -> str:
        """
        Issue the next reference.

        The in-memory counter advances even when the counter file cannot be
        written, so references stay unique within this process.

        Returns:
            The new reference
        """
        if self._current >= MAX_REFERENCE:
            raise OverflowError("Booking reference counter exhausted")

        self._current += 1
        self._save()
        return str(self._current)

    def ensure_above(self, value: int) -> None:
        """Advance the counter so the next reference is greater than ``value``."""
        if value <= self._current:
            return
        if value > MAX_REFERENCE:
            raise OverflowError("Booking reference counter exhausted")

        logger.warning(
            "Reference counter behind recorded bookings - advancing",
            extra={"counter_path": str(self.counter_path), "previous": self._current, "advanced_to": value}
        )
        self._current = value
        self._save()

    def _load(self) -> int:
        try:
            raw = self.counter_path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            logger.info(
                "Reference counter file not found - starting at floor",
                extra={"counter_path": str(self.counter_path), "floor": self.floor}
            )
            return self.floor
        except OSError as e:
            logger.warning(
                "Reference counter file unreadable - resetting to floor",
                extra={"counter_path": str(self.counter_path), "error": str(e)}
            )
            return self.floor

        if not raw:
            return self.floor

        try:
            value = int(raw)
        except ValueError:
            logger.warning(
                "Reference counter corrupted - resetting to floor",
                extra={"counter_path": str(self.counter_path), "persisted_value": raw[:32]}
            )
            return self.floor

        if value < self.floor or value > MAX_REFERENCE:
            logger.warning(
                "Reference counter out of range - resetting to floor",
                extra={"counter_path": str(self.counter_path), "persisted_value": value}
            )
            return self.floor

        return value

    def _save(self) -> None:
        try:
            self.counter_path.write_text(str(self._current), encoding="utf-8")
        except OSError as e:
            logger.error(
                "Failed to persist reference counter",
                extra={
                    "counter_path": str(self.counter_path),
                    "current": self._current,
                    "error": str(e)
                }
            )
