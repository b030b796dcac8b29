"""Waitlist queues and promotion logic."""

import logging
from typing import Callable, Optional

from ..schemas.waitlist import WaitlistEntry

logger = logging.getLogger(__name__)


class WaitlistQueue:
    """
    FIFO queues of waitlisted bookings, one per ``service|date`` key.

    Ranks grow strictly within a key and are never reused, even after the
    tail entry leaves the queue.
    """

    def __init__(self):
        self._queues: dict[str, list[WaitlistEntry]] = {}
        self._last_rank: dict[str, int] = {}

    def enqueue(self, queue_key: str, reference: str, seats: int) -> int:
        """
        Append a booking to the queue for ``queue_key``.

        Args:
            queue_key: Queue key in service|date form
            reference: Waitlisted booking reference
            seats: Seats the booking needs

        Returns:
            Rank assigned to the entry
        """
        rank = self._last_rank.get(queue_key, 0) + 1
        self._last_rank[queue_key] = rank

        entry = WaitlistEntry(reference=reference, queue_key=queue_key, seats=seats, rank=rank)
        self._queues.setdefault(queue_key, []).append(entry)

        logger.info(
            "Booking placed on waitlist",
            extra={
                "reference": reference,
                "queue_key": queue_key,
                "seats": seats,
                "rank": rank
            }
        )
        return rank

    def promote(
        self,
        queue_key: str,
        freed_seats: int,
        reserve: Callable[[int], bool],
    ) -> list[str]:
        """
        Promote waiting entries into freed seats, oldest first.

        Entries needing more seats than remain are skipped but keep their
        place, so a later smaller request may be promoted ahead of them.

        Args:
            queue_key: Queue to promote from
            freed_seats: Seats available for promotion
            reserve: Takes a seat count from inventory, returns False on refusal

        Returns:
            References of promoted bookings in rank order
        """
        queue = self._queues.get(queue_key)
        if not queue or freed_seats <= 0:
            return []

        remaining_seats = freed_seats
        promoted: list[str] = []
        remaining: list[WaitlistEntry] = []

        for entry in queue:
            if entry.seats > remaining_seats:
                remaining.append(entry)
                continue

            if not reserve(entry.seats):
                # Inventory disagrees with the freed-seat count; keep the entry for a later pass
                logger.error(
                    "Waitlist promotion failed - inventory refused reservation",
                    extra={
                        "reference": entry.reference,
                        "queue_key": queue_key,
                        "seats": entry.seats,
                        "remaining_seats": remaining_seats
                    }
                )
                remaining.append(entry)
                continue

            remaining_seats -= entry.seats
            promoted.append(entry.reference)
            logger.info(
                "Waitlist entry promoted",
                extra={
                    "reference": entry.reference,
                    "queue_key": queue_key,
                    "rank": entry.rank,
                    "seats": entry.seats
                }
            )

        self._queues[queue_key] = remaining

        if promoted:
            logger.info(
                "Waitlist promotion completed",
                extra={
                    "queue_key": queue_key,
                    "promoted_count": len(promoted),
                    "entries_remaining": len(remaining),
                    "unused_seats": remaining_seats
                }
            )
        return promoted

    def remove(self, queue_key: str, reference: str) -> bool:
        """Drop the entry for ``reference``; returns False if it was not queued."""
        queue = self._queues.get(queue_key, [])
        for index, entry in enumerate(queue):
            if entry.reference == reference:
                del queue[index]
                return True
        return False

    def entries(self, queue_key: str) -> list[WaitlistEntry]:
        """Entries waiting in a queue, in rank order."""
        return list(self._queues.get(queue_key, []))

    def find(self, reference: str) -> Optional[WaitlistEntry]:
        """Locate the entry for a booking in any queue."""
        for queue in self._queues.values():
            for entry in queue:
                if entry.reference == reference:
                    return entry
        return None

    def depth(self, queue_key: str) -> int:
        return len(self._queues.get(queue_key, []))
