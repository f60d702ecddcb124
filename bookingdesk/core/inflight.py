"""Duplicate-submission protection for booking mutations."""

from collections.abc import Iterator
from contextlib import contextmanager

from bookingdesk.core.exceptions import MutationInProgress


class InFlightRegistry:
    """Tracks booking ids with a mutation that has not settled.

    Runs on a single event loop, so a plain set is sufficient: the check and
    the insert in :meth:`claim` happen without an intervening await.
    """

    def __init__(self) -> None:
        self._ids: set[int] = set()

    def is_in_flight(self, booking_id: int) -> bool:
        return booking_id in self._ids

    def ids(self) -> frozenset[int]:
        return frozenset(self._ids)

    @contextmanager
    def claim(self, booking_id: int) -> Iterator[None]:
        """Hold the booking for the duration of the block.

        Raises:
            MutationInProgress: If the booking is already claimed
        """
        if booking_id in self._ids:
            raise MutationInProgress(booking_id)
        self._ids.add(booking_id)
        try:
            yield
        finally:
            self._ids.discard(booking_id)
