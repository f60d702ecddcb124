"""Client-side shadow statuses for optimistic booking updates."""

from collections.abc import Iterable

from bookingdesk.schemas.booking import Booking, BookingStatus


class StatusOverrideMap:
    """Per-booking shadow status, subordinate to the next backend fetch.

    Entries are written only by the mutation service. Readers use
    :meth:`effective_status` to render a booking.
    """

    def __init__(self) -> None:
        self._overrides: dict[int, BookingStatus] = {}

    def get(self, booking_id: int) -> BookingStatus | None:
        return self._overrides.get(booking_id)

    def set(self, booking_id: int, status: BookingStatus) -> None:
        self._overrides[booking_id] = status

    def clear(self, booking_id: int) -> None:
        self._overrides.pop(booking_id, None)

    def effective_status(self, booking: Booking) -> BookingStatus:
        return self._overrides.get(booking.id, booking.status)

    def reconcile(self, bookings: Iterable[Booking], keep: Iterable[int] = ()) -> list[int]:
        """Drop overrides for freshly fetched bookings.

        Args:
            bookings: Records just returned by the backend
            keep: Booking ids whose override must survive (mutation in flight)

        Returns:
            Ids whose override was cleared
        """
        protected = set(keep)
        cleared = []
        for booking in bookings:
            if booking.id in self._overrides and booking.id not in protected:
                del self._overrides[booking.id]
                cleared.append(booking.id)
        return cleared

    def snapshot(self) -> dict[int, BookingStatus]:
        return dict(self._overrides)

    def __contains__(self, booking_id: object) -> bool:
        return booking_id in self._overrides

    def __len__(self) -> int:
        return len(self._overrides)
