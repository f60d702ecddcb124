"""Booking list retrieval with override reconciliation."""

import logging

from pydantic import ValidationError as PydanticValidationError

from bookingdesk.core.exceptions import LookupFailure, NetworkFailure
from bookingdesk.domain.booking_state import accept_backend_status
from bookingdesk.gateways.base import BookingBackend
from bookingdesk.schemas.booking import Booking, BookingStatus
from bookingdesk.services.booking_action_service import OptimisticMutator

logger = logging.getLogger(__name__)


class BookingListService:
    """Fetches bookings and reports their effective status.

    A successful fetch is authoritative: overrides for every returned
    booking are dropped unless a mutation for that booking is in flight.
    """

    def __init__(self, backend: BookingBackend, mutator: OptimisticMutator) -> None:
        self.backend = backend
        self.mutator = mutator
        self.status_filter: BookingStatus | None = None
        self._bookings: dict[int, Booking] = {}

    @property
    def bookings(self) -> list[Booking]:
        return list(self._bookings.values())

    async def fetch(self, status: BookingStatus | None = None) -> list[Booking]:
        """Fetch the booking list, optionally filtered by status.

        Raises:
            NetworkFailure: If the backend call fails
        """
        self.status_filter = status
        result = await self.backend.list_bookings(status.value if status else None)
        if not result.success:
            raise NetworkFailure(
                result.error_message or "Failed to load bookings",
                upstream_status=result.status_code,
            )

        fresh: dict[int, Booking] = {}
        for raw in result.data or []:
            try:
                booking = Booking.model_validate(raw)
            except PydanticValidationError as e:
                logger.warning(f"Skipping malformed booking record: {e.error_count()} errors")
                continue
            known = self._bookings.get(booking.id)
            if known is not None:
                accept_backend_status(known.status, booking.status)
            fresh[booking.id] = booking

        cleared = self.mutator.reconcile(fresh.values())
        if cleared:
            logger.debug(f"Cleared overrides for bookings {cleared}")
        self._bookings = fresh
        return list(fresh.values())

    async def refresh(self) -> list[Booking]:
        """Refetch with the last used filter."""
        return await self.fetch(self.status_filter)

    async def get(self, booking_id: int) -> Booking:
        """Fetch one authoritative booking record.

        Raises:
            LookupFailure: If the backend call fails or the record is malformed
        """
        result = await self.backend.get_booking(booking_id)
        if not result.success:
            raise LookupFailure(result.error_message or f"Booking with ID {booking_id} not found")
        try:
            return Booking.model_validate(result.data)
        except PydanticValidationError as e:
            raise LookupFailure(f"Booking {booking_id} has an unreadable record") from e

    def cached(self, booking_id: int) -> Booking | None:
        return self._bookings.get(booking_id)

    def effective_status(self, booking: Booking) -> BookingStatus:
        return self.mutator.effective_status(booking)

    def effective_statuses(self) -> dict[int, BookingStatus]:
        return {b.id: self.mutator.effective_status(b) for b in self._bookings.values()}
