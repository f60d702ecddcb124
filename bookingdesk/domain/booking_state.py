"""Booking state machine."""

import logging

from bookingdesk.core.exceptions import InvalidTransition
from bookingdesk.schemas.booking import BookingStatus

logger = logging.getLogger(__name__)

# Transitions this client enacts or observes. Cancellation is handled separately:
# the backend may cancel from any state, the client never initiates it.
BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.APPROVED, BookingStatus.REJECTED},
    BookingStatus.APPROVED: {BookingStatus.CHECKED_IN},
    BookingStatus.CHECKED_IN: {BookingStatus.CHECKED_OUT},
    BookingStatus.REJECTED: set(),
    BookingStatus.CANCELLED: set(),
    BookingStatus.CHECKED_OUT: set(),
}

TERMINAL_STATUSES = frozenset(
    {BookingStatus.REJECTED, BookingStatus.CANCELLED, BookingStatus.CHECKED_OUT}
)


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in BOOKING_TRANSITIONS.get(current, set())


def assert_booking_transition(current: BookingStatus, target: BookingStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTransition(current.value, target.value)


def is_terminal(status: BookingStatus) -> bool:
    return status in TERMINAL_STATUSES


def accept_backend_status(current: BookingStatus, incoming: BookingStatus) -> BookingStatus:
    """Return the status to hold after the backend reports ``incoming``.

    The backend is authoritative, so its value always wins. Only a
    cancellation is expected from any state; other jumps are accepted
    and logged.
    """
    if incoming != current and incoming != BookingStatus.CANCELLED:
        if not can_transition(current, incoming):
            logger.warning(
                f"Backend reported unexpected transition {current.value} → {incoming.value}"
            )
    return incoming
