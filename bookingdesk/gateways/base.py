"""Base booking backend interface.

All backend adapters must implement this interface.
Business logic should NOT live in adapters - only backend communication.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any


class Decision(str, Enum):
    """Decisions accepted by the approve endpoint."""

    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


@dataclass
class BackendResult:
    """Result of a backend call."""

    success: bool
    status_code: int | None = None
    data: Any = None
    error_message: str | None = None


class BookingBackend(ABC):
    """Abstract base class for the remote booking service."""

    @abstractmethod
    async def decide_booking(
        self,
        booking_id: int,
        approver_id: str,
        decision: Decision,
        reason: str = "",
    ) -> BackendResult:
        """Approve or reject a pending booking.

        Args:
            booking_id: Booking to decide on
            approver_id: Identity of the acting approver
            decision: APPROVED or REJECTED
            reason: Rejection reason (empty for approvals)

        Returns:
            BackendResult of the approve endpoint
        """
        pass

    @abstractmethod
    async def checkout_booking(
        self,
        booking_id: int,
        user_id: str | None = None,
    ) -> BackendResult:
        """Check a guest out of a booking."""
        pass

    @abstractmethod
    async def verify_qr_token(self, token: str) -> BackendResult:
        """Ask the backend to validate a raw check-in token signature."""
        pass

    @abstractmethod
    async def get_booking(self, booking_id: int) -> BackendResult:
        """Fetch the authoritative booking record.

        Returns:
            BackendResult whose data is the raw booking object
        """
        pass

    @abstractmethod
    async def list_bookings(self, status: str | None = None) -> BackendResult:
        """Fetch bookings, optionally filtered by status.

        Returns:
            BackendResult whose data is a list of raw booking objects
        """
        pass

    @abstractmethod
    async def get_user(self, user_id: str) -> BackendResult:
        """Fetch a user record for display enrichment."""
        pass

    @abstractmethod
    async def get_room(self, room_id: int) -> BackendResult:
        """Fetch a room record for display enrichment."""
        pass

    async def close(self) -> None:
        """Release transport resources."""
        return None
