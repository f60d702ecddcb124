"""Pydantic schemas for bookings and check-in verification."""

from bookingdesk.schemas.booking import (
    Booking,
    BookingCheckoutRequest,
    BookingDecisionRequest,
    BookingListResponse,
    BookingStatus,
    MutationOutcome,
    MutationResult,
)
from bookingdesk.schemas.verification import (
    QrPayload,
    QrTokenResponse,
    QrVerifyRequest,
    VerificationVerdict,
)

__all__ = [
    "Booking",
    "BookingCheckoutRequest",
    "BookingDecisionRequest",
    "BookingListResponse",
    "BookingStatus",
    "MutationOutcome",
    "MutationResult",
    "QrPayload",
    "QrTokenResponse",
    "QrVerifyRequest",
    "VerificationVerdict",
]
