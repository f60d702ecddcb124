"""QR check-in verification schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from bookingdesk.core.exceptions import ErrorKind
from bookingdesk.schemas.booking import BookingStatus


class QrPayload(BaseModel):
    """Untrusted booking reference decoded from a scanned token."""

    model_config = ConfigDict(frozen=True)

    booking_id: int = Field(..., gt=0)
    user_id: str | None = None


class VerificationVerdict(BaseModel):
    """Outcome of verifying one scanned token."""

    valid: bool
    booking_id: int | None = None
    matched_booking_code: str | None = None
    expired: bool = False
    backend_validated: bool = False
    message: str
    error_kind: ErrorKind | None = None

    # Live booking details for the confirmation screen
    booking_code: str | None = None
    booking_status: BookingStatus | None = None
    user_id: str | None = None
    user_name: str | None = None
    user_email: str | None = None
    phone_number: str | None = None
    room_code: str | None = None
    checkin_date: datetime | None = None
    checkout_date: datetime | None = None
    num_guests: int | None = None


class QrVerifyRequest(BaseModel):
    """Schema for verifying a raw scanned token against a selected booking."""

    token: str = Field(..., min_length=1, max_length=4096)
    selected_booking_id: int | None = None


class QrTokenResponse(BaseModel):
    """Schema for an issued check-in token."""

    booking_id: int
    token: str
    payload: dict
