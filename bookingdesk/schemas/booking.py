"""Booking-related Pydantic schemas."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from bookingdesk.core.exceptions import ErrorKind


class BookingStatus(str, Enum):
    """Booking lifecycle states."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"


# Backend payloads drift between camelCase, snake_case and nested objects.
# Candidates are probed in order; tuples are paths into nested dicts.
FIELD_ALIASES: dict[str, tuple[str | tuple[str, str], ...]] = {
    "id": ("id", "bookingId", "booking_id"),
    "code": ("code", "bookingCode", "booking_code"),
    "user_id": ("userId", "user_id", "accountId", "account_id", ("user", "id")),
    "room_id": ("roomId", "room_id", ("room", "id")),
    "status": ("status", "bookingStatus", "booking_status"),
    "checkin_date": ("checkinDate", "checkin_date", "checkInDate", "checkIn", "check_in"),
    "checkout_date": ("checkoutDate", "checkout_date", "checkOutDate", "checkOut", "check_out"),
    "num_guests": ("numGuests", "num_guests", "guests", "numberOfGuests"),
    "user_name": (
        "userName",
        "user_name",
        "accountName",
        "account_name",
        "fullName",
        "full_name",
        ("user", "fullName"),
        ("user", "full_name"),
        ("user", "name"),
        ("account", "fullName"),
        ("account", "name"),
    ),
    "user_email": (
        "userEmail",
        "user_email",
        "accountEmail",
        "account_email",
        ("user", "email"),
        ("account", "email"),
    ),
    "phone_number": (
        "phoneNumber",
        "phone_number",
        "phone",
        ("user", "phoneNumber"),
        ("user", "phone_number"),
        ("user", "phone"),
    ),
    "room_code": (
        "roomCode",
        "room_code",
        ("room", "code"),
        ("room", "roomCode"),
        ("room", "room_code"),
        "roomName",
        "room_name",
    ),
    "note": ("note",),
    "created_at": ("created_at", "createdAt"),
    "updated_at": ("updated_at", "updatedAt"),
}


def _probe(data: dict[str, Any], candidates: tuple[str | tuple[str, str], ...]) -> Any:
    for candidate in candidates:
        if isinstance(candidate, tuple):
            parent = data.get(candidate[0])
            value = parent.get(candidate[1]) if isinstance(parent, dict) else None
        else:
            value = data.get(candidate)
        if value is not None and value != "":
            return value
    return None


def parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO date or date-time, returning None when unparseable."""
    if value is None or isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None


class Booking(BaseModel):
    """Client-side view of a backend booking record."""

    model_config = ConfigDict(use_enum_values=False)

    id: int = Field(..., gt=0)
    code: str | None = None
    user_id: str | None = None
    room_id: int | None = None
    status: BookingStatus

    checkin_date: datetime | None = None
    checkout_date: datetime | None = None
    num_guests: int = Field(default=1, ge=1)

    # Display fields
    user_name: str | None = None
    user_email: str | None = None
    phone_number: str | None = None
    room_code: str | None = None
    note: str | None = None

    # Advisory only
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def normalize_backend_shape(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        normalized = {name: _probe(data, candidates) for name, candidates in FIELD_ALIASES.items()}
        if normalized["num_guests"] is None:
            normalized["num_guests"] = 1
        return {k: v for k, v in normalized.items() if v is not None}

    @field_validator("status", mode="before")
    @classmethod
    def upper_status(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("user_id", mode="before")
    @classmethod
    def stringify_user_id(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @field_validator("checkin_date", "checkout_date", "created_at", "updated_at", mode="before")
    @classmethod
    def lenient_datetime(cls, v: Any) -> datetime | None:
        return parse_datetime(v)

    @model_validator(mode="after")
    def validate_stay(self) -> "Booking":
        checkin, checkout = self.checkin_date, self.checkout_date
        if checkin and checkout and (checkin.tzinfo is None) == (checkout.tzinfo is None):
            if checkout <= checkin:
                raise ValueError("checkout_date must be after checkin_date")
        return self

    @property
    def guest_label(self) -> str:
        return self.user_name or f"User #{self.user_id}"

    @property
    def room_label(self) -> str:
        return self.room_code or f"Room #{self.room_id}"


class BookingDecisionRequest(BaseModel):
    """Body for approve/reject requests."""

    reason: str | None = Field(None, max_length=1000)


class BookingCheckoutRequest(BaseModel):
    """Body for checkout requests."""

    user_id: str | None = None


class MutationOutcome(str, Enum):
    """Settlement of an optimistic mutation."""

    SUCCESS = "success"
    REJECTED = "rejected"  # refused locally, no I/O performed
    FAILURE = "failure"
    TIMEOUT = "timeout"


class MutationResult(BaseModel):
    """Result of approve/reject/checkout."""

    outcome: MutationOutcome
    booking_id: int
    target_status: BookingStatus
    previous_status: BookingStatus | None = None
    effective_status: BookingStatus | None = None
    error_kind: ErrorKind | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome == MutationOutcome.SUCCESS


class BookingListResponse(BaseModel):
    """Bookings with their effective (override-aware) status."""

    bookings: list[Booking]
    effective_statuses: dict[int, BookingStatus]
    total: int
