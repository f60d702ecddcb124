"""Check-in QR token encoding and decoding.

Scanned tokens come from several generations of issuers, so decoding tries
each known format in a fixed order and the first one that yields a booking
reference wins:

1. pipe-delimited ``<bookingId>|<userId>``
2. base64url-encoded JSON object
3. standard base64-encoded JSON object
4. raw JSON object
5. bare numeric booking id

Each format is a pure ``str -> QrPayload | None`` function so it can be
tested on its own.
"""

import base64
import binascii
import json
import re
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from bookingdesk.schemas.booking import Booking
from bookingdesk.schemas.verification import QrPayload

TOKEN_TYPE = "BOOKING_CHECKIN"

_DIGITS = re.compile(r"[0-9]+")

BOOKING_ID_KEYS = ("bookingId", "id", "booking_id")
USER_ID_KEYS = ("userId", "user_id")


def _first_present(obj: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = obj.get(key)
        if value is not None and value != "" and value is not False:
            return value
    return None


def _as_booking_id(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float) and value.is_integer():
        return int(value) if value > 0 else None
    if isinstance(value, str) and _DIGITS.fullmatch(value.strip()):
        number = int(value.strip())
        return number if number > 0 else None
    return None


def payload_from_object(obj: Any) -> QrPayload | None:
    """Extract a booking reference from a decoded JSON object."""
    if not isinstance(obj, dict):
        return None
    # a key holding 0, "" or a non-id falls through to the next alias
    booking_id = next(
        (bid for bid in (_as_booking_id(obj.get(key)) for key in BOOKING_ID_KEYS) if bid is not None),
        None,
    )
    if booking_id is None:
        return None
    user_id = _first_present(obj, USER_ID_KEYS)
    try:
        return QrPayload(booking_id=booking_id, user_id=str(user_id) if user_id is not None else None)
    except PydanticValidationError:
        return None


def _json_object(text: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(text)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _pad(text: str) -> str:
    return text + "=" * (-len(text) % 4)


def _b64_json(text: str) -> dict[str, Any] | None:
    try:
        raw = base64.b64decode(_pad(text), validate=True)
        return _json_object(raw.decode("utf-8"))
    except (binascii.Error, ValueError):
        return None


def decode_pipe(raw: str) -> QrPayload | None:
    if "|" not in raw:
        return None
    parts = raw.split("|")
    head = parts[0].strip()
    if not _DIGITS.fullmatch(head):
        return None
    booking_id = int(head)
    if booking_id <= 0:
        return None
    user_id = parts[1].strip() or None
    return QrPayload(booking_id=booking_id, user_id=user_id)


def decode_base64url_json(raw: str) -> QrPayload | None:
    return payload_from_object(_b64_json(raw.replace("-", "+").replace("_", "/")))


def decode_base64_json(raw: str) -> QrPayload | None:
    return payload_from_object(_b64_json(raw))


def decode_raw_json(raw: str) -> QrPayload | None:
    return payload_from_object(_json_object(raw))


def decode_bare_numeric(raw: str) -> QrPayload | None:
    if not _DIGITS.fullmatch(raw):
        return None
    booking_id = int(raw)
    return QrPayload(booking_id=booking_id) if booking_id > 0 else None


DECODERS: tuple[Callable[[str], QrPayload | None], ...] = (
    decode_pipe,
    decode_base64url_json,
    decode_base64_json,
    decode_raw_json,
    decode_bare_numeric,
)


def decode_token(raw: str | None) -> QrPayload | None:
    """Decode a scanned string into a booking reference.

    Returns:
        QrPayload from the first format that yields one, or None
    """
    token = (raw or "").strip()
    if not token:
        return None
    for decoder in DECODERS:
        payload = decoder(token)
        if payload is not None:
            return payload
    return None


def build_token_payload(booking: Booking) -> dict[str, Any]:
    """Build the JSON body embedded in an issued check-in token."""
    return {
        "type": TOKEN_TYPE,
        "bookingId": booking.id,
        "userId": booking.user_id,
        "bookingCode": booking.code,
        "userName": booking.user_name,
        "roomId": booking.room_id,
        "roomCode": booking.room_code,
        "checkinDate": booking.checkin_date.isoformat() if booking.checkin_date else None,
        "checkoutDate": booking.checkout_date.isoformat() if booking.checkout_date else None,
        "numGuests": booking.num_guests,
        "note": booking.note,
    }


def encode_token(booking: Booking) -> str:
    """Issue a standard base64 JSON check-in token for a booking."""
    body = json.dumps(build_token_payload(booking), separators=(",", ":"))
    return base64.b64encode(body.encode("utf-8")).decode("ascii")
