"""QR check-in verification.

A scanned token is never trusted on its own. Every verification re-reads the
booking from the backend, and no state is kept between scans.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from bookingdesk.config import settings
from bookingdesk.core.exceptions import (
    AppException,
    ErrorKind,
    LookupFailure,
    TokenMismatch,
    TokenUnreadable,
)
from bookingdesk.domain.token_codec import decode_token
from bookingdesk.gateways.base import BookingBackend
from bookingdesk.schemas.booking import Booking, BookingStatus
from bookingdesk.schemas.verification import QrPayload, VerificationVerdict

logger = logging.getLogger(__name__)

NO_CONTEXT_MESSAGE = "no current booking context"


def _pick(record: Any, record_id: Any, keys: tuple[str, ...]) -> str | None:
    """Read the first present key from a user/room lookup response."""
    if isinstance(record, list):
        record = next((r for r in record if isinstance(r, dict) and str(r.get("id")) == str(record_id)), None)
    if not isinstance(record, dict):
        return None
    for key in keys:
        value = record.get(key)
        if value:
            return str(value)
    return None


def is_expired(checkout_date: datetime | None, now: datetime) -> bool:
    """Whether ``now`` is past the checkout time; False when unknown."""
    if checkout_date is None:
        return False
    if checkout_date.tzinfo is None and now.tzinfo is not None:
        now = now.astimezone().replace(tzinfo=None)
    elif checkout_date.tzinfo is not None and now.tzinfo is None:
        now = now.astimezone()
    return now > checkout_date


class QrVerificationService:
    """Cross-checks scanned tokens against the live booking record."""

    def __init__(
        self,
        backend: BookingBackend,
        clock: Callable[[], datetime] | None = None,
        required_status: BookingStatus | None = None,
        enrich: bool = True,
    ) -> None:
        self.backend = backend
        self.clock = clock or (lambda: datetime.now(UTC))
        self.required_status = required_status or BookingStatus(settings.required_checkin_status)
        self.enrich = enrich

    async def verify_raw(self, raw: str | None, selected_booking_id: int | None) -> VerificationVerdict:
        """Decode a scanned string and verify it."""
        return await self.verify(decode_token(raw), selected_booking_id, raw_token=(raw or "").strip() or None)

    async def verify(
        self,
        decoded: QrPayload | None,
        selected_booking_id: int | None,
        raw_token: str | None = None,
    ) -> VerificationVerdict:
        """Produce a verdict for a decoded token.

        Args:
            decoded: Payload from the token decoder, or None if unreadable
            selected_booking_id: Booking currently open at the desk
            raw_token: Original scanned string, enables the signature check

        Returns:
            VerificationVerdict; never raises
        """
        if decoded is None:
            return self._failure(None, TokenUnreadable())
        if selected_booking_id is None:
            return VerificationVerdict(
                valid=False,
                booking_id=decoded.booking_id,
                message=NO_CONTEXT_MESSAGE,
                error_kind=ErrorKind.VALIDATION,
            )
        if decoded.booking_id != selected_booking_id:
            return self._failure(
                decoded.booking_id, TokenMismatch(decoded.booking_id, selected_booking_id)
            )

        backend_validated = False
        if raw_token:
            backend_validated = await self._check_signature(raw_token)

        try:
            booking = await self._lookup(decoded.booking_id)
        except AppException as e:
            return self._failure(decoded.booking_id, LookupFailure(e.message), backend_validated)
        except Exception as e:
            logger.error(f"Booking lookup for {decoded.booking_id} raised: {e}")
            return self._failure(
                decoded.booking_id, LookupFailure(str(e) or "Booking lookup failed"), backend_validated
            )

        expired = is_expired(booking.checkout_date, self.clock())
        verdict = self._from_booking(booking, expired, backend_validated)

        if booking.status != self.required_status:
            verdict.valid = False
            verdict.error_kind = ErrorKind.STATUS_INELIGIBLE
            verdict.message = (
                f"Booking must be {self.required_status.value} to verify "
                f"(current status: {booking.status.value})"
            )
            return verdict

        if self.enrich:
            await self._enrich(verdict, booking)

        verdict.valid = True
        how = "backend signature" if backend_validated else "direct booking lookup"
        verdict.message = f"Booking {booking.code or booking.id} verified by {how}"
        if expired:
            verdict.message += "; the stay has already ended"
        return verdict

    async def _check_signature(self, raw_token: str) -> bool:
        try:
            result = await self.backend.verify_qr_token(raw_token)
        except Exception as e:
            logger.info(f"Token signature check unavailable: {e}")
            return False
        if not result.success:
            logger.info(
                f"Token signature check not accepted ({result.status_code}); "
                "falling back to direct lookup"
            )
        return result.success

    async def _lookup(self, booking_id: int) -> Booking:
        result = await self.backend.get_booking(booking_id)
        if not result.success:
            raise LookupFailure(result.error_message or f"Booking with ID {booking_id} not found")
        try:
            return Booking.model_validate(result.data)
        except PydanticValidationError as e:
            raise LookupFailure(f"Booking {booking_id} has an unreadable record") from e

    async def _enrich(self, verdict: VerificationVerdict, booking: Booking) -> None:
        """Fill missing guest/room display fields. Best-effort."""
        if booking.user_id and not (verdict.user_name and verdict.user_email and verdict.phone_number):
            try:
                result = await self.backend.get_user(booking.user_id)
                if result.success:
                    verdict.user_name = verdict.user_name or _pick(
                        result.data, booking.user_id, ("fullName", "full_name", "name", "userName")
                    )
                    verdict.user_email = verdict.user_email or _pick(result.data, booking.user_id, ("email",))
                    verdict.phone_number = verdict.phone_number or _pick(
                        result.data, booking.user_id, ("phoneNumber", "phone_number", "phone")
                    )
            except Exception as e:
                logger.warning(f"User lookup for booking {booking.id} failed: {e}")

        if booking.room_id and not verdict.room_code:
            try:
                result = await self.backend.get_room(booking.room_id)
                if result.success:
                    verdict.room_code = _pick(result.data, booking.room_id, ("code", "roomCode", "room_code"))
            except Exception as e:
                logger.warning(f"Room lookup for booking {booking.id} failed: {e}")

    @staticmethod
    def _from_booking(booking: Booking, expired: bool, backend_validated: bool) -> VerificationVerdict:
        return VerificationVerdict(
            valid=False,
            booking_id=booking.id,
            matched_booking_code=booking.code,
            expired=expired,
            backend_validated=backend_validated,
            message="",
            booking_code=booking.code,
            booking_status=booking.status,
            user_id=booking.user_id,
            user_name=booking.user_name,
            user_email=booking.user_email,
            phone_number=booking.phone_number,
            room_code=booking.room_code,
            checkin_date=booking.checkin_date,
            checkout_date=booking.checkout_date,
            num_guests=booking.num_guests,
        )

    @staticmethod
    def _failure(
        booking_id: int | None,
        exc: AppException,
        backend_validated: bool = False,
    ) -> VerificationVerdict:
        return VerificationVerdict(
            valid=False,
            booking_id=booking_id,
            backend_validated=backend_validated,
            message=exc.message,
            error_kind=exc.kind,
        )
