"""Booking desk endpoints."""

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from bookingdesk.api.deps import AccessToken, Services
from bookingdesk.core.exceptions import ErrorKind, ValidationError
from bookingdesk.domain.token_codec import build_token_payload, encode_token
from bookingdesk.schemas.booking import (
    Booking,
    BookingCheckoutRequest,
    BookingDecisionRequest,
    BookingListResponse,
    BookingStatus,
    MutationResult,
)
from bookingdesk.schemas.verification import QrTokenResponse

router = APIRouter()

ERROR_STATUS_CODES = {
    ErrorKind.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorKind.IN_FLIGHT: status.HTTP_409_CONFLICT,
    ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.NOT_AUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.NETWORK_FAILURE: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
}


def _respond(result: MutationResult) -> JSONResponse:
    code = status.HTTP_200_OK
    if not result.ok:
        code = ERROR_STATUS_CODES.get(result.error_kind, status.HTTP_400_BAD_REQUEST)
    return JSONResponse(status_code=code, content=result.model_dump(mode="json"))


async def _load(services: Services, booking_id: int) -> Booking:
    """Booking as last listed, else a live fetch."""
    return services.bookings.cached(booking_id) or await services.bookings.get(booking_id)


@router.get("/", response_model=BookingListResponse)
async def list_bookings(
    services: Services,
    _token: AccessToken,
    status_filter: BookingStatus | None = Query(None, alias="status"),
) -> BookingListResponse:
    """List bookings with their effective status."""
    bookings = await services.bookings.fetch(status_filter)
    return BookingListResponse(
        bookings=bookings,
        effective_statuses=services.bookings.effective_statuses(),
        total=len(bookings),
    )


@router.get("/{booking_id}", response_model=Booking)
async def get_booking(booking_id: int, services: Services, _token: AccessToken) -> Booking:
    """Fetch one booking from the backend."""
    return await services.bookings.get(booking_id)


@router.post("/{booking_id}/approve", response_model=MutationResult)
async def approve_booking(booking_id: int, services: Services, _token: AccessToken) -> JSONResponse:
    """Approve a pending booking."""
    booking = await _load(services, booking_id)
    return _respond(await services.actions.approve(booking))


@router.post("/{booking_id}/reject", response_model=MutationResult)
async def reject_booking(
    booking_id: int,
    request: BookingDecisionRequest,
    services: Services,
    _token: AccessToken,
) -> JSONResponse:
    """Reject a pending booking with a reason."""
    booking = await _load(services, booking_id)
    return _respond(await services.actions.reject(booking, request.reason))


@router.post("/{booking_id}/checkout", response_model=MutationResult)
async def checkout_booking(
    booking_id: int,
    request: BookingCheckoutRequest,
    services: Services,
    _token: AccessToken,
) -> JSONResponse:
    """Check a guest out."""
    booking = await _load(services, booking_id)
    return _respond(await services.actions.checkout(booking, request.user_id))


@router.get("/{booking_id}/qr", response_model=QrTokenResponse)
async def issue_checkin_token(booking_id: int, services: Services, _token: AccessToken) -> QrTokenResponse:
    """Issue a check-in QR token for an approved or checked-in booking."""
    booking = await services.bookings.get(booking_id)
    if booking.status not in (BookingStatus.APPROVED, BookingStatus.CHECKED_IN):
        raise ValidationError(f"Booking {booking_id} is {booking.status.value}; no check-in token available")
    return QrTokenResponse(
        booking_id=booking.id,
        token=encode_token(booking),
        payload=build_token_payload(booking),
    )
