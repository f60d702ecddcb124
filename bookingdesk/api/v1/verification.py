"""Check-in verification endpoints."""

from fastapi import APIRouter

from bookingdesk.api.deps import AccessToken, Services
from bookingdesk.schemas.verification import QrVerifyRequest, VerificationVerdict

router = APIRouter()


@router.post("/qr/verify", response_model=VerificationVerdict)
async def verify_qr_token(
    request: QrVerifyRequest,
    services: Services,
    _token: AccessToken,
) -> VerificationVerdict:
    """Verify a scanned token against the booking open at the desk.

    Invalid verdicts are a normal outcome and are returned with 200.
    """
    return await services.verifier.verify_raw(request.token, request.selected_booking_id)
