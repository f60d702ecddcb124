"""API dependencies wiring the booking desk services."""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from bookingdesk.core.scan_session import ScanSession
from bookingdesk.core.security import current_access_token, token_approver_provider
from bookingdesk.gateways.base import BookingBackend
from bookingdesk.gateways.http_backend import HttpBookingBackend
from bookingdesk.services.booking_action_service import BookingActionService, OptimisticMutator
from bookingdesk.services.booking_list_service import BookingListService
from bookingdesk.services.notification_service import NotificationService
from bookingdesk.services.qr_verification_service import QrVerificationService

# Security scheme; the token is optional and forwarded to the backend
security = HTTPBearer(auto_error=False)


@dataclass
class DeskServices:
    """Process-wide service graph sharing one override map."""

    backend: BookingBackend
    mutator: OptimisticMutator
    notifications: NotificationService
    bookings: BookingListService
    actions: BookingActionService
    verifier: QrVerificationService

    def scan_session(self, selected_booking_id: int | None, stop_on_valid: bool = True) -> ScanSession:
        """New check-in scan loop bound to the shared verifier."""
        return ScanSession(self.verifier, selected_booking_id, stop_on_valid=stop_on_valid)


def build_services(
    backend: BookingBackend | None = None,
    notifications: NotificationService | None = None,
    mutator: OptimisticMutator | None = None,
) -> DeskServices:
    """Assemble the services around a backend adapter."""
    backend = backend or HttpBookingBackend()
    notifications = notifications or NotificationService()
    mutator = mutator or OptimisticMutator()
    bookings = BookingListService(backend, mutator)
    actions = BookingActionService(
        backend,
        notifier=notifications,
        approver_provider=token_approver_provider(),
        mutator=mutator,
        refetch=bookings.refresh,
    )
    return DeskServices(
        backend=backend,
        mutator=mutator,
        notifications=notifications,
        bookings=bookings,
        actions=actions,
        verifier=QrVerificationService(backend),
    )


async def forward_access_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str | None:
    """Expose the caller's bearer token to outgoing backend calls.

    Each request is served in its own task context, so the value does not
    leak between requests.
    """
    token = credentials.credentials if credentials else None
    current_access_token.set(token)
    return token


def get_services(request: Request) -> DeskServices:
    """Service graph stored on the application."""
    return request.app.state.services


Services = Annotated[DeskServices, Depends(get_services)]
AccessToken = Annotated[str | None, Depends(forward_access_token)]
