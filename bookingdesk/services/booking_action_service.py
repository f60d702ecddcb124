"""Optimistic booking status mutations.

Approve, reject and checkout all follow the same protocol:

1. Validate locally (approver identity, reason, legal transition, no other
   action in flight for the booking). Nothing goes over the wire if any of
   these fail.
2. Shadow the booking's status with the target status immediately.
3. Call the backend under an abort timer.
4. On success keep the shadow status and notify. On failure or timeout
   restore the status captured in step 2.

Every failure is returned as a :class:`MutationResult`; nothing raises out of
the public methods.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable

from bookingdesk.config import settings
from bookingdesk.core.exceptions import (
    AppException,
    AuthenticationError,
    ErrorKind,
    RequestTimeout,
    ValidationError,
)
from bookingdesk.core.inflight import InFlightRegistry
from bookingdesk.domain.booking_state import assert_booking_transition
from bookingdesk.domain.status_overrides import StatusOverrideMap
from bookingdesk.gateways.base import BackendResult, BookingBackend, Decision
from bookingdesk.schemas.booking import (
    Booking,
    BookingStatus,
    MutationOutcome,
    MutationResult,
)
from bookingdesk.services.notification_service import LifecycleNotifier

logger = logging.getLogger(__name__)

RemoteCall = Callable[[], Awaitable[BackendResult]]

GENERIC_FAILURE_MESSAGES = {
    BookingStatus.APPROVED: "Failed to approve booking",
    BookingStatus.REJECTED: "Failed to reject booking",
    BookingStatus.CHECKED_OUT: "Failed to check out booking",
}


class OptimisticMutator:
    """Applies status changes locally before the backend confirms them."""

    def __init__(
        self,
        overrides: StatusOverrideMap | None = None,
        inflight: InFlightRegistry | None = None,
        timeout: float | None = None,
    ) -> None:
        self.overrides = overrides if overrides is not None else StatusOverrideMap()
        self.inflight = inflight if inflight is not None else InFlightRegistry()
        self.timeout = timeout if timeout is not None else settings.mutation_timeout_seconds

    def effective_status(self, booking: Booking) -> BookingStatus:
        return self.overrides.effective_status(booking)

    def reconcile(self, bookings: Iterable[Booking]) -> list[int]:
        """Let freshly fetched records replace settled overrides."""
        return self.overrides.reconcile(bookings, keep=self.inflight.ids())

    async def mutate(
        self,
        booking: Booking,
        target: BookingStatus,
        remote_call: RemoteCall,
    ) -> MutationResult:
        """Run one optimistic mutation.

        Args:
            booking: Booking as last seen by the caller
            target: Status to apply
            remote_call: Zero-arg coroutine factory performing the backend call

        Returns:
            MutationResult; on FAILURE/TIMEOUT the override has already been
            restored to ``previous_status``
        """
        try:
            with self.inflight.claim(booking.id):
                previous = self.overrides.get(booking.id) or booking.status
                assert_booking_transition(previous, target)

                self.overrides.set(booking.id, target)
                try:
                    result = await self._settle(booking.id, previous, target, remote_call)
                except asyncio.CancelledError:
                    self.overrides.set(booking.id, previous)
                    raise

                if not result.ok:
                    self.overrides.set(booking.id, result.previous_status)
                    logger.info(
                        f"Rolled back booking {booking.id} to {result.previous_status.value} "
                        f"({result.outcome.value}: {result.message})"
                    )
                result.effective_status = self.overrides.get(booking.id)
                return result
        except AppException as e:
            return rejected_result(booking, target, e, self.overrides.effective_status(booking))

    async def _settle(
        self,
        booking_id: int,
        previous: BookingStatus,
        target: BookingStatus,
        remote_call: RemoteCall,
    ) -> MutationResult:
        def outcome(kind: MutationOutcome, error_kind: ErrorKind | None, message: str) -> MutationResult:
            return MutationResult(
                outcome=kind,
                booking_id=booking_id,
                target_status=target,
                previous_status=previous,
                error_kind=error_kind,
                message=message,
            )

        generic = GENERIC_FAILURE_MESSAGES.get(target, "Request failed")
        try:
            response = await asyncio.wait_for(remote_call(), timeout=self.timeout)
        except (asyncio.TimeoutError, RequestTimeout):
            logger.warning(f"Booking {booking_id} → {target.value} timed out after {self.timeout}s")
            return outcome(MutationOutcome.TIMEOUT, ErrorKind.TIMEOUT, RequestTimeout().message)
        except Exception as e:
            logger.error(f"Booking {booking_id} → {target.value} failed: {e}")
            return outcome(MutationOutcome.FAILURE, ErrorKind.NETWORK_FAILURE, generic)

        if not response.success:
            return outcome(
                MutationOutcome.FAILURE,
                ErrorKind.NETWORK_FAILURE,
                response.error_message or generic,
            )
        return outcome(MutationOutcome.SUCCESS, None, "")


def rejected_result(
    booking: Booking,
    target: BookingStatus,
    exc: AppException,
    current: BookingStatus | None = None,
) -> MutationResult:
    """Result for a mutation refused before any I/O.

    ``current`` is the status the desk shows, override included.
    """
    status = current or booking.status
    return MutationResult(
        outcome=MutationOutcome.REJECTED,
        booking_id=booking.id,
        target_status=target,
        previous_status=status,
        effective_status=status,
        error_kind=exc.kind,
        message=exc.message,
    )


class BookingActionService:
    """Approve, reject and checkout orchestration for the booking desk."""

    def __init__(
        self,
        backend: BookingBackend,
        notifier: LifecycleNotifier | None = None,
        approver_provider: Callable[[], str | None] | None = None,
        mutator: OptimisticMutator | None = None,
        refetch: Callable[[], Awaitable[object]] | None = None,
    ) -> None:
        self.backend = backend
        self.notifier = notifier
        self.approver_provider = approver_provider or (lambda: None)
        self.mutator = mutator or OptimisticMutator()
        self.refetch = refetch

    def effective_status(self, booking: Booking) -> BookingStatus:
        return self.mutator.effective_status(booking)

    def is_in_flight(self, booking_id: int) -> bool:
        return self.mutator.inflight.is_in_flight(booking_id)

    def _require_approver(self) -> str:
        approver_id = self.approver_provider()
        if not approver_id:
            raise AuthenticationError("Not authenticated: approver identity unavailable")
        return approver_id

    async def approve(self, booking: Booking) -> MutationResult:
        """Approve a pending booking."""
        try:
            approver_id = self._require_approver()
        except AppException as e:
            return rejected_result(booking, BookingStatus.APPROVED, e, self.effective_status(booking))

        result = await self.mutator.mutate(
            booking,
            BookingStatus.APPROVED,
            lambda: self.backend.decide_booking(booking.id, approver_id, Decision.APPROVED, ""),
        )
        if result.ok:
            self._notify(booking, BookingStatus.APPROVED)
        return result

    async def reject(self, booking: Booking, reason: str | None) -> MutationResult:
        """Reject a pending booking; a non-blank reason is required."""
        try:
            cleaned = (reason or "").strip()
            if not cleaned:
                raise ValidationError("A rejection reason is required")
            approver_id = self._require_approver()
        except AppException as e:
            return rejected_result(booking, BookingStatus.REJECTED, e, self.effective_status(booking))

        result = await self.mutator.mutate(
            booking,
            BookingStatus.REJECTED,
            lambda: self.backend.decide_booking(booking.id, approver_id, Decision.REJECTED, cleaned),
        )
        if result.ok:
            self._notify(booking, BookingStatus.REJECTED, reason=cleaned)
        return result

    async def checkout(self, booking: Booking, user_id: str | None = None) -> MutationResult:
        """Check a guest out, then refetch the booking list."""
        result = await self.mutator.mutate(
            booking,
            BookingStatus.CHECKED_OUT,
            lambda: self.backend.checkout_booking(booking.id, user_id or booking.user_id),
        )
        if result.ok:
            self._notify(booking, BookingStatus.CHECKED_OUT)
            await self._refetch()
        return result

    async def _refetch(self) -> None:
        if self.refetch is None:
            return
        try:
            await self.refetch()
        except Exception as e:
            logger.warning(f"Booking list refetch after checkout failed: {e}")

    def _notify(self, booking: Booking, status: BookingStatus, reason: str | None = None) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.notify(booking.id, booking.guest_label, booking.room_label, status, reason)
        except Exception as e:
            logger.error(f"Notifier raised for booking {booking.id}: {e}")
