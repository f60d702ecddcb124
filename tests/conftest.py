"""Shared fixtures: an in-memory booking backend that records every call."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from bookingdesk.gateways.base import BackendResult, BookingBackend, Decision
from bookingdesk.schemas.booking import Booking
from bookingdesk.services.booking_action_service import BookingActionService, OptimisticMutator
from bookingdesk.services.booking_list_service import BookingListService
from bookingdesk.services.notification_service import NotificationService
from bookingdesk.services.qr_verification_service import QrVerificationService


def raw_booking(booking_id: int = 10, status: str = "PENDING", **overrides) -> dict:
    now = datetime.now(UTC)
    record = {
        "id": booking_id,
        "code": f"BK-{booking_id}",
        "userId": 7,
        "userName": "Nguyen Van A",
        "roomId": 3,
        "roomCode": "A101",
        "checkinDate": (now - timedelta(days=1)).isoformat(),
        "checkoutDate": (now + timedelta(days=2)).isoformat(),
        "numGuests": 2,
        "status": status,
    }
    record.update(overrides)
    return record


class FakeBackend(BookingBackend):
    """Recording backend; responses and delays are set per test."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.records: dict[int, dict] = {}
        self.results: dict[str, BackendResult] = {}
        self.errors: dict[str, Exception] = {}
        self.delay: float = 0.0
        self.gate: asyncio.Event | None = None

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    async def _respond(self, name: str, default: BackendResult) -> BackendResult:
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if name in self.errors:
            raise self.errors[name]
        return self.results.get(name, default)

    async def decide_booking(self, booking_id, approver_id, decision: Decision, reason=""):
        self.calls.append(("decide_booking", booking_id, approver_id, decision, reason))
        return await self._respond("decide_booking", BackendResult(success=True, status_code=200))

    async def checkout_booking(self, booking_id, user_id=None):
        self.calls.append(("checkout_booking", booking_id, user_id))
        return await self._respond("checkout_booking", BackendResult(success=True, status_code=200))

    async def verify_qr_token(self, token):
        self.calls.append(("verify_qr_token", token))
        if "verify_qr_token" in self.errors:
            raise self.errors["verify_qr_token"]
        return self.results.get(
            "verify_qr_token", BackendResult(success=False, status_code=403, error_message="Forbidden")
        )

    async def get_booking(self, booking_id):
        self.calls.append(("get_booking", booking_id))
        if "get_booking" in self.errors:
            raise self.errors["get_booking"]
        if "get_booking" in self.results:
            return self.results["get_booking"]
        record = self.records.get(booking_id)
        if record is None:
            return BackendResult(success=False, status_code=404, error_message=f"Booking with ID {booking_id} not found")
        return BackendResult(success=True, status_code=200, data=dict(record))

    async def list_bookings(self, status=None):
        self.calls.append(("list_bookings", status))
        if "list_bookings" in self.results:
            return self.results["list_bookings"]
        records = [r for r in self.records.values() if status is None or r["status"] == status]
        return BackendResult(success=True, status_code=200, data=[dict(r) for r in records])

    async def get_user(self, user_id):
        self.calls.append(("get_user", user_id))
        return self.results.get("get_user", BackendResult(success=False, status_code=404))

    async def get_room(self, room_id):
        self.calls.append(("get_room", room_id))
        return self.results.get("get_room", BackendResult(success=False, status_code=404))


class RecordingNotifier:
    def __init__(self) -> None:
        self.events: list[tuple] = []

    def notify(self, booking_id, guest_label, room_label, new_status, reason=None):
        self.events.append((booking_id, guest_label, room_label, new_status, reason))


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def mutator() -> OptimisticMutator:
    return OptimisticMutator(timeout=8.0)


@pytest.fixture
def actions(backend, notifier, mutator) -> BookingActionService:
    return BookingActionService(
        backend,
        notifier=notifier,
        approver_provider=lambda: "admin-1",
        mutator=mutator,
    )


@pytest.fixture
def booking_list(backend, mutator) -> BookingListService:
    return BookingListService(backend, mutator)


@pytest.fixture
def verifier(backend) -> QrVerificationService:
    return QrVerificationService(backend)


@pytest.fixture
def notifications() -> NotificationService:
    return NotificationService(feed_limit=5)


@pytest.fixture
def make_booking():
    def _make(booking_id: int = 10, status: str = "PENDING", **overrides) -> Booking:
        return Booking.model_validate(raw_booking(booking_id, status, **overrides))

    return _make


@pytest.fixture
def make_raw():
    return raw_booking
