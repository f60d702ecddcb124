import base64
import json

import httpx
import pytest
from jose import jwt

from bookingdesk.api.deps import build_services
from bookingdesk.gateways.base import BackendResult
from bookingdesk.main import create_application
from bookingdesk.services.notification_service import NotificationService

ADMIN = {"Authorization": f"Bearer {jwt.encode({'sub': 'admin-1'}, 'secret', algorithm='HS256')}"}


@pytest.fixture
def desk_backend(backend, make_raw):
    backend.records = {
        10: make_raw(10, "PENDING"),
        11: make_raw(11, "APPROVED"),
        12: make_raw(12, "CHECKED_IN"),
    }
    return backend


@pytest.fixture
async def client(desk_backend):
    services = build_services(backend=desk_backend, notifications=NotificationService(feed_limit=10))
    app = create_application(services)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://desk.test") as client:
        yield client


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Request-ID" in response.headers
    assert response.headers["X-Content-Type-Options"] == "nosniff"


async def test_list_bookings_reports_effective_status(client):
    response = await client.get("/api/v1/bookings/", headers=ADMIN)

    body = response.json()
    assert response.status_code == 200
    assert body["total"] == 3
    assert response.headers["Cache-Control"] == "no-store"
    assert body["effective_statuses"] == {"10": "PENDING", "11": "APPROVED", "12": "CHECKED_IN"}


async def test_list_bookings_by_status(client, desk_backend):
    response = await client.get("/api/v1/bookings/", params={"status": "APPROVED"}, headers=ADMIN)

    assert [b["id"] for b in response.json()["bookings"]] == [11]
    assert desk_backend.calls[-1] == ("list_bookings", "APPROVED")


async def test_list_failure_maps_to_bad_gateway(client, desk_backend):
    desk_backend.results["list_bookings"] = BackendResult(success=False, status_code=500)

    response = await client.get("/api/v1/bookings/", headers=ADMIN)

    assert response.status_code == 502
    assert response.json()["kind"] == "network_failure"


async def test_approve_uses_token_identity(client, desk_backend):
    response = await client.post("/api/v1/bookings/10/approve", headers=ADMIN)

    assert response.status_code == 200
    assert response.json()["outcome"] == "success"
    assert response.json()["effective_status"] == "APPROVED"
    assert desk_backend.calls[-1][:3] == ("decide_booking", 10, "admin-1")

    feed = await client.get("/api/v1/notifications/", params={"role": "user"})
    assert feed.json()[0]["title"] == "Booking confirmed"


async def test_approve_without_token_is_unauthenticated(client, desk_backend):
    response = await client.post("/api/v1/bookings/10/approve")

    assert response.status_code == 401
    assert response.json()["error_kind"] == "not_authenticated"
    assert desk_backend.count("decide_booking") == 0


async def test_illegal_transition_is_conflict(client, desk_backend):
    response = await client.post("/api/v1/bookings/11/approve", headers=ADMIN)

    assert response.status_code == 409
    assert response.json()["error_kind"] == "invalid_transition"
    assert desk_backend.count("decide_booking") == 0


async def test_reject_requires_reason(client):
    response = await client.post("/api/v1/bookings/10/reject", json={"reason": "  "}, headers=ADMIN)

    assert response.status_code == 422
    assert response.json()["error_kind"] == "validation"


async def test_reject_failure_reports_server_text(client, desk_backend):
    desk_backend.results["decide_booking"] = BackendResult(
        success=False, status_code=409, error_message="Booking already decided"
    )

    response = await client.post("/api/v1/bookings/10/reject", json={"reason": "Overbooked"}, headers=ADMIN)

    body = response.json()
    assert response.status_code == 502
    assert body["outcome"] == "failure"
    assert body["message"] == "Booking already decided"
    assert body["effective_status"] == "PENDING"


async def test_checkout_checked_in_booking(client, desk_backend):
    response = await client.post("/api/v1/bookings/12/checkout", json={}, headers=ADMIN)

    assert response.status_code == 200
    assert desk_backend.calls[-1] == ("list_bookings", None)
    assert ("checkout_booking", 12, "7") in desk_backend.calls


async def test_unknown_booking_is_not_found(client):
    response = await client.get("/api/v1/bookings/404", headers=ADMIN)

    assert response.status_code == 404
    assert response.json()["kind"] == "lookup_failure"


async def test_issue_and_verify_checkin_token(client):
    issued = await client.get("/api/v1/bookings/12/qr", headers=ADMIN)
    token = issued.json()["token"]
    assert json.loads(base64.b64decode(token))["bookingId"] == 12

    response = await client.post(
        "/api/v1/verification/qr/verify",
        json={"token": token, "selected_booking_id": 12},
        headers=ADMIN,
    )

    verdict = response.json()
    assert response.status_code == 200
    assert verdict["valid"] is True
    assert verdict["booking_code"] == "BK-12"


async def test_no_token_for_pending_booking(client):
    response = await client.get("/api/v1/bookings/10/qr", headers=ADMIN)

    assert response.status_code == 422


async def test_mismatched_token_is_an_invalid_verdict(client, desk_backend):
    response = await client.post(
        "/api/v1/verification/qr/verify",
        json={"token": "5|7", "selected_booking_id": 6},
    )

    assert response.status_code == 200
    assert response.json()["valid"] is False
    assert response.json()["error_kind"] == "token_mismatch"
    assert desk_backend.count("get_booking") == 0


async def test_notification_feed_filters_by_role(client):
    await client.post("/api/v1/bookings/12/checkout", json={}, headers=ADMIN)

    staff = await client.get("/api/v1/notifications/", params={"role": "staff"})
    user = await client.get("/api/v1/notifications/", params={"role": "user"})
    unknown = await client.get("/api/v1/notifications/", params={"role": "guest"})

    assert [n["status"] for n in staff.json()] == ["CHECKED_OUT"]
    assert user.json() == []
    assert unknown.status_code == 422
