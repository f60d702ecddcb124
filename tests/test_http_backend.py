import json

import httpx
import pytest

from bookingdesk.core.exceptions import RequestTimeout
from bookingdesk.gateways.base import Decision
from bookingdesk.gateways.http_backend import HttpBookingBackend


class Recorder:
    """MockTransport handler that records requests and replays one response."""

    def __init__(self, response: httpx.Response | Exception) -> None:
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    @property
    def last_json(self) -> dict:
        return json.loads(self.last.content)


def make_backend(response, token: str | None = "tok-123") -> tuple[HttpBookingBackend, Recorder]:
    recorder = Recorder(response)
    backend = HttpBookingBackend(
        base_url="http://backend.test/api",
        token_provider=lambda: token,
        transport=httpx.MockTransport(recorder),
    )
    return backend, recorder


async def test_approve_posts_decision_with_bearer_token():
    backend, recorder = make_backend(httpx.Response(200, json={"responseCode": "S0000", "data": {"id": 10}}))

    result = await backend.decide_booking(10, "admin-1", Decision.APPROVED)

    assert result.success
    assert result.data == {"id": 10}
    assert recorder.last.method == "POST"
    assert recorder.last.url.path == "/api/bookings/10/approve"
    assert recorder.last.headers["Authorization"] == "Bearer tok-123"
    assert recorder.last_json == {
        "bookingId": 10,
        "approverId": "admin-1",
        "decision": "APPROVED",
        "reason": "",
    }


async def test_reject_uses_same_endpoint_with_reason():
    backend, recorder = make_backend(httpx.Response(200, json={}))

    await backend.decide_booking(10, "admin-1", Decision.REJECTED, "Overbooked")

    assert recorder.last.url.path == "/api/bookings/10/approve"
    assert recorder.last_json["decision"] == "REJECTED"
    assert recorder.last_json["reason"] == "Overbooked"


async def test_no_token_sends_no_authorization_header():
    backend, recorder = make_backend(httpx.Response(200, json={}), token=None)

    await backend.checkout_booking(10)

    assert "Authorization" not in recorder.last.headers
    assert recorder.last_json == {"bookingId": 10}


async def test_checkout_includes_user_id():
    backend, recorder = make_backend(httpx.Response(200, json={}))

    await backend.checkout_booking(10, "7")

    assert recorder.last.url.path == "/api/bookings/10/checkout"
    assert recorder.last_json == {"bookingId": 10, "userId": "7"}


@pytest.mark.parametrize(
    "body, expected",
    [
        ({"message": "Room is no longer available"}, "Room is no longer available"),
        ({"error": "Conflict"}, "Conflict"),
        ({"detail": "Booking locked"}, "Booking locked"),
        ({"message": "  ", "error": "Conflict"}, "Conflict"),
        ({}, None),
    ],
)
async def test_error_message_is_taken_from_body(body, expected):
    backend, _ = make_backend(httpx.Response(409, json=body))

    result = await backend.decide_booking(10, "admin-1", Decision.APPROVED)

    assert not result.success
    assert result.status_code == 409
    assert result.error_message == expected


async def test_plain_text_error_body():
    backend, _ = make_backend(httpx.Response(500, text="upstream exploded"))

    result = await backend.checkout_booking(10)

    assert result.error_message == "upstream exploded"


async def test_non_success_response_code_is_a_failure():
    backend, _ = make_backend(
        httpx.Response(200, json={"responseCode": "E1001", "message": "Booking already decided"})
    )

    result = await backend.decide_booking(10, "admin-1", Decision.APPROVED)

    assert not result.success
    assert result.error_message == "Booking already decided"


async def test_timeout_raises_request_timeout():
    backend, _ = make_backend(httpx.ReadTimeout("read timed out"))

    with pytest.raises(RequestTimeout):
        await backend.decide_booking(10, "admin-1", Decision.APPROVED)


async def test_connection_error_is_a_failed_result():
    backend, _ = make_backend(httpx.ConnectError("connection refused"))

    result = await backend.get_booking(10)

    assert not result.success
    assert result.status_code is None


async def test_get_booking_picks_matching_record_from_list():
    backend, recorder = make_backend(httpx.Response(200, json=[{"id": 9}, {"id": 10, "status": "APPROVED"}]))

    result = await backend.get_booking(10)

    assert recorder.last.url.path == "/api/bookings/10"
    assert result.data == {"id": 10, "status": "APPROVED"}


async def test_get_booking_list_without_match_is_not_found():
    backend, _ = make_backend(httpx.Response(200, json=[{"id": 9}]))

    result = await backend.get_booking(10)

    assert not result.success
    assert result.error_message == "Booking with ID 10 not found"


async def test_get_booking_404_without_text_gets_message():
    backend, _ = make_backend(httpx.Response(404))

    result = await backend.get_booking(10)

    assert result.error_message == "Booking with ID 10 not found"


async def test_list_bookings_by_status_normalizes_to_list():
    backend, recorder = make_backend(httpx.Response(200, json={"data": {"id": 1}}))

    result = await backend.list_bookings("PENDING")

    assert recorder.last.url.path == "/api/bookings/by-status/PENDING"
    assert result.data == [{"id": 1}]


async def test_list_bookings_empty_body():
    backend, recorder = make_backend(httpx.Response(200))

    result = await backend.list_bookings()

    assert recorder.last.url.path == "/api/bookings"
    assert result.success
    assert result.data == []


async def test_user_and_room_lookups_use_query_ids():
    backend, recorder = make_backend(httpx.Response(200, json=[]))

    await backend.get_user("7")
    assert recorder.last.url.path == "/api/users"
    assert recorder.last.url.params["id"] == "7"

    await backend.get_room(3)
    assert recorder.last.url.path == "/api/rooms"
    assert recorder.last.url.params["id"] == "3"


async def test_verify_qr_token_posts_raw_token():
    backend, recorder = make_backend(httpx.Response(200, json={"valid": True}))

    result = await backend.verify_qr_token("NDJ8Nw")

    assert result.success
    assert recorder.last.url.path == "/api/verification/qr/verify"
    assert recorder.last_json == {"token": "NDJ8Nw"}


async def test_close_releases_client():
    backend, _ = make_backend(httpx.Response(200, json={}))
    await backend.list_bookings()
    first = backend.http_client

    await backend.close()

    assert backend._http_client is None
    assert backend.http_client is not first
    await backend.close()
