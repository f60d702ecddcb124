"""HTTP adapter for the remote booking service."""

import logging
from collections.abc import Callable
from typing import Any

import httpx

from bookingdesk.config import settings
from bookingdesk.core.exceptions import RequestTimeout
from bookingdesk.core.security import resolve_access_token
from bookingdesk.gateways.base import BackendResult, BookingBackend, Decision

logger = logging.getLogger(__name__)

# Backend envelope code for a successful operation
SUCCESS_RESPONSE_CODE = "S0000"


def extract_error_message(response: httpx.Response) -> str | None:
    """Pull the server-provided error text out of a response body."""
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text or None

    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value
    elif isinstance(body, str) and body.strip():
        return body
    return None


def unwrap_envelope(body: Any) -> Any:
    """Strip a ``{"data": ...}`` envelope if present."""
    if isinstance(body, dict) and "data" in body and body["data"] is not None:
        return body["data"]
    return body


class HttpBookingBackend(BookingBackend):
    """Booking backend reached over HTTP with httpx."""

    def __init__(
        self,
        base_url: str | None = None,
        token_provider: Callable[[], str | None] | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.backend_base_url).rstrip("/")
        self.token_provider = token_provider or resolve_access_token
        self.timeout = timeout if timeout is not None else settings.lookup_timeout_seconds
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        token = self.token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> BackendResult:
        try:
            response = await self.http_client.request(
                method, path, json=json, params=params, headers=self._headers()
            )
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {path} timed out: {e}")
            raise RequestTimeout() from e
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            return BackendResult(success=False, error_message=None)

        if response.is_success:
            try:
                body = response.json() if response.content else None
            except ValueError:
                body = response.text
            code = body.get("responseCode") if isinstance(body, dict) else None
            if code and code != SUCCESS_RESPONSE_CODE:
                return BackendResult(
                    success=False,
                    status_code=response.status_code,
                    data=body,
                    error_message=body.get("message") or f"Backend returned {code}",
                )
            return BackendResult(
                success=True,
                status_code=response.status_code,
                data=unwrap_envelope(body),
            )

        logger.info(f"{method} {path} returned {response.status_code}")
        return BackendResult(
            success=False,
            status_code=response.status_code,
            error_message=extract_error_message(response),
        )

    async def decide_booking(
        self,
        booking_id: int,
        approver_id: str,
        decision: Decision,
        reason: str = "",
    ) -> BackendResult:
        payload = {
            "bookingId": booking_id,
            "approverId": approver_id,
            "decision": decision.value,
            "reason": reason,
        }
        return await self._request("POST", f"/bookings/{booking_id}/approve", json=payload)

    async def checkout_booking(
        self,
        booking_id: int,
        user_id: str | None = None,
    ) -> BackendResult:
        payload: dict[str, Any] = {"bookingId": booking_id}
        if user_id:
            payload["userId"] = user_id
        return await self._request("POST", f"/bookings/{booking_id}/checkout", json=payload)

    async def verify_qr_token(self, token: str) -> BackendResult:
        return await self._request("POST", "/verification/qr/verify", json={"token": token})

    async def get_booking(self, booking_id: int) -> BackendResult:
        result = await self._request("GET", f"/bookings/{booking_id}")
        if result.success and isinstance(result.data, list):
            match = next(
                (b for b in result.data if isinstance(b, dict) and str(b.get("id")) == str(booking_id)),
                None,
            )
            if match is None:
                return BackendResult(
                    success=False,
                    status_code=result.status_code,
                    error_message=f"Booking with ID {booking_id} not found",
                )
            result.data = match
        if not result.success and result.status_code == 404 and not result.error_message:
            result.error_message = f"Booking with ID {booking_id} not found"
        return result

    async def list_bookings(self, status: str | None = None) -> BackendResult:
        path = f"/bookings/by-status/{status}" if status else "/bookings"
        result = await self._request("GET", path)
        if result.success and not isinstance(result.data, list):
            result.data = [] if result.data is None else [result.data]
        return result

    async def get_user(self, user_id: str) -> BackendResult:
        return await self._request("GET", "/users", params={"id": user_id})

    async def get_room(self, room_id: int) -> BackendResult:
        return await self._request("GET", "/rooms", params={"id": room_id})
