"""Custom application exceptions."""

from enum import Enum

from fastapi import HTTPException, status


class ErrorKind(str, Enum):
    """Failure classes surfaced by mutations and verification."""

    INVALID_TRANSITION = "invalid_transition"
    VALIDATION = "validation"
    NOT_AUTHENTICATED = "not_authenticated"
    IN_FLIGHT = "in_flight"
    NETWORK_FAILURE = "network_failure"
    TIMEOUT = "timeout"
    TOKEN_UNREADABLE = "token_unreadable"
    TOKEN_MISMATCH = "token_mismatch"
    LOOKUP_FAILURE = "lookup_failure"
    STATUS_INELIGIBLE = "status_ineligible"


class AppException(HTTPException):
    """Base application exception."""

    kind: ErrorKind = ErrorKind.NETWORK_FAILURE

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)

    @property
    def message(self) -> str:
        return str(self.detail)


class InvalidTransition(AppException):
    """Status change outside the legal transition table."""

    kind = ErrorKind.INVALID_TRANSITION

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Invalid booking transition: {current} → {target}",
        )


class ValidationError(AppException):
    """Validation error exception."""

    kind = ErrorKind.VALIDATION

    def __init__(self, detail: str = "Validation failed") -> None:
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class AuthenticationError(AppException):
    """Authentication failed exception."""

    kind = ErrorKind.NOT_AUTHENTICATED

    def __init__(self, detail: str = "Not authenticated") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class MutationInProgress(AppException):
    """Another mutation for the same booking has not settled yet."""

    kind = ErrorKind.IN_FLIGHT

    def __init__(self, booking_id: int) -> None:
        self.booking_id = booking_id
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Booking {booking_id} already has an action in progress",
        )


class NetworkFailure(AppException):
    """Remote call rejected or returned a non-2xx response."""

    kind = ErrorKind.NETWORK_FAILURE

    def __init__(
        self,
        detail: str = "Request to booking service failed",
        upstream_status: int | None = None,
    ) -> None:
        self.upstream_status = upstream_status
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)


class RequestTimeout(AppException):
    """Remote call did not settle within its deadline."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, detail: str = "The request took too long. Please try again.") -> None:
        super().__init__(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=detail)


class TokenUnreadable(AppException):
    """Scanned token does not contain a booking id."""

    kind = ErrorKind.TOKEN_UNREADABLE

    def __init__(self, detail: str = "no booking id in token") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class TokenMismatch(AppException):
    """Scanned token refers to a different booking."""

    kind = ErrorKind.TOKEN_MISMATCH

    def __init__(self, token_booking_id: int, selected_booking_id: int) -> None:
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                "token does not match this booking "
                f"(token booking {token_booking_id}, selected booking {selected_booking_id})"
            ),
        )


class LookupFailure(AppException):
    """Authoritative booking fetch failed."""

    kind = ErrorKind.LOOKUP_FAILURE

    def __init__(self, detail: str = "Booking lookup failed") -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
