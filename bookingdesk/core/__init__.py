"""Core utilities: exceptions, token helpers and mutation guards."""

from bookingdesk.core.exceptions import (
    AppException,
    AuthenticationError,
    ErrorKind,
    InvalidTransition,
    LookupFailure,
    MutationInProgress,
    NetworkFailure,
    RequestTimeout,
    TokenMismatch,
    TokenUnreadable,
    ValidationError,
)
from bookingdesk.core.inflight import InFlightRegistry
from bookingdesk.core.security import (
    approver_id_from_token,
    current_access_token,
    resolve_access_token,
    token_approver_provider,
)

__all__ = [
    "AppException",
    "AuthenticationError",
    "ErrorKind",
    "InvalidTransition",
    "LookupFailure",
    "MutationInProgress",
    "NetworkFailure",
    "RequestTimeout",
    "TokenMismatch",
    "TokenUnreadable",
    "ValidationError",
    "InFlightRegistry",
    "approver_id_from_token",
    "current_access_token",
    "resolve_access_token",
    "token_approver_provider",
]
