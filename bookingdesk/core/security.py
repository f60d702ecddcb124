"""Access-token helpers for identifying the acting approver."""

import logging
from collections.abc import Callable
from contextvars import ContextVar

from jose import JWTError, jwt

from bookingdesk.config import settings

logger = logging.getLogger(__name__)

# Bearer token of the request being served, forwarded to the backend
current_access_token: ContextVar[str | None] = ContextVar("current_access_token", default=None)


def resolve_access_token() -> str | None:
    """Token for outgoing backend calls: the caller's, else the configured one."""
    return current_access_token.get() or settings.access_token


# Claims checked for the user identity, in order
IDENTITY_CLAIMS = ("sub", "userId", "user_id", "id")


def approver_id_from_token(token: str | None) -> str | None:
    """Read the caller identity from an access token.

    The signature is not verified here; the backend validates the token on
    every request. This only labels the approver in the request body.
    """
    if not token:
        return None
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError as e:
        logger.warning(f"Could not read claims from access token: {e}")
        return None

    for claim in IDENTITY_CLAIMS:
        value = claims.get(claim)
        if value is not None and str(value).strip():
            return str(value)
    return None


def token_approver_provider() -> Callable[[], str | None]:
    """Approver provider backed by the active access token."""
    return lambda: approver_id_from_token(resolve_access_token())
