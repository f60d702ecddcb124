import pytest
from jose import jwt

from bookingdesk.core.exceptions import MutationInProgress
from bookingdesk.core.inflight import InFlightRegistry
from bookingdesk.core.security import approver_id_from_token, current_access_token, resolve_access_token


def _token(claims: dict) -> str:
    return jwt.encode(claims, "not-checked-here", algorithm="HS256")


def test_approver_from_subject_claim():
    assert approver_id_from_token(_token({"sub": "admin-1", "userId": 5})) == "admin-1"


def test_approver_falls_back_to_user_id_claim():
    assert approver_id_from_token(_token({"userId": 5})) == "5"


def test_unreadable_or_anonymous_token_has_no_approver():
    assert approver_id_from_token(None) is None
    assert approver_id_from_token("not.a.jwt") is None
    assert approver_id_from_token(_token({"role": "admin"})) is None


def test_request_token_takes_precedence():
    reset = current_access_token.set("request-token")
    try:
        assert resolve_access_token() == "request-token"
    finally:
        current_access_token.reset(reset)


def test_inflight_claim_is_exclusive_and_released():
    registry = InFlightRegistry()

    with registry.claim(10):
        assert registry.is_in_flight(10)
        with pytest.raises(MutationInProgress):
            with registry.claim(10):
                pass
        assert registry.is_in_flight(10)

    assert not registry.is_in_flight(10)
    assert registry.ids() == set()
