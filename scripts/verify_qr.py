#!/usr/bin/env python3
"""
Decode a scanned check-in token and verify it against the booking desk API.

DO NOT ADD BUSINESS LOGIC HERE.
This script only decodes locally for display and orchestrates API calls.

Usage:
    python scripts/verify_qr.py "42|7"
    python scripts/verify_qr.py eyJib29raW5nSWQiOjQyfQ --booking-id 42
    python scripts/verify_qr.py eyJib29raW5nSWQiOjQyfQ --decode-only
"""

import argparse
import json
import sys
from pathlib import Path

import httpx

from bookingdesk.domain.token_codec import decode_token

BASE_URL = "http://localhost:8000"
TOKEN_FILE = Path(__file__).parent.parent / ".token"


def read_token() -> str | None:
    """Read stored access token, if any."""
    if not TOKEN_FILE.exists():
        return None
    return TOKEN_FILE.read_text().strip() or None


def verify(raw: str, booking_id: int) -> dict:
    """Call the verification endpoint."""
    headers = {}
    token = read_token()
    if token:
        headers["Authorization"] = f"Bearer {token}"

    response = httpx.post(
        f"{BASE_URL}/api/v1/verification/qr/verify",
        json={"token": raw, "selected_booking_id": booking_id},
        headers=headers,
        timeout=10.0,
    )
    if response.status_code != 200:
        print(f"ERROR: Verification request failed with status {response.status_code}")
        print(response.text)
        sys.exit(1)
    return response.json()


def main():
    parser = argparse.ArgumentParser(description="Decode and verify a check-in QR token")
    parser.add_argument("token", help="Raw scanned string")
    parser.add_argument("--booking-id", type=int, help="Booking open at the desk (defaults to the token's)")
    parser.add_argument("--decode-only", action="store_true", help="Only decode locally")
    args = parser.parse_args()

    payload = decode_token(args.token)
    if payload is None:
        print("ERROR: Token does not contain a booking id")
        sys.exit(1)
    print(f"Decoded: booking {payload.booking_id}, user {payload.user_id or '-'}")

    if args.decode_only:
        return

    verdict = verify(args.token, args.booking_id or payload.booking_id)
    print(json.dumps(verdict, indent=2))
    sys.exit(0 if verdict.get("valid") else 2)


if __name__ == "__main__":
    main()
