"""Booking desk: optimistic booking status mutations and QR check-in verification."""

__version__ = "1.0.0"
