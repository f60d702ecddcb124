"""Notification bridge for booking lifecycle events.

Builds in-app notifications for booking status changes and keeps a bounded,
newest-first feed for the rendering layer. Dispatch is fire-and-forget:
failures are logged and never reach the caller.
"""

import itertools
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol

from bookingdesk.config import settings
from bookingdesk.schemas.booking import BookingStatus

logger = logging.getLogger(__name__)


class LifecycleNotifier(Protocol):
    """Callable interface the mutation service notifies through."""

    def notify(
        self,
        booking_id: int,
        guest_label: str,
        room_label: str,
        new_status: BookingStatus,
        reason: str | None = None,
    ) -> None: ...


@dataclass
class Notification:
    """In-app notification."""

    id: int
    title: str
    message: str
    type: str
    priority: str
    visible_to: list[str]
    booking_id: int
    status: BookingStatus
    category: str = "booking"
    created_by: str = "office"
    action_url: str = "/admin/bookings"
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = field(default_factory=dict)


# status -> (title, message template, type, visible_to, priority)
_TEMPLATES: dict[BookingStatus, tuple[str, str, str, list[str], str]] = {
    BookingStatus.PENDING: (
        "New booking request",
        "New booking request from {guest} for room {room}. Please review and confirm.",
        "info",
        ["admin", "office"],
        "high",
    ),
    BookingStatus.APPROVED: (
        "Booking confirmed",
        "Your booking request for room {room} has been confirmed.",
        "success",
        ["admin", "office", "user"],
        "normal",
    ),
    BookingStatus.REJECTED: (
        "Booking rejected",
        "Your booking request for room {room} was rejected. Reason: {reason}.",
        "warning",
        ["admin", "office", "user"],
        "normal",
    ),
    BookingStatus.CANCELLED: (
        "Booking cancelled",
        "Booking for room {room} was cancelled by {guest}.",
        "warning",
        ["admin", "office", "user"],
        "normal",
    ),
    BookingStatus.CHECKED_IN: (
        "Checked in",
        "{guest} checked in to room {room}.",
        "success",
        ["admin", "office", "staff"],
        "normal",
    ),
    BookingStatus.CHECKED_OUT: (
        "Checked out",
        "{guest} checked out of room {room}.",
        "success",
        ["admin", "office", "staff"],
        "normal",
    ),
}


class NotificationService:
    """Service for booking lifecycle notifications."""

    def __init__(self, feed_limit: int | None = None) -> None:
        self.feed_limit = feed_limit if feed_limit is not None else settings.notification_feed_limit
        self._feed: list[Notification] = []
        self._ids = itertools.count(1)

    def notify(
        self,
        booking_id: int,
        guest_label: str,
        room_label: str,
        new_status: BookingStatus,
        reason: str | None = None,
    ) -> None:
        """Record a lifecycle notification. Never raises."""
        try:
            notification = self.build(booking_id, guest_label, room_label, new_status, reason)
            self._feed.insert(0, notification)
            del self._feed[self.feed_limit:]
            logger.info(
                f"Notification for booking {booking_id}: {notification.title} "
                f"(visible to {', '.join(notification.visible_to)})"
            )
        except Exception as e:
            logger.error(f"Failed to record notification for booking {booking_id}: {e}")

    def build(
        self,
        booking_id: int,
        guest_label: str,
        room_label: str,
        new_status: BookingStatus,
        reason: str | None = None,
    ) -> Notification:
        """Build a notification without recording it."""
        title, template, type_, visible_to, priority = _TEMPLATES[BookingStatus(new_status)]
        message = template.format(
            guest=guest_label,
            room=room_label,
            reason=reason or "No reason given",
        )
        return Notification(
            id=next(self._ids),
            title=title,
            message=message,
            type=type_,
            priority=priority,
            visible_to=list(visible_to),
            booking_id=booking_id,
            status=BookingStatus(new_status),
            created_by="user" if new_status == BookingStatus.PENDING else "office",
            metadata={
                "booking_id": booking_id,
                "guest_name": guest_label,
                "room_info": room_label,
                "status": BookingStatus(new_status).value,
            },
        )

    def feed(self, role: str | None = None) -> list[Notification]:
        """Newest-first notifications, optionally filtered by viewer role."""
        if role is None:
            return list(self._feed)
        return [n for n in self._feed if role in n.visible_to]

    def clear(self) -> None:
        self._feed.clear()
