"""Booking lifecycle notification endpoints."""

from fastapi import APIRouter, Query

from bookingdesk.api.deps import Services

router = APIRouter()


@router.get("/")
async def list_notifications(
    services: Services,
    role: str | None = Query(None, pattern="^(admin|office|staff|user)$"),
) -> list[dict]:
    """Booking lifecycle notifications, newest first."""
    return [
        {
            "id": n.id,
            "title": n.title,
            "message": n.message,
            "type": n.type,
            "priority": n.priority,
            "category": n.category,
            "visible_to": n.visible_to,
            "booking_id": n.booking_id,
            "status": n.status.value,
            "created_at": n.created_at.isoformat(),
        }
        for n in services.notifications.feed(role)
    ]
