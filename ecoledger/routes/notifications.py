"""Notification endpoints — list, count, and mark-read for users."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ecoledger.auth import get_current_user
from ecoledger.database import get_db
from ecoledger.models import Notification, User
from ecoledger.schemas import (
    MessageResponse,
    NotificationListResponse,
    NotificationResponse,
    NotificationUnreadCountResponse,
)
from ecoledger.services import notification_service

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def _to_response(n: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=n.id,
        user_id=n.user_id,
        message=n.message,
        notification_type=n.notification_type,
        is_read=n.is_read,
        image_ref=n.image_ref,
        metadata=n.metadata_ or {},
        created_at=n.created_at,
    )


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = Query(False),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """List notifications for the current user, newest first."""
    rows, total, unread = await notification_service.list_notifications(
        db, user.id, unread_only=unread_only, page=page, per_page=per_page
    )
    return NotificationListResponse(
        items=[_to_response(n) for n in rows],
        total=total,
        unread_count=unread,
    )


@router.get("/unread-count", response_model=NotificationUnreadCountResponse)
async def get_unread_count(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    count = await notification_service.get_unread_count(db, user.id)
    return NotificationUnreadCountResponse(unread_count=count)


@router.post("/read-all", response_model=MessageResponse)
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    count = await notification_service.mark_all_read(db, user.id)
    return MessageResponse(message=f"Marked {count} notifications as read")


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    notif = await notification_service.mark_read(db, notification_id, user.id)
    if notif is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    return _to_response(notif)
