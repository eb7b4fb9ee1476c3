"""Notification service — emits reward and completion notices to users."""

from typing import Protocol
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ecoledger.logging_config import get_logger
from ecoledger.models import Notification

logger = get_logger(__name__)


class NotificationEmitter(Protocol):
    """Receives structured completion/reward events for delivery to a user."""

    async def notify(
        self,
        db: AsyncSession,
        user_id: UUID,
        message: str,
        notification_type: str,
        image_ref: str | None = None,
        metadata: dict | None = None,
    ) -> Notification | None: ...


async def create_notification(
    db: AsyncSession,
    user_id: UUID,
    message: str,
    notification_type: str,
    image_ref: str | None = None,
    metadata: dict | None = None,
) -> Notification:
    """Insert a single notification."""
    notif = Notification(
        user_id=user_id,
        message=message,
        notification_type=notification_type,
        image_ref=image_ref,
        metadata_=metadata or {},
    )
    db.add(notif)
    await db.flush()
    logger.info(
        "notification_created",
        user_id=str(user_id),
        notification_type=notification_type,
    )
    return notif


class DatabaseNotificationEmitter:
    """Default emitter: persists the notification in the caller's transaction."""

    async def notify(
        self,
        db: AsyncSession,
        user_id: UUID,
        message: str,
        notification_type: str,
        image_ref: str | None = None,
        metadata: dict | None = None,
    ) -> Notification:
        return await create_notification(
            db, user_id, message, notification_type, image_ref, metadata
        )


def build_report_message(points: int) -> str:
    return f"You've earned {points} points for reporting waste!"


def build_collection_message(reward_amount: int, image_ref: str | None) -> str:
    """Message shown to a reporter when their report is collected."""
    message = (
        f"Your waste report has been collected! "
        f"You earned {reward_amount} tokens for the completed task."
    )
    if image_ref:
        message += " Check out the completion photo below!"
    return message


async def list_notifications(
    db: AsyncSession,
    user_id: UUID,
    unread_only: bool = False,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Notification], int, int]:
    """Return (page of notifications newest-first, total, unread count)."""
    base = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        base = base.where(Notification.is_read.is_(False))

    total = (await db.execute(
        select(func.count()).select_from(base.subquery())
    )).scalar() or 0
    unread = await get_unread_count(db, user_id)

    query = (
        base.order_by(Notification.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    rows = (await db.execute(query)).scalars().all()
    return list(rows), total, unread


async def get_unread_count(db: AsyncSession, user_id: UUID) -> int:
    return (await db.execute(
        select(func.count()).where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
    )).scalar() or 0


async def mark_read(
    db: AsyncSession,
    notification_id: UUID,
    user_id: UUID,
) -> Notification | None:
    """Mark one of the user's notifications read. Returns None if not theirs."""
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    )
    notif = result.scalar_one_or_none()
    if notif is None:
        return None
    if not notif.is_read:
        notif.is_read = True
        await db.commit()
        await db.refresh(notif)
    return notif


async def mark_all_read(db: AsyncSession, user_id: UUID) -> int:
    """Mark every unread notification for the user read; returns rows touched."""
    result = await db.execute(
        update(Notification)
        .where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
        .values(is_read=True)
    )
    await db.commit()
    logger.info(
        "notifications_marked_read",
        user_id=str(user_id),
        count=result.rowcount,
    )
    return result.rowcount
