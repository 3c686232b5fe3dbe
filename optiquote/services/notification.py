"""
Notification service.
Persists in-app notifications; delivery channels (email, push) live elsewhere.
"""

import logging
from typing import Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from optiquote.models.notification import Notification, NotificationType, NotificationPriority


logger = logging.getLogger(__name__)


PREVIEW_LENGTH = 100


def _preview(text: str) -> str:
    if len(text) > PREVIEW_LENGTH:
        return text[:PREVIEW_LENGTH] + "..."
    return text


def _render(type: NotificationType, payload: dict[str, Any]) -> tuple[str, str, NotificationPriority]:
    """Build title, message and priority for a notification type."""
    number = payload.get("quotation_number", "")

    if type == NotificationType.QUOTATION_APPROVED:
        total = payload.get("total")
        return (
            "Quotation Approved",
            f"Your quotation {number} has been approved. Total amount: ${float(total or 0):.2f}",
            NotificationPriority.HIGH,
        )
    if type == NotificationType.QUOTATION_REJECTED:
        reason = payload.get("reason")
        suffix = f". Reason: {reason}" if reason else ""
        return (
            "Quotation Rejected",
            f"Your quotation {number} has been rejected{suffix}",
            NotificationPriority.MEDIUM,
        )
    if type == NotificationType.QUOTATION_CONVERTED:
        return (
            "Quotation Converted to Order",
            f"Your quotation {number} has been converted to order {payload.get('order_number', '')}",
            NotificationPriority.HIGH,
        )
    if type == NotificationType.STAFF_REPLY:
        return (
            "New Staff Reply",
            f"Staff replied to quotation {number}: {_preview(payload.get('message', ''))}",
            NotificationPriority.HIGH,
        )
    if type == NotificationType.CUSTOMER_APPROVAL:
        return (
            "Customer Approved Quotation",
            f"{payload.get('customer_name', 'The customer')} has approved quotation {number}",
            NotificationPriority.HIGH,
        )
    if type == NotificationType.CUSTOMER_REJECTION:
        reason = payload.get("reason")
        suffix = f". Reason: {reason}" if reason else ""
        return (
            "Customer Rejected Quotation",
            f"{payload.get('customer_name', 'The customer')} has rejected quotation {number}{suffix}",
            NotificationPriority.MEDIUM,
        )
    return type.value.replace("_", " ").title(), str(payload), NotificationPriority.LOW


class NotificationService:
    """Service for notification operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def notify(
        self,
        user_id: int,
        type: NotificationType,
        payload: dict[str, Any],
    ) -> Notification:
        """
        Create a notification for a user.

        Args:
            user_id: Recipient
            type: Notification type
            payload: Data used to render the text, stored as-is

        Returns:
            Created notification
        """
        title, message, priority = _render(type, payload)
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            priority=priority,
            action_url="/quotations",
            data=payload,
        )

        # Savepoint: a failed insert must not poison the caller's transaction.
        async with self.db.begin_nested():
            self.db.add(notification)

        logger.debug(f"Notification {type.value} created for user {user_id}")
        return notification

    async def list_for_user(
        self,
        user_id: int,
        skip: int = 0,
        limit: int = 20,
        unread_only: bool = False,
    ) -> tuple[list[Notification], int, int]:
        """
        List a user's notifications, newest first.

        Returns:
            Tuple of (notifications, total count, unread count)
        """
        filters = [Notification.user_id == user_id]
        if unread_only:
            filters.append(Notification.is_read.is_(False))

        total = (await self.db.execute(
            select(func.count(Notification.id)).where(*filters)
        )).scalar() or 0
        unread = (await self.db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        )).scalar() or 0

        result = await self.db.execute(
            select(Notification)
            .where(*filters)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total, unread

    async def mark_read(self, notification_id: int, user_id: int) -> Notification | None:
        result = await self.db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        notification = result.scalar_one_or_none()
        if notification is None:
            return None

        notification.is_read = True
        await self.db.flush()
        return notification
