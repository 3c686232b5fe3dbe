"""
Notification schemas.
"""

from datetime import datetime
from typing import Any

from optiquote.models.notification import NotificationType, NotificationPriority
from optiquote.schemas.base import BaseSchema, PaginatedResponse


class NotificationResponse(BaseSchema):
    id: int
    user_id: int
    type: NotificationType
    title: str
    message: str
    priority: NotificationPriority
    action_url: str | None
    data: dict[str, Any]
    is_read: bool
    created_at: datetime


class NotificationListResponse(PaginatedResponse):
    items: list[NotificationResponse]
    unread: int
