"""
In-app notification model.
"""

from typing import Optional, Any
from enum import Enum
from sqlalchemy import String, Text, ForeignKey, Integer, Boolean, JSON, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from optiquote.models.base import BaseModel


class NotificationType(str, Enum):
    """Notification type enumeration."""
    QUOTATION_APPROVED = "quotation_approved"
    QUOTATION_REJECTED = "quotation_rejected"
    QUOTATION_CONVERTED = "quotation_converted"
    STAFF_REPLY = "staff_reply"
    CUSTOMER_APPROVAL = "customer_approval"
    CUSTOMER_REJECTION = "customer_rejection"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Notification(BaseModel):
    """
    Notification shown in a user's inbox.

    Attributes:
        user_id: Recipient
        type: What happened
        title / message: Display text
        priority: Display priority
        action_url: Frontend route to open
        data: Structured payload (quotation number, amounts, ...)
        is_read: Whether the user has seen it
    """

    __tablename__ = "notifications"

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[NotificationType] = mapped_column(SQLEnum(NotificationType), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[NotificationPriority] = mapped_column(
        SQLEnum(NotificationPriority),
        default=NotificationPriority.MEDIUM,
        nullable=False,
    )
    action_url: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, user_id={self.user_id}, type='{self.type}')>"
