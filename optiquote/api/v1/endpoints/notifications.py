"""
Notification inbox endpoints.
"""

from fastapi import APIRouter, HTTPException, Query, status

from optiquote.api.deps import CurrentUser, DbSession
from optiquote.schemas.notification import NotificationListResponse, NotificationResponse
from optiquote.services.notification import NotificationService


router = APIRouter()


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List my notifications",
    description="Newest first, with the number of unread notifications",
)
async def list_notifications(
    current_user: CurrentUser,
    db: DbSession,
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page"),
    unread_only: bool = Query(False, description="Only unread notifications"),
) -> NotificationListResponse:
    service = NotificationService(db)
    notifications, total, unread = await service.list_for_user(
        current_user.id,
        skip=(page - 1) * per_page,
        limit=per_page,
        unread_only=unread_only,
    )
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in notifications],
        total=total,
        page=page,
        per_page=per_page,
        pages=NotificationListResponse.page_count(total, per_page),
        unread=unread,
    )


@router.post(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark a notification as read",
)
async def mark_notification_read(
    notification_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> NotificationResponse:
    service = NotificationService(db)
    notification = await service.mark_read(notification_id, current_user.id)
    if notification is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found",
        )
    await db.refresh(notification)
    return NotificationResponse.model_validate(notification)
