from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from socialnet.api.auth.dependencies import get_current_active_user
from socialnet.api.notifications.schemas import CountResponse, NotificationItem, NotificationPage
from socialnet.api.notifications.service import NotificationService
from socialnet.api.profile.models import User
from socialnet.core.config import settings
from socialnet.database.database import get_db

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def get_notification_service(
        current_user: User = Depends(get_current_active_user),
        db: Session = Depends(get_db)
) -> NotificationService:
    return NotificationService(db, current_user)


@router.get("", response_model=NotificationPage)
async def get_notifications(
        page: int = Query(1, ge=1),
        size: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE),
        unread_only: bool = Query(False, alias="unreadOnly"),
        service: NotificationService = Depends(get_notification_service)
):
    return service.get_notifications(page, size, unread_only)


@router.get("/unread-count", response_model=CountResponse)
async def get_unread_count(service: NotificationService = Depends(get_notification_service)):
    return {"count": service.get_unread_count()}


@router.get("/unread-friends-count", response_model=CountResponse)
async def get_pending_request_count(service: NotificationService = Depends(get_notification_service)):
    return {"count": service.get_pending_request_count()}


@router.put("/read-all", response_model=CountResponse)
async def mark_all_read(service: NotificationService = Depends(get_notification_service)):
    return {"count": service.mark_all_read()}


@router.put("/{notification_id}/read", response_model=NotificationItem)
async def mark_notification_read(
        notification_id: int,
        service: NotificationService = Depends(get_notification_service)
):
    return service.mark_read(notification_id)
