import logging
from typing import Any, Dict, Optional

from fastapi import status
from sqlalchemy import func
from sqlalchemy.orm import Session

from socialnet.api.friends.models import Friendship
from socialnet.api.notifications.models import Notification
from socialnet.api.notifications.schemas import NotificationType
from socialnet.api.profile.models import User
from socialnet.core.errors import ApiError
from socialnet.core.pagination import paginate

logger = logging.getLogger(__name__)

NOTIFICATION_TEXTS = {
    NotificationType.FRIEND_REQUEST: ("Новая заявка в друзья", "{name} хочет добавить вас в друзья"),
    NotificationType.FRIEND_ACCEPTED: ("Заявка принята", "{name} принял(а) вашу заявку в друзья"),
    NotificationType.FRIEND_REJECTED: ("Заявка отклонена", "{name} отклонил(а) вашу заявку в друзья"),
}


def build_friend_notification(kind: NotificationType, receiver_id: int, sender: User,
                              friendship_id: Optional[int] = None, resent: bool = False) -> Notification:
    title, template = NOTIFICATION_TEXTS[kind]
    message = template.format(name=sender.name)
    if resent:
        message = f"{sender.name} повторно отправил(а) заявку в друзья"
    return Notification(
        user_id=receiver_id, type=kind.value,
        title=title, message=message,
        sender_id=sender.id, sender_name=sender.name, sender_avatar=sender.avatar_url,
        friendship_id=friendship_id,
    )


def discard_request_notifications(db: Session, friendship_id: int) -> int:
    """Убирает непрочитанные уведомления о заявке, которой больше нет"""
    return db.query(Notification).filter(
        Notification.friendship_id == friendship_id,
        Notification.type == NotificationType.FRIEND_REQUEST.value,
        Notification.is_read.is_(False),
    ).delete(synchronize_session=False)


class NotificationService:
    def __init__(self, db: Session, current_user: User):
        self.db = db
        self.user_id = current_user.id

    def get_notifications(self, page: int, size: int, unread_only: bool = False) -> Dict[str, Any]:
        query = self._own()
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        query = query.order_by(Notification.created_at.desc(), Notification.id.desc())
        rows, pagination = paginate(query, page, size)
        return {"data": rows, "pagination": pagination}

    def get_unread_count(self) -> int:
        return self.db.query(func.count(Notification.id)).filter(
            Notification.user_id == self.user_id,
            Notification.is_read.is_(False),
        ).scalar() or 0

    def get_pending_request_count(self) -> int:
        """Входящие заявки, ожидающие ответа"""
        return self.db.query(func.count(Friendship.id)).filter(
            Friendship.friend_id == self.user_id,
            Friendship.status == "pending",
        ).scalar() or 0

    def mark_read(self, notification_id: int) -> Notification:
        notification = self._own().filter(Notification.id == notification_id).first()
        if notification is None:
            raise ApiError(status.HTTP_404_NOT_FOUND, "NOTIFICATION_NOT_FOUND", "Уведомление не найдено")
        notification.is_read = True
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def mark_all_read(self) -> int:
        updated = self._own().filter(Notification.is_read.is_(False)).update(
            {"is_read": True}, synchronize_session=False
        )
        self.db.commit()
        logger.debug("Пользователь %s прочитал %s уведомлений", self.user_id, updated)
        return updated

    def _own(self):
        return self.db.query(Notification).filter(Notification.user_id == self.user_id)
