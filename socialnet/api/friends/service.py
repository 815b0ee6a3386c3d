import logging
from collections import Counter
from datetime import timedelta
from typing import Any, Dict, List, Optional, Set, Tuple

from fastapi import status
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, selectinload

from socialnet.api.friends.models import Friendship
from socialnet.api.friends.schemas import (
    Direction,
    FriendshipOut,
    FriendshipStatus,
    FriendshipTier,
    RelationStatus,
    Suggestion,
    TierUpdate,
    UserShort,
)
from socialnet.api.notifications.schemas import NotificationType
from socialnet.api.notifications.service import build_friend_notification, discard_request_notifications
from socialnet.api.profile.models import User
from socialnet.core.config import settings
from socialnet.core.errors import ApiError
from socialnet.core.pagination import paginate
from socialnet.core.utils import utcnow
from socialnet.websocket.websocket_manager import send_notification_to_user, send_to_user

logger = logging.getLogger(__name__)


def request_not_found() -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, "REQUEST_NOT_FOUND", "Заявка не найдена или уже обработана")


def friendship_not_found() -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, "FRIENDSHIP_NOT_FOUND", "Дружба не найдена")


def user_not_found() -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, "USER_NOT_FOUND", "Пользователь не найден")


def self_action() -> ApiError:
    return ApiError(status.HTTP_400_BAD_REQUEST, "SELF_ACTION", "Нельзя выполнить это действие с самим собой")


class FriendshipService:
    def __init__(self, db: Session):
        self.db = db

    # ═══════════════════════════════════════════
    # ЗАЯВКИ
    # ═══════════════════════════════════════════

    async def send_request(self, friend_id: int, current_user: User) -> Tuple[FriendshipOut, bool]:
        """
        Отправляет заявку в друзья.

        Возвращает запись и флаг created. Отклонённая запись после
        окончания периода охлаждения переиспользуется: она
        переориентируется на нового отправителя, request_count растёт.
        """
        if friend_id == current_user.id:
            raise self_action()

        now = utcnow()
        expiry = timedelta(days=settings.REQUEST_EXPIRY_DAYS)
        pending_count = self.db.query(Friendship).filter(
            Friendship.user_id == current_user.id,
            Friendship.status == FriendshipStatus.PENDING.value,
            Friendship.created_at > now - expiry,
        ).count()
        if pending_count >= settings.MAX_PENDING_REQUESTS:
            raise ApiError(status.HTTP_429_TOO_MANY_REQUESTS, "REQUEST_LIMIT_EXCEEDED",
                           "Слишком много неотвеченных заявок")

        self._get_active_user(friend_id)
        existing = self._get_pair(current_user.id, friend_id)
        if existing:
            self._check_can_request(existing, current_user.id, now)
            friendship = existing
            friendship.user_id = current_user.id
            friendship.friend_id = friend_id
            friendship.request_count = (friendship.request_count or 1) + 1
            friendship.cooling_period = None
            friendship.accepted_at = None
            friendship.tier = FriendshipTier.ACQUAINTANCES.value
            friendship.custom_tier_label = None
            friendship.created_at = now
            created = False
        else:
            friendship = Friendship(user_id=current_user.id, friend_id=friend_id, request_count=1, created_at=now)
            self.db.add(friendship)
            created = True

        friendship.status = FriendshipStatus.PENDING.value
        friendship.action_user_id = current_user.id
        friendship.expires_at = now + expiry
        self.db.flush()

        notification = build_friend_notification(
            NotificationType.FRIEND_REQUEST, friend_id, current_user,
            friendship_id=friendship.id, resent=not created,
        )
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(friendship)
        logger.info("Заявка %s: %s -> %s (попытка %s)", friendship.id, current_user.id, friend_id,
                    friendship.request_count)

        await send_notification_to_user(friend_id, self._notification_payload(notification))
        return self._to_out(friendship, current_user.id), created

    async def cancel_request(self, friendship_id: int, current_user: User) -> FriendshipOut:
        friendship = self.db.query(Friendship).filter(
            Friendship.id == friendship_id,
            Friendship.user_id == current_user.id,
            Friendship.status == FriendshipStatus.PENDING.value,
        ).first()
        if not friendship:
            raise request_not_found()

        result = self._to_out(friendship, current_user.id)
        discard_request_notifications(self.db, friendship.id)
        self.db.delete(friendship)
        self.db.commit()
        logger.info("Заявка %s отменена пользователем %s", friendship_id, current_user.id)

        await send_to_user(result.friend_id, "friend_request_cancelled", {
            "friendship_id": friendship_id,
            "cancelled_by": current_user.id,
        })
        return result

    async def accept_request(self, friendship_id: int, current_user: User) -> FriendshipOut:
        friendship = self._get_received_pending(friendship_id, current_user.id)
        friendship.status = FriendshipStatus.ACCEPTED.value
        friendship.action_user_id = current_user.id
        friendship.accepted_at = utcnow()
        friendship.expires_at = None

        notification = build_friend_notification(
            NotificationType.FRIEND_ACCEPTED, friendship.user_id, current_user, friendship_id=friendship.id
        )
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(friendship)
        logger.info("Заявка %s принята пользователем %s", friendship.id, current_user.id)

        await send_notification_to_user(friendship.user_id, self._notification_payload(notification))
        return self._to_out(friendship, current_user.id)

    async def reject_request(self, friendship_id: int, current_user: User) -> FriendshipOut:
        friendship = self._get_received_pending(friendship_id, current_user.id)
        now = utcnow()
        friendship.status = FriendshipStatus.REJECTED.value
        friendship.action_user_id = current_user.id
        friendship.cooling_period = now + timedelta(days=settings.COOLING_PERIOD_DAYS)
        friendship.expires_at = None

        notification = build_friend_notification(
            NotificationType.FRIEND_REJECTED, friendship.user_id, current_user, friendship_id=friendship.id
        )
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(friendship)
        logger.info("Заявка %s отклонена пользователем %s", friendship.id, current_user.id)

        await send_notification_to_user(friendship.user_id, self._notification_payload(notification))
        return self._to_out(friendship, current_user.id)

    # ═══════════════════════════════════════════
    # ДРУЗЬЯ
    # ═══════════════════════════════════════════

    async def remove_friend(self, friendship_id: int, current_user: User) -> FriendshipOut:
        friendship = self._get_accepted(friendship_id, current_user.id)
        result = self._to_out(friendship, current_user.id)
        other_id = friendship.other_id(current_user.id)

        self.db.delete(friendship)
        self.db.commit()
        logger.info("Дружба %s удалена пользователем %s", friendship_id, current_user.id)

        await send_to_user(other_id, "friendship_removed", {
            "friendship_id": friendship_id,
            "removed_by": current_user.id,
        })
        return result

    def update_tier(self, friendship_id: int, data: TierUpdate, current_user: User) -> FriendshipOut:
        friendship = self._get_accepted(friendship_id, current_user.id)
        friendship.tier = data.tier.value
        friendship.custom_tier_label = data.custom_label
        self.db.commit()
        self.db.refresh(friendship)
        return self._to_out(friendship, current_user.id)

    # ═══════════════════════════════════════════
    # БЛОКИРОВКА
    # ═══════════════════════════════════════════

    def block_user(self, target_id: int, current_user: User) -> FriendshipOut:
        """
        Блокирует пользователя. Любая существующая запись пары
        превращается в blocked; блокировка, поставленная второй
        стороной, остаётся как есть.
        """
        if target_id == current_user.id:
            raise self_action()
        self._get_active_user(target_id)

        friendship = self._get_pair(current_user.id, target_id)
        if friendship and friendship.status == FriendshipStatus.BLOCKED.value:
            return self._to_out(friendship, current_user.id)

        if friendship is None:
            friendship = Friendship(user_id=current_user.id, friend_id=target_id)
            self.db.add(friendship)

        friendship.user_id = current_user.id
        friendship.friend_id = target_id
        friendship.status = FriendshipStatus.BLOCKED.value
        friendship.action_user_id = current_user.id
        friendship.tier = FriendshipTier.ACQUAINTANCES.value
        friendship.custom_tier_label = None
        friendship.accepted_at = None
        friendship.cooling_period = None
        friendship.expires_at = None
        self.db.commit()
        self.db.refresh(friendship)
        logger.info("Пользователь %s заблокировал %s", current_user.id, target_id)
        return self._to_out(friendship, current_user.id)

    def unblock_user(self, target_id: int, current_user: User):
        if target_id == current_user.id:
            raise self_action()
        friendship = self.db.query(Friendship).filter(
            Friendship.user_id == current_user.id,
            Friendship.friend_id == target_id,
            Friendship.status == FriendshipStatus.BLOCKED.value,
        ).first()
        if not friendship:
            raise ApiError(status.HTTP_404_NOT_FOUND, "BLOCK_NOT_FOUND", "Заблокированный пользователь не найден")

        self.db.delete(friendship)
        self.db.commit()
        logger.info("Пользователь %s разблокировал %s", current_user.id, target_id)

    # ═══════════════════════════════════════════
    # СПИСКИ
    # ═══════════════════════════════════════════

    def get_pending_requests(self, current_user: User, page: int, size: int) -> Dict[str, Any]:
        query = self._with_users().filter(
            Friendship.friend_id == current_user.id,
            Friendship.status == FriendshipStatus.PENDING.value,
        ).order_by(Friendship.created_at.desc(), Friendship.id.desc())
        return self._page(query, current_user.id, page, size)

    def get_sent_requests(self, current_user: User, page: int, size: int) -> Dict[str, Any]:
        query = self._with_users().filter(
            Friendship.user_id == current_user.id,
            Friendship.status == FriendshipStatus.PENDING.value,
        ).order_by(Friendship.created_at.desc(), Friendship.id.desc())
        return self._page(query, current_user.id, page, size)

    def get_friends(self, user_id: int, page: int, size: int) -> Dict[str, Any]:
        """Друзья пользователя user_id; direction и counterpart считаются относительно него"""
        if self.db.get(User, user_id) is None:
            raise user_not_found()
        query = self._with_users().filter(
            Friendship.status == FriendshipStatus.ACCEPTED.value,
            or_(Friendship.user_id == user_id, Friendship.friend_id == user_id),
        ).order_by(Friendship.accepted_at.desc(), Friendship.id.desc())
        return self._page(query, user_id, page, size)

    def get_friends_by_tier(self, current_user: User, tier: FriendshipTier, page: int, size: int) -> Dict[str, Any]:
        query = self._with_users().filter(
            Friendship.status == FriendshipStatus.ACCEPTED.value,
            Friendship.tier == tier.value,
            or_(Friendship.user_id == current_user.id, Friendship.friend_id == current_user.id),
        ).order_by(Friendship.accepted_at.desc(), Friendship.id.desc())
        return self._page(query, current_user.id, page, size)

    def get_mutual_friends(self, user_id: int, current_user: User, page: int, size: int) -> Dict[str, Any]:
        if user_id == current_user.id:
            raise self_action()
        if self.db.get(User, user_id) is None:
            raise user_not_found()

        mutual_ids = self._friend_ids(current_user.id) & self._friend_ids(user_id)
        query = self.db.query(User).filter(
            User.id.in_(list(mutual_ids)), User.is_active.is_(True)
        ).order_by(User.name, User.id)
        users, pagination = paginate(query, page, size)
        return {"data": [UserShort.model_validate(u) for u in users], "pagination": pagination}

    def get_suggestions(self, current_user: User, limit: Optional[int] = None) -> List[Suggestion]:
        """
        Друзья друзей, с которыми у пользователя ещё нет никаких записей.
        Сортировка по числу общих друзей, по убыванию.
        """
        limit = limit or settings.SUGGESTIONS_LIMIT
        my_friends = self._friend_ids(current_user.id)
        if not my_friends:
            return []

        related = self.db.query(Friendship.user_id, Friendship.friend_id).filter(
            or_(Friendship.user_id == current_user.id, Friendship.friend_id == current_user.id)
        ).all()
        excluded = {current_user.id}
        for user_id, friend_id in related:
            excluded.update((user_id, friend_id))

        rows = self.db.query(Friendship.user_id, Friendship.friend_id).filter(
            Friendship.status == FriendshipStatus.ACCEPTED.value,
            or_(Friendship.user_id.in_(list(my_friends)), Friendship.friend_id.in_(list(my_friends))),
        ).all()
        mutual_counts: Counter = Counter()
        for user_id, friend_id in rows:
            if user_id in my_friends and friend_id not in excluded:
                mutual_counts[friend_id] += 1
            if friend_id in my_friends and user_id not in excluded:
                mutual_counts[user_id] += 1
        if not mutual_counts:
            return []

        users = {
            u.id: u for u in self.db.query(User).filter(
                User.id.in_(list(mutual_counts)), User.is_active.is_(True)
            ).all()
        }
        ranked = sorted((uid for uid in mutual_counts if uid in users), key=lambda uid: (-mutual_counts[uid], uid))
        return [
            Suggestion.model_validate(users[uid]).model_copy(update={"mutual_count": mutual_counts[uid]})
            for uid in ranked[:limit]
        ]

    # ═══════════════════════════════════════════
    # СТАТУС И ОБСЛУЖИВАНИЕ
    # ═══════════════════════════════════════════

    def check_status(self, user_id: int, current_user: User) -> Dict[str, Any]:
        if user_id == current_user.id:
            return {"status": RelationStatus.SELF, "direction": None, "friendship": None}

        friendship = self._get_pair(current_user.id, user_id)
        if friendship is None:
            return {"status": RelationStatus.NONE, "direction": None, "friendship": None}
        if friendship.status == FriendshipStatus.REJECTED.value and friendship.can_resend(utcnow()):
            return {"status": RelationStatus.NONE, "direction": None, "friendship": None}

        result = self._to_out(friendship, current_user.id)
        return {"status": RelationStatus(friendship.status), "direction": result.direction, "friendship": result}

    def cleanup_expired_requests(self) -> int:
        """Удаляет просроченные заявки и отклонённые записи с истёкшим охлаждением"""
        now = utcnow()
        expired = self.db.query(Friendship).filter(
            Friendship.status == FriendshipStatus.PENDING.value,
            Friendship.expires_at < now,
        ).delete(synchronize_session=False)
        cooled = self.db.query(Friendship).filter(
            Friendship.status == FriendshipStatus.REJECTED.value,
            Friendship.cooling_period < now,
        ).delete(synchronize_session=False)
        self.db.commit()

        count = expired + cooled
        logger.info("Очищено %s просроченных заявок (%s pending, %s rejected)", count, expired, cooled)
        return count

    # ═══════════════════════════════════════════
    # ВСПОМОГАТЕЛЬНЫЕ
    # ═══════════════════════════════════════════

    def _get_pair(self, first_id: int, second_id: int) -> Optional[Friendship]:
        return self.db.query(Friendship).filter(
            or_(
                and_(Friendship.user_id == first_id, Friendship.friend_id == second_id),
                and_(Friendship.user_id == second_id, Friendship.friend_id == first_id),
            )
        ).first()

    def _get_active_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None or not user.is_active:
            raise user_not_found()
        return user

    def _get_received_pending(self, friendship_id: int, user_id: int) -> Friendship:
        friendship = self.db.query(Friendship).filter(
            Friendship.id == friendship_id,
            Friendship.friend_id == user_id,
            Friendship.status == FriendshipStatus.PENDING.value,
        ).first()
        if not friendship:
            raise request_not_found()
        return friendship

    def _get_accepted(self, friendship_id: int, user_id: int) -> Friendship:
        friendship = self.db.query(Friendship).filter(
            Friendship.id == friendship_id,
            Friendship.status == FriendshipStatus.ACCEPTED.value,
            or_(Friendship.user_id == user_id, Friendship.friend_id == user_id),
        ).first()
        if not friendship:
            raise friendship_not_found()
        return friendship

    @staticmethod
    def _check_can_request(existing: Friendship, user_id: int, now):
        if existing.status == FriendshipStatus.PENDING.value:
            if existing.user_id == user_id:
                raise ApiError(status.HTTP_400_BAD_REQUEST, "REQUEST_ALREADY_SENT", "Заявка уже отправлена")
            raise ApiError(status.HTTP_400_BAD_REQUEST, "REQUEST_ALREADY_RECEIVED",
                           "Этот пользователь уже отправил вам заявку")
        if existing.status == FriendshipStatus.ACCEPTED.value:
            raise ApiError(status.HTTP_400_BAD_REQUEST, "ALREADY_FRIENDS", "Уже в друзьях")
        if existing.status == FriendshipStatus.BLOCKED.value:
            raise ApiError(status.HTTP_403_FORBIDDEN, "USER_BLOCKED", "Действие недоступно")
        if existing.status == FriendshipStatus.REJECTED.value and not existing.can_resend(now):
            raise ApiError(status.HTTP_400_BAD_REQUEST, "COOLING_PERIOD_ACTIVE",
                           f"Повторная заявка возможна после {existing.cooling_period:%d.%m.%Y}")

    def _friend_ids(self, user_id: int) -> Set[int]:
        rows = self.db.query(Friendship.user_id, Friendship.friend_id).filter(
            Friendship.status == FriendshipStatus.ACCEPTED.value,
            or_(Friendship.user_id == user_id, Friendship.friend_id == user_id),
        ).all()
        return {friend_id if uid == user_id else uid for uid, friend_id in rows}

    def _with_users(self):
        return self.db.query(Friendship).options(
            selectinload(Friendship.user),
            selectinload(Friendship.friend),
        )

    def _page(self, query, viewer_id: int, page: int, size: int) -> Dict[str, Any]:
        rows, pagination = paginate(query, page, size)
        return {"data": [self._to_out(f, viewer_id) for f in rows], "pagination": pagination}

    @staticmethod
    def _to_out(friendship: Friendship, viewer_id: int) -> FriendshipOut:
        counterpart = friendship.friend if friendship.user_id == viewer_id else friendship.user
        return FriendshipOut.model_validate(friendship).model_copy(update={
            "direction": Direction(friendship.direction_for(viewer_id)),
            "counterpart": UserShort.model_validate(counterpart) if counterpart is not None else None,
        })

    @staticmethod
    def _notification_payload(notification) -> Dict[str, Any]:
        return {
            "id": notification.id,
            "type": notification.type,
            "title": notification.title,
            "message": notification.message,
            "sender_id": notification.sender_id,
            "sender_name": notification.sender_name,
            "friendship_id": notification.friendship_id,
        }
