import logging
import math
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

from socialnet.api.friends.schemas import (
    Direction,
    FriendshipOut,
    FriendshipTier,
    Pagination,
    RelationStatus,
    Suggestion,
    UserShort,
)
from socialnet.client.api import FriendshipApi
from socialnet.client.cache import StatusCache, StatusEntry
from socialnet.client.errors import ErrorInfo, FriendshipApiError
from socialnet.core.config import settings

logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT")


class BucketStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Bucket(BaseModel, Generic[ItemT]):
    """Одна страница списка плюс состояние её загрузки"""
    data: List[ItemT] = []
    pagination: Pagination = Field(default_factory=Pagination)
    page_size: int = settings.FRIENDS_PER_PAGE
    status: BucketStatus = BucketStatus.IDLE
    error: Optional[ErrorInfo] = None
    # чьи это друзья (friends, mutual) и какая категория (by_tier)
    owner_id: Optional[int] = None
    tier: Optional[FriendshipTier] = None

    def ids(self) -> List[int]:
        return [item.id for item in self.data]


class ActionResult(BaseModel, Generic[ItemT]):
    ok: bool
    data: Optional[ItemT] = None
    error: Optional[ErrorInfo] = None


class FriendshipStore:
    """
    Клиентское состояние дружбы одного пользователя (viewer_id).

    Держит страницы друзей, входящих и исходящих заявок, общих друзей,
    друзей по категории, список подсказок и кэш статусов отношений.
    Каждое действие идёт в API и применяет к кэшу ответ сервера.
    Методы не бросают FriendshipApiError: ошибка сохраняется в
    соответствующем списке (или в last_error) и возвращается в
    ActionResult, прежние данные остаются на месте.
    """

    def __init__(self, api: FriendshipApi, viewer_id: int, status_ttl: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.api = api
        self.viewer_id = viewer_id
        ttl = settings.STATUS_CACHE_TTL_SECONDS if status_ttl is None else status_ttl
        self.status_lookup = StatusCache(ttl, clock)
        self._init_state()

    def _init_state(self):
        self.friends: Bucket[FriendshipOut] = Bucket()
        self.pending: Bucket[FriendshipOut] = Bucket()
        self.sent: Bucket[FriendshipOut] = Bucket()
        self.mutual: Bucket[UserShort] = Bucket()
        self.by_tier: Bucket[FriendshipOut] = Bucket()

        self.suggestions: List[Suggestion] = []
        self.suggestions_status = BucketStatus.IDLE
        self.suggestions_error: Optional[ErrorInfo] = None
        self.last_error: Optional[ErrorInfo] = None

    # ═══════════════════════════════════════════
    # ДЕЙСТВИЯ
    # ═══════════════════════════════════════════

    async def send_request(self, user_id: int) -> ActionResult[FriendshipOut]:
        try:
            action = await self.api.send_request(user_id)
        except FriendshipApiError as exc:
            return self._fail(exc, self.sent)

        friendship = action.friendship
        self._put_first(self.sent, friendship)
        self.status_lookup.set(user_id, RelationStatus.PENDING, Direction.OUTGOING, friendship)
        return self._ok(friendship, self.sent)

    async def accept_request(self, friendship_id: int) -> ActionResult[FriendshipOut]:
        try:
            action = await self.api.accept_request(friendship_id)
        except FriendshipApiError as exc:
            return self._fail(exc, self.pending)

        friendship = action.friendship
        self._remove(self.pending, lambda item: item.id == friendship.id)
        if self._owns(self.friends):
            self._put_first(self.friends, friendship)
        if self.by_tier.tier == friendship.tier:
            self._put_first(self.by_tier, friendship)

        for user_id in (friendship.user_id, friendship.friend_id):
            if user_id != self.viewer_id:
                self.status_lookup.set(user_id, RelationStatus.ACCEPTED, self._direction(friendship), friendship)
        return self._ok(friendship, self.pending)

    async def reject_request(self, friendship_id: int) -> ActionResult[FriendshipOut]:
        try:
            action = await self.api.reject_request(friendship_id)
        except FriendshipApiError as exc:
            return self._fail(exc, self.pending)

        friendship = action.friendship
        self._remove(self.pending, lambda item: item.id == friendship.id)
        self.status_lookup.set(self._other(friendship), RelationStatus.REJECTED, Direction.INCOMING, friendship)
        return self._ok(friendship, self.pending)

    async def cancel_request(self, friendship_id: int) -> ActionResult[FriendshipOut]:
        try:
            action = await self.api.cancel_request(friendship_id)
        except FriendshipApiError as exc:
            return self._fail(exc, self.sent)

        friendship = action.friendship
        self._remove(self.sent, lambda item: item.id == friendship.id)
        self.status_lookup.set(self._other(friendship), RelationStatus.NONE)
        return self._ok(friendship, self.sent)

    async def remove_friend(self, friendship_id: int) -> ActionResult[FriendshipOut]:
        try:
            action = await self.api.remove_friend(friendship_id)
        except FriendshipApiError as exc:
            return self._fail(exc, self.friends)

        friendship = action.friendship
        self._remove(self.friends, lambda item: item.id == friendship.id)
        self._remove(self.by_tier, lambda item: item.id == friendship.id)
        self.status_lookup.set(self._other(friendship), RelationStatus.NONE)
        return self._ok(friendship, self.friends)

    async def update_tier(self, friendship_id: int, tier: FriendshipTier,
                          custom_label: Optional[str] = None) -> ActionResult[FriendshipOut]:
        try:
            tier = self._coerce_tier(tier)
            action = await self.api.update_tier(friendship_id, tier, custom_label)
        except FriendshipApiError as exc:
            return self._fail(exc, self.friends)

        friendship = action.friendship
        self._replace(self.friends, friendship)
        if self.by_tier.tier is not None:
            if friendship.tier == self.by_tier.tier:
                if not self._replace(self.by_tier, friendship):
                    self._put_first(self.by_tier, friendship)
            else:
                self._remove(self.by_tier, lambda item: item.id == friendship.id)

        entry = self.status_lookup.peek(self._other(friendship))
        if entry is not None and entry.status == RelationStatus.ACCEPTED:
            self.status_lookup.set(self._other(friendship), RelationStatus.ACCEPTED, entry.direction, friendship)
        return self._ok(friendship, self.friends)

    async def block_user(self, user_id: int) -> ActionResult[FriendshipOut]:
        try:
            action = await self.api.block_user(user_id)
        except FriendshipApiError as exc:
            return self._fail(exc, self.friends)

        pair = {self.viewer_id, user_id}
        for bucket in (self.friends, self.by_tier, self.pending, self.sent):
            self._remove(bucket, lambda item: {item.user_id, item.friend_id} == pair)
        self.status_lookup.set(user_id, RelationStatus.BLOCKED, self._direction(action.friendship), action.friendship)
        return self._ok(action.friendship, self.friends)

    async def unblock_user(self, user_id: int) -> ActionResult[str]:
        try:
            result = await self.api.unblock_user(user_id)
        except FriendshipApiError as exc:
            return self._fail(exc)

        self.status_lookup.set(user_id, RelationStatus.NONE)
        return self._ok(result.message)

    async def cleanup_expired_requests(self, admin_key: str) -> ActionResult[int]:
        try:
            result = await self.api.cleanup_expired_requests(admin_key)
        except FriendshipApiError as exc:
            return self._fail(exc)

        if result.count:
            self.status_lookup.clear()
        return self._ok(result.count)

    # ═══════════════════════════════════════════
    # ЗАГРУЗКА СПИСКОВ
    # ═══════════════════════════════════════════

    async def get_pending_requests(self, page: int = 1, size: Optional[int] = None) -> ActionResult[List[FriendshipOut]]:
        result = await self._fetch(self.pending, self.api.get_pending_requests(page, size), size)
        if result.ok:
            for item in self.pending.data:
                self.status_lookup.set(item.user_id, RelationStatus.PENDING, Direction.INCOMING, item)
        return result

    async def get_sent_requests(self, page: int = 1, size: Optional[int] = None) -> ActionResult[List[FriendshipOut]]:
        result = await self._fetch(self.sent, self.api.get_sent_requests(page, size), size)
        if result.ok:
            for item in self.sent.data:
                self.status_lookup.set(item.friend_id, RelationStatus.PENDING, Direction.OUTGOING, item)
        return result

    async def get_friends(self, user_id: Optional[int] = None, page: int = 1,
                          size: Optional[int] = None) -> ActionResult[List[FriendshipOut]]:
        owner_id = user_id or self.viewer_id
        result = await self._fetch(self.friends, self.api.get_friends(owner_id, page, size), size)
        if result.ok:
            self.friends.owner_id = owner_id
            if owner_id == self.viewer_id:
                for item in self.friends.data:
                    self.status_lookup.set(self._other(item), RelationStatus.ACCEPTED, self._direction(item), item)
        return result

    async def get_mutual_friends(self, user_id: int, page: int = 1,
                                 size: Optional[int] = None) -> ActionResult[List[UserShort]]:
        result = await self._fetch(self.mutual, self.api.get_mutual_friends(user_id, page, size), size)
        if result.ok:
            self.mutual.owner_id = user_id
        return result

    async def get_friends_by_tier(self, tier: FriendshipTier, page: int = 1,
                                  size: Optional[int] = None) -> ActionResult[List[FriendshipOut]]:
        try:
            tier = self._coerce_tier(tier)
        except FriendshipApiError as exc:
            self.by_tier.status = BucketStatus.FAILED
            return self._fail(exc, self.by_tier)
        result = await self._fetch(self.by_tier, self.api.get_friends_by_tier(tier, page, size), size)
        if result.ok:
            self.by_tier.tier = tier
        return result

    async def get_friend_suggestions(self) -> ActionResult[List[Suggestion]]:
        self.suggestions_status = BucketStatus.LOADING
        self.suggestions_error = None
        try:
            result = await self.api.get_suggestions()
        except FriendshipApiError as exc:
            self.suggestions_status = BucketStatus.FAILED
            self.suggestions_error = exc.to_info()
            logger.warning("Не удалось загрузить подсказки: %s", exc.message)
            return ActionResult(ok=False, error=self.suggestions_error)

        self.suggestions = list(result.data)
        self.suggestions_status = BucketStatus.SUCCEEDED
        return ActionResult(ok=True, data=self.suggestions)

    # ═══════════════════════════════════════════
    # СТАТУСЫ
    # ═══════════════════════════════════════════

    async def check_friendship_status(self, user_id: int) -> ActionResult[StatusEntry]:
        try:
            result = await self.api.check_status(user_id)
        except FriendshipApiError as exc:
            return self._fail(exc)

        entry = self.status_lookup.set(user_id, result.status, result.direction, result.friendship)
        return self._ok(entry)

    async def status_of(self, user_id: int, refresh: bool = False) -> Optional[StatusEntry]:
        """Статус из кэша; устаревший или отсутствующий запрашивается заново"""
        entry = None if refresh else self.status_lookup.get(user_id)
        if entry is not None:
            return entry
        result = await self.check_friendship_status(user_id)
        return result.data

    def reset(self):
        """Сбрасывает всё состояние (например, при выходе из аккаунта)"""
        self._init_state()
        self.status_lookup.clear()

    # ═══════════════════════════════════════════
    # ВСПОМОГАТЕЛЬНЫЕ
    # ═══════════════════════════════════════════

    @staticmethod
    def _coerce_tier(tier) -> FriendshipTier:
        try:
            return FriendshipTier(tier)
        except ValueError:
            raise FriendshipApiError(f"Неизвестная категория: {tier}", "VALIDATION_ERROR") from None

    def _other(self, friendship: FriendshipOut) -> int:
        return friendship.friend_id if friendship.user_id == self.viewer_id else friendship.user_id

    def _direction(self, friendship: FriendshipOut) -> Direction:
        return Direction.OUTGOING if friendship.user_id == self.viewer_id else Direction.INCOMING

    def _owns(self, bucket: Bucket) -> bool:
        return bucket.owner_id in (None, self.viewer_id)

    async def _fetch(self, bucket: Bucket, call: Awaitable[Any], size: Optional[int]) -> ActionResult:
        bucket.status = BucketStatus.LOADING
        bucket.error = None
        try:
            page = await call
        except FriendshipApiError as exc:
            bucket.status = BucketStatus.FAILED
            bucket.error = exc.to_info()
            logger.warning("Не удалось загрузить список: %s (%s)", exc.message, exc.code)
            return ActionResult(ok=False, error=bucket.error)
        except BaseException:
            bucket.status = BucketStatus.FAILED
            raise

        bucket.data = list(page.data)
        bucket.pagination = page.pagination
        bucket.page_size = size or settings.FRIENDS_PER_PAGE
        bucket.status = BucketStatus.SUCCEEDED
        self.status_lookup.purge_stale()
        return ActionResult(ok=True, data=bucket.data)

    def _ok(self, data: Any, bucket: Optional[Bucket] = None) -> ActionResult:
        if bucket is not None:
            bucket.error = None
        else:
            self.last_error = None
        return ActionResult(ok=True, data=data)

    def _fail(self, exc: FriendshipApiError, bucket: Optional[Bucket] = None) -> ActionResult:
        info = exc.to_info()
        if bucket is not None:
            bucket.error = info
        else:
            self.last_error = info
        logger.warning("Действие не выполнено: %s (%s)", exc.message, exc.code)
        return ActionResult(ok=False, error=info)

    @staticmethod
    def _replace(bucket: Bucket, friendship: FriendshipOut) -> bool:
        for index, item in enumerate(bucket.data):
            if item.id == friendship.id:
                bucket.data[index] = friendship
                return True
        return False

    def _put_first(self, bucket: Bucket, friendship: FriendshipOut):
        """Кладёт запись в начало списка; повторно тот же id не добавляется"""
        if friendship.id in bucket.ids():
            bucket.data = [friendship] + [item for item in bucket.data if item.id != friendship.id]
            return
        bucket.data.insert(0, friendship)
        self._resize(bucket, bucket.pagination.total_items + 1)

    def _remove(self, bucket: Bucket, predicate: Callable[[Any], bool]) -> int:
        kept = [item for item in bucket.data if not predicate(item)]
        removed = len(bucket.data) - len(kept)
        if removed:
            bucket.data = kept
            self._resize(bucket, bucket.pagination.total_items - removed)
        return removed

    @staticmethod
    def _resize(bucket: Bucket, total_items: int):
        """Пересчитывает пагинацию так, чтобы current_page <= total_pages и len(data) <= total_items"""
        total_items = max(total_items, len(bucket.data))
        total_pages = max(1, math.ceil(total_items / bucket.page_size))
        bucket.pagination = Pagination(
            current_page=min(bucket.pagination.current_page, total_pages),
            total_pages=total_pages,
            total_items=total_items,
        )
