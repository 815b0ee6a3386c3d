import time
from collections import deque
from typing import Callable, Deque, Dict

from fastapi import Depends, status

from socialnet.api.auth.dependencies import get_current_active_user
from socialnet.api.profile.models import User
from socialnet.core.config import settings
from socialnet.core.errors import ApiError


class SlidingWindowLimiter:
    """
    Ограничитель частоты запросов в памяти процесса:
    не больше limit событий на пользователя за window секунд.
    """

    def __init__(self, limit: int, window: float, clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window = window
        self.clock = clock
        self._hits: Dict[int, Deque[float]] = {}
        self._swept_at = clock()

    def __len__(self) -> int:
        return len(self._hits)

    def hit(self, key: int) -> bool:
        """Регистрирует событие; False, если лимит уже исчерпан"""
        now = self.clock()
        if now - self._swept_at >= self.window:
            self.sweep(now)
        hits = self._hits.setdefault(key, deque())
        while hits and now - hits[0] >= self.window:
            hits.popleft()
        if len(hits) >= self.limit:
            return False
        hits.append(now)
        return True

    def sweep(self, now: float):
        """Забывает ключи, у которых все события старше окна"""
        stale = [key for key, hits in self._hits.items() if not hits or now - hits[-1] >= self.window]
        for key in stale:
            del self._hits[key]
        self._swept_at = now

    def reset(self):
        self._hits.clear()
        self._swept_at = self.clock()


friend_request_limiter = SlidingWindowLimiter(
    limit=settings.FRIEND_REQUEST_RATE_LIMIT,
    window=settings.FRIEND_REQUEST_RATE_WINDOW_HOURS * 3600,
)


async def limit_friend_requests(current_user: User = Depends(get_current_active_user)) -> User:
    if not friend_request_limiter.hit(current_user.id):
        raise ApiError(
            status.HTTP_429_TOO_MANY_REQUESTS,
            "RATE_LIMITED",
            "Слишком много заявок в друзья. Попробуйте завтра.",
        )
    return current_user
