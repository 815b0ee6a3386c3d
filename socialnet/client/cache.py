import time
from typing import Callable, Dict, Optional

from pydantic import BaseModel

from socialnet.api.friends.schemas import Direction, FriendshipOut, RelationStatus


class StatusEntry(BaseModel):
    status: RelationStatus
    direction: Optional[Direction] = None
    friendship: Optional[FriendshipOut] = None
    fetched_at: float = 0.0


class StatusCache:
    """
    Кэш статусов отношений: ID собеседника -> StatusEntry.

    Запись старше ttl секунд считается устаревшей и не отдаётся
    через get(); peek() отдаёт её независимо от возраста.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._entries: Dict[int, StatusEntry] = {}

    def __contains__(self, user_id: int) -> bool:
        return self.get(user_id) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, user_id: int) -> Optional[StatusEntry]:
        entry = self._entries.get(user_id)
        if entry is None or self.is_stale(entry):
            return None
        return entry

    def peek(self, user_id: int) -> Optional[StatusEntry]:
        return self._entries.get(user_id)

    def set(self, user_id: int, status: RelationStatus, direction: Optional[Direction] = None,
            friendship: Optional[FriendshipOut] = None) -> StatusEntry:
        entry = StatusEntry(status=status, direction=direction, friendship=friendship, fetched_at=self.clock())
        self._entries[user_id] = entry
        return entry

    def is_stale(self, entry: StatusEntry) -> bool:
        return self.clock() - entry.fetched_at >= self.ttl

    def invalidate(self, user_id: int):
        self._entries.pop(user_id, None)

    def purge_stale(self) -> int:
        stale = [uid for uid, entry in self._entries.items() if self.is_stale(entry)]
        for uid in stale:
            del self._entries[uid]
        return len(stale)

    def clear(self):
        self._entries.clear()
