from socialnet.api.friends.schemas import Direction, RelationStatus
from socialnet.client.cache import StatusCache


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_entry_expires_after_ttl():
    clock = FakeClock()
    cache = StatusCache(ttl=10, clock=clock)
    cache.set(7, RelationStatus.PENDING, Direction.OUTGOING)

    clock.now += 9
    assert cache.get(7).status == RelationStatus.PENDING
    assert 7 in cache

    clock.now += 1
    assert cache.get(7) is None
    assert 7 not in cache
    assert cache.peek(7).direction == Direction.OUTGOING


def test_purge_and_invalidate():
    clock = FakeClock()
    cache = StatusCache(ttl=10, clock=clock)
    cache.set(1, RelationStatus.ACCEPTED)
    clock.now += 20
    cache.set(2, RelationStatus.BLOCKED)

    assert cache.purge_stale() == 1
    assert len(cache) == 1

    cache.invalidate(2)
    cache.invalidate(3)
    assert len(cache) == 0


def test_set_overwrites_entry():
    clock = FakeClock()
    cache = StatusCache(ttl=10, clock=clock)
    cache.set(1, RelationStatus.PENDING, Direction.INCOMING)
    clock.now += 5
    entry = cache.set(1, RelationStatus.ACCEPTED)

    assert entry.fetched_at == clock.now
    assert cache.get(1).status == RelationStatus.ACCEPTED
    assert cache.get(1).direction is None

    cache.clear()
    assert cache.peek(1) is None
