from socialnet.api.friends.limiter import SlidingWindowLimiter


def test_limit_per_key_within_window():
    now = [0.0]
    limiter = SlidingWindowLimiter(limit=2, window=60, clock=lambda: now[0])

    assert limiter.hit(1)
    assert limiter.hit(1)
    assert not limiter.hit(1)
    assert limiter.hit(2)

    now[0] = 59.0
    assert not limiter.hit(1)

    now[0] = 60.0
    assert limiter.hit(1)


def test_rejected_hits_are_not_counted():
    now = [0.0]
    limiter = SlidingWindowLimiter(limit=1, window=10, clock=lambda: now[0])
    limiter.hit(1)

    now[0] = 5.0
    assert not limiter.hit(1)

    now[0] = 10.0
    assert limiter.hit(1)


def test_reset():
    limiter = SlidingWindowLimiter(limit=1, window=10)
    limiter.hit(1)

    limiter.reset()

    assert limiter.hit(1)


def test_idle_keys_are_forgotten():
    now = [0.0]
    limiter = SlidingWindowLimiter(limit=5, window=10, clock=lambda: now[0])
    for key in range(3):
        limiter.hit(key)
    assert len(limiter) == 3

    now[0] = 10.0
    limiter.hit(7)

    assert len(limiter) == 1
