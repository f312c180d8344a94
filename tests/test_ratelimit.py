import pytest

from letsorder import main
from letsorder.services.ratelimit import BaseRateLimiter, InMemoryRateLimiter, RedisRateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


async def test_allows_up_to_limit_then_rejects():
    limiter = InMemoryRateLimiter(max_requests=3, window_seconds=60, clock=FakeClock())
    assert [await limiter.hit("1.2.3.4") for _ in range(4)] == [True, True, True, False]


async def test_keys_are_counted_separately():
    limiter = InMemoryRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
    assert await limiter.hit("1.2.3.4")
    assert await limiter.hit("5.6.7.8")
    assert not await limiter.hit("1.2.3.4")


async def test_window_slides():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(max_requests=2, window_seconds=60, clock=clock)
    assert await limiter.hit("a")
    clock.now += 30
    assert await limiter.hit("a")
    assert not await limiter.hit("a")

    clock.now += 31  # first hit has left the window
    assert await limiter.hit("a")
    assert not await limiter.hit("a")


async def test_rejected_hits_do_not_extend_the_window():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(max_requests=1, window_seconds=10, clock=clock)
    assert await limiter.hit("a")
    for _ in range(5):
        clock.now += 1
        assert not await limiter.hit("a")
    clock.now += 5
    assert await limiter.hit("a")



async def test_idle_keys_are_evicted():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(max_requests=5, window_seconds=60, clock=clock)
    for i in range(10_000):
        assert await limiter.hit(f"10.0.{i // 256}.{i % 256}")
    assert limiter.tracked_keys == 10_000

    clock.now += 3600
    assert await limiter.hit("192.168.0.1")
    assert limiter.tracked_keys == 1


async def test_keys_inside_their_window_survive_a_sweep():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(max_requests=1, window_seconds=60, clock=clock)
    assert await limiter.hit("old")
    clock.now += 45
    assert await limiter.hit("recent")
    clock.now += 20  # sweep is due; "old" has drained, "recent" has not
    assert await limiter.hit("other")
    assert limiter.tracked_keys == 2
    assert not await limiter.hit("recent")


async def test_reset_forgets_every_key():
    limiter = InMemoryRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
    assert await limiter.hit("a")
    assert not await limiter.hit("a")

    limiter.reset()
    assert limiter.tracked_keys == 0
    assert await limiter.hit("a")


async def test_redis_limiter_close_releases_pool(monkeypatch):
    limiter = RedisRateLimiter("redis://localhost:6379/0", max_requests=5, window_seconds=60)
    closed = []

    async def aclose():
        closed.append(True)

    monkeypatch.setattr(limiter.client, "aclose", aclose)
    await limiter.close()
    assert closed == [True]


class RecordingLimiter(BaseRateLimiter):
    def __init__(self):
        super().__init__(max_requests=1, window_seconds=1)
        self.closed = False

    @property
    def provider_name(self) -> str:
        return "recording"

    async def hit(self, key: str) -> bool:
        return True

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        self.closed = True


async def test_shutdown_closes_rate_limiter(monkeypatch):
    recording = RecordingLimiter()
    monkeypatch.setattr(main, "get_rate_limiter", lambda: recording)

    async with main.lifespan(main.app):
        assert not recording.closed
    assert recording.closed


@pytest.mark.parametrize("path,body", [
    ("/auth/login", {"email": "nobody@example.com", "password": "wrong-password"}),
    ("/orders", {"table_code": "ZZZZZZZZ", "items": []}),
])
async def test_public_endpoints_return_429_when_limited(client, limiter, path, body):
    limiter.max_requests = 2
    statuses = [(await client.post(path, json=body)).status_code for _ in range(3)]
    assert statuses[2] == 429
    assert 429 not in statuses[:2]
