import pytest

from swapin import init_firestore_odm
from swapin.errors import RateLimitExceeded
from swapin.models import RateLimitWindow
from swapin.rate_limit import (
    FirestoreWindowStore,
    InMemoryWindowStore,
    SlidingWindowRateLimiter,
    build_rate_limiter,
)
from swapin.config import Settings

from fake_firestore import FakeFirestoreDB
from helpers import auth


class Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.mark.asyncio
async def test_sixty_requests_pass_and_the_sixty_first_is_rejected():
    limiter = SlidingWindowRateLimiter(requests_per_minute=60, clock=Clock())
    for _ in range(60):
        await limiter.check("alice")
    with pytest.raises(RateLimitExceeded) as excinfo:
        await limiter.check("alice")
    assert excinfo.value.code == "RATE_LIMIT"
    assert excinfo.value.status_code == 429


@pytest.mark.asyncio
async def test_callers_have_separate_windows():
    limiter = SlidingWindowRateLimiter(requests_per_minute=2, clock=Clock())
    await limiter.check("alice")
    await limiter.check("alice")
    await limiter.check("bob")
    with pytest.raises(RateLimitExceeded):
        await limiter.check("alice")


@pytest.mark.asyncio
async def test_window_slides():
    clock = Clock()
    limiter = SlidingWindowRateLimiter(requests_per_minute=2, clock=clock)
    await limiter.check("alice")
    clock.now += 30
    await limiter.check("alice")
    with pytest.raises(RateLimitExceeded):
        await limiter.check("alice")

    # The first request leaves the window, the second one is still in it.
    clock.now += 31
    await limiter.check("alice")
    with pytest.raises(RateLimitExceeded):
        await limiter.check("alice")


@pytest.mark.asyncio
async def test_rejected_requests_do_not_extend_the_window():
    store = InMemoryWindowStore()
    assert await store.hit("alice", 0.0, 60.0, 1)
    assert not await store.hit("alice", 30.0, 60.0, 1)
    assert await store.hit("alice", 61.0, 60.0, 1)


@pytest.mark.asyncio
async def test_firestore_store_shares_the_window_through_documents():
    db = FakeFirestoreDB()
    init_firestore_odm(db, [RateLimitWindow])
    clock = Clock()
    first = SlidingWindowRateLimiter(requests_per_minute=3, store=FirestoreWindowStore(), clock=clock)
    second = SlidingWindowRateLimiter(requests_per_minute=3, store=FirestoreWindowStore(), clock=clock)

    await first.check("alice")
    await second.check("alice")
    await first.check("alice")
    with pytest.raises(RateLimitExceeded):
        await second.check("alice")

    assert db.client.get_data("rateLimits/alice")["hits"] == [1000.0, 1000.0, 1000.0]


@pytest.mark.asyncio
async def test_firestore_store_drops_expired_hits():
    db = FakeFirestoreDB()
    init_firestore_odm(db, [RateLimitWindow])
    db.client.seed("rateLimits/alice", {"hits": [0.0, 10.0]})

    store = FirestoreWindowStore()
    assert await store.hit("alice", 65.0, 60.0, 2)
    assert db.client.get_data("rateLimits/alice")["hits"] == [10.0, 65.0]


def test_build_rate_limiter_picks_the_backend():
    limiter = build_rate_limiter(Settings(rate_limit_backend="firestore", rate_limit_per_minute=5))
    assert isinstance(limiter.store, FirestoreWindowStore)
    assert limiter.limit == 5
    assert isinstance(build_rate_limiter(Settings()).store, InMemoryWindowStore)


def test_http_limit_applies_per_caller(limited_client, clock):
    for _ in range(60):
        assert limited_client.get("/getUserItems", headers=auth("alice")).status_code == 200

    response = limited_client.get("/getUserItems", headers=auth("alice"))
    assert response.status_code == 429
    assert response.json() == {"error": "Rate limit exceeded", "code": "RATE_LIMIT"}

    assert limited_client.get("/getUserItems", headers=auth("bob")).status_code == 200

    clock["now"] += 61
    assert limited_client.get("/getUserItems", headers=auth("alice")).status_code == 200


def test_unauthenticated_requests_are_rejected_before_counting(limited_client):
    for _ in range(70):
        assert limited_client.get("/getUserItems").status_code == 401
    assert limited_client.get("/getUserItems", headers=auth("alice")).status_code == 200
