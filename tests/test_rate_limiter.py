import asyncio

from app import rate_limiter
from app.rate_limiter import EventRateLimiter
from app.realtime import RealtimeHub

from .conftest import connect


def test_allows_up_to_limit_per_key() -> None:
    limiter = EventRateLimiter(limit=2, window_seconds=60, use_redis=False)

    assert limiter.allow("ws:typing:alice")
    assert limiter.allow("ws:typing:alice")
    assert not limiter.allow("ws:typing:alice")
    assert limiter.allow("ws:typing:bob")


def test_expired_windows_reset(monkeypatch) -> None:
    now = [1000.0]
    monkeypatch.setattr(rate_limiter.time, "time", lambda: now[0])
    limiter = EventRateLimiter(limit=1, window_seconds=10, use_redis=False)

    assert limiter.allow("k")
    assert not limiter.allow("k")

    now[0] += 11
    assert limiter.cleanup_expired() == 1
    assert limiter.allow("k")


def test_redis_failure_fails_open(monkeypatch) -> None:
    def broken_client():
        raise ConnectionError("redis down")

    monkeypatch.setattr(rate_limiter, "get_redis_client", broken_client)
    limiter = EventRateLimiter(limit=5, window_seconds=10, use_redis=True)

    assert all(limiter.allow("ws:sendMessage:alice") for _ in range(5))
    assert not limiter.allow("ws:sendMessage:alice")


def test_hub_drops_events_over_limit(session_factory, users) -> None:
    hub = RealtimeHub(
        session_factory=session_factory,
        rate_limiter=EventRateLimiter(limit=2, window_seconds=60, use_redis=False),
    )

    async def scenario():
        alice, _ = await connect(hub, "alice")
        bob, bob_socket = await connect(hub, "bob")
        await hub.dispatch(alice, "joinChat", {"chatId": "alice_bob", "userId": "alice"})
        await hub.dispatch(bob, "joinChat", {"chatId": "alice_bob", "userId": "bob"})
        bob_socket.clear()
        for _ in range(5):
            await hub.dispatch(alice, "typing", {"chatId": "alice_bob"})
        return bob_socket

    bob_socket = asyncio.run(scenario())
    assert len(bob_socket.events("typing")) == 2
