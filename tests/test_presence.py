import asyncio

from app.domain.users.repository import UserRepository
from app.models import Message, Notification, User

from .conftest import connect, send


def _count_last_seen_writes(monkeypatch) -> list[str]:
    calls: list[str] = []
    original = UserRepository.set_last_seen

    def counting(db, user_id, when):
        calls.append(user_id)
        return original(db, user_id, when)

    monkeypatch.setattr(UserRepository, "set_last_seen", counting)
    return calls


def test_online_while_any_connection_open(hub, users, monkeypatch) -> None:
    writes = _count_last_seen_writes(monkeypatch)

    async def scenario():
        phone, _ = await connect(hub, "alice")
        laptop, _ = await connect(hub, "alice")

        await hub.disconnect(phone)
        assert hub.registry.is_online("alice")
        assert writes == []

        await hub.disconnect(laptop)
        assert not hub.registry.is_online("alice")

    asyncio.run(scenario())
    assert writes == ["alice"]


def test_offline_then_disconnect_fires_once(hub, users, monkeypatch) -> None:
    writes = _count_last_seen_writes(monkeypatch)

    async def scenario():
        conn, _ = await connect(hub, "alice")
        _, watcher = await connect(hub, "bob")
        watcher.clear()

        await hub.dispatch(conn, "offline", None)
        await hub.disconnect(conn)
        await hub.dispatch(conn, "offline", None)
        return watcher

    watcher = asyncio.run(scenario())
    assert writes == ["alice"]
    snapshots = watcher.payloads("presence")
    assert len(snapshots) == 1
    assert "alice" not in snapshots[0]["onlineUsers"]
    assert "alice" in snapshots[0]["lastSeenMap"]


def test_last_seen_persisted_and_cleared_on_return(hub, users, session_factory) -> None:
    async def scenario():
        conn, _ = await connect(hub, "alice")
        await hub.disconnect(conn)
        assert "alice" in hub.broadcaster.snapshot()["lastSeenMap"]

        await connect(hub, "alice")
        return hub.broadcaster.snapshot()

    snapshot = asyncio.run(scenario())
    assert snapshot["onlineUsers"] == ["alice"]
    assert "alice" not in snapshot["lastSeenMap"]

    with session_factory() as db:
        assert db.get(User, "alice").last_seen is not None


def test_presence_query_answers_requester_only(hub, users) -> None:
    async def scenario():
        asker, asker_socket = await connect(hub, "alice")
        _, other_socket = await connect(hub, "bob")
        asker_socket.clear()
        other_socket.clear()

        await hub.dispatch(asker, "get-presence", None)
        await hub.dispatch(asker, "online-check", None)
        return asker_socket, other_socket

    asker_socket, other_socket = asyncio.run(scenario())
    assert len(asker_socket.events("presence")) == 2
    assert sorted(asker_socket.payloads("presence")[0]["onlineUsers"]) == ["alice", "bob"]
    assert other_socket.frames == []


def test_online_accepts_numeric_and_object_ids(hub) -> None:
    async def scenario():
        first, _ = await connect(hub)
        second, _ = await connect(hub)
        await hub.dispatch(first, "online", 42)
        await hub.dispatch(second, "online", {"userId": "bob"})

    asyncio.run(scenario())
    assert sorted(hub.registry.online_user_ids()) == ["42", "bob"]


def test_online_ignores_empty_and_torn_down(hub, users) -> None:
    async def scenario():
        conn, _ = await connect(hub)
        await hub.dispatch(conn, "online", "")
        await hub.dispatch(conn, "online", None)
        await hub.dispatch(conn, "online", True)
        assert hub.registry.online_user_ids() == []

        await hub.dispatch(conn, "offline", None)
        await hub.dispatch(conn, "online", "alice")

    asyncio.run(scenario())
    assert not hub.registry.is_online("alice")


def test_reidentify_detaches_previous_user(hub, users, monkeypatch) -> None:
    writes = _count_last_seen_writes(monkeypatch)

    async def scenario():
        conn, _ = await connect(hub, "alice")
        await hub.dispatch(conn, "online", "bob")
        return conn

    conn = asyncio.run(scenario())
    assert not hub.registry.is_online("alice")
    assert hub.registry.is_online("bob")
    assert conn.user_id == "bob"
    assert writes == ["alice"]


def test_disconnect_leaves_joined_chats(hub, users) -> None:
    async def scenario():
        conn, _ = await connect(hub, "alice")
        _, watcher = await connect(hub, "bob")
        await hub.dispatch(conn, "joinChat", {"chatId": "alice_bob", "userId": "alice"})
        watcher.clear()

        await hub.disconnect(conn)
        return watcher

    watcher = asyncio.run(scenario())
    assert watcher.payloads("chat-active") == [
        {"chatId": "alice_bob", "userId": "alice", "active": False}
    ]
    assert not hub.rooms.is_active_viewer("alice_bob", "alice")
    assert hub.registry.connection_count == 1


def test_room_events_after_offline_are_ignored(hub, users, session_factory) -> None:
    async def scenario():
        bob, _ = await connect(hub, "bob")
        _, watcher = await connect(hub, "carol")
        await hub.dispatch(bob, "offline", None)
        watcher.clear()

        await hub.dispatch(bob, "joinChat", {"chatId": "alice_bob", "userId": "bob"})
        await hub.dispatch(bob, "typing", {"chatId": "alice_bob"})
        await hub.dispatch(bob, "leaveChat", {"chatId": "alice_bob", "userId": "bob"})
        await hub.disconnect(bob)

        alice, _ = await connect(hub, "alice")
        await send(hub, alice, "alice_bob", "alice")
        return watcher

    watcher = asyncio.run(scenario())
    assert watcher.payloads("chat-active") == []
    assert not hub.rooms.is_active_viewer("alice_bob", "bob")
    assert hub.rooms.delivery_group("alice_bob") == set()
    with session_factory() as db:
        [message] = db.query(Message).all()
        assert message.delivered is False
        [note] = db.query(Notification).filter(Notification.user_id == "bob").all()
        assert note.meta_count == 1


def test_disconnect_always_clears_rooms(hub, users) -> None:
    async def scenario():
        conn, _ = await connect(hub, "bob")
        await hub.dispatch(conn, "offline", None)
        hub.rooms.join("alice_bob", conn, "bob")
        await hub.disconnect(conn)

    asyncio.run(scenario())
    assert not hub.rooms.is_active_viewer("alice_bob", "bob")
    assert hub.rooms.delivery_group("alice_bob") == set()


def test_broken_socket_does_not_block_broadcast(hub, users) -> None:
    async def scenario():
        await connect(hub, "carol", broken=True)
        _, watcher = await connect(hub, "bob")
        watcher.clear()
        await connect(hub, "alice")
        return watcher

    watcher = asyncio.run(scenario())
    assert sorted(watcher.payloads("presence")[-1]["onlineUsers"]) == ["alice", "bob", "carol"]


def test_unknown_event_is_ignored(hub) -> None:
    async def scenario():
        conn, socket = await connect(hub)
        await hub.dispatch(conn, "selfDestruct", {"now": True})
        return socket

    assert asyncio.run(scenario()).frames == []
