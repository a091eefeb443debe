from app.realtime.connections import Connection
from app.realtime.rooms import RoomMembershipTracker

from .conftest import FakeSocket


def _conn(user_id: str) -> Connection:
    return Connection(transport=FakeSocket(), user_id=user_id)


def test_viewer_stays_active_until_last_connection_leaves() -> None:
    rooms = RoomMembershipTracker()
    phone, laptop = _conn("alice"), _conn("alice")
    rooms.join("alice_bob", phone, "alice")
    rooms.join("alice_bob", laptop, "alice")

    assert rooms.leave("alice_bob", phone) is None
    assert rooms.is_active_viewer("alice_bob", "alice")

    assert rooms.leave("alice_bob", laptop) == "alice"
    assert not rooms.is_active_viewer("alice_bob", "alice")
    assert rooms.delivery_group("alice_bob") == set()


def test_leave_without_join_is_noop() -> None:
    rooms = RoomMembershipTracker()
    assert rooms.leave("alice_bob", _conn("alice")) is None


def test_rejoin_as_other_user_moves_viewer() -> None:
    rooms = RoomMembershipTracker()
    conn = _conn("alice")
    rooms.join("alice_bob", conn, "alice")
    rooms.join("alice_bob", conn, "bob")

    assert not rooms.is_active_viewer("alice_bob", "alice")
    assert rooms.is_active_viewer("alice_bob", "bob")
    assert rooms.delivery_group("alice_bob") == {conn.connection_id}


def test_leave_all_reports_inactive_viewers() -> None:
    rooms = RoomMembershipTracker()
    conn = _conn("alice")
    other = _conn("alice")
    rooms.join("alice_bob", conn, "alice")
    rooms.join("alice_carol", conn, "alice")
    rooms.join("alice_carol", other, "alice")

    inactive = rooms.leave_all(conn)

    assert inactive == [("alice_bob", "alice")]
    assert conn.chats == {}
    assert rooms.is_active_viewer("alice_carol", "alice")
