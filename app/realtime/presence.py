"""
Presence: online announcements, offline teardown and the presence broadcast.

Every presence change is broadcast to every connection with the full
snapshot; clients filter for the users they care about.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from ..database import session_scope
from ..domain.users.repository import UserRepository
from ..models import utcnow
from .connections import Connection, ConnectionRegistry
from .push import PushChannel
from .rooms import RoomMembershipTracker
from .schemas import PresenceSnapshot

logger = logging.getLogger(__name__)


class PresenceBroadcaster:
    def __init__(self, registry: ConnectionRegistry, push: PushChannel):
        self.registry = registry
        self.push = push

    def snapshot(self) -> dict:
        return PresenceSnapshot(
            onlineUsers=self.registry.online_user_ids(),
            lastSeenMap=self.registry.last_seen_snapshot(),
        ).model_dump()

    async def broadcast(self) -> None:
        await self.push.to_all("presence", self.snapshot())

    async def send_to(self, connection: Connection) -> None:
        await self.push.to_connection(connection, "presence", self.snapshot())


class PresenceService:
    """Owns the online/offline transitions of connections and users"""

    def __init__(
        self,
        registry: ConnectionRegistry,
        rooms: RoomMembershipTracker,
        push: PushChannel,
        broadcaster: PresenceBroadcaster,
        session_factory=None,
    ):
        self.registry = registry
        self.rooms = rooms
        self.push = push
        self.broadcaster = broadcaster
        self.session_factory = session_factory

    async def announce_online(self, connection: Connection, user_id: str) -> None:
        if not connection.is_connected:
            logger.debug(f"Ignoring online from torn-down connection {connection.connection_id}")
            return

        previous = connection.user_id
        if previous and previous != user_id:
            # Same socket, different account: the old identity leaves first
            went_offline = self.registry.detach(connection)
            if went_offline:
                await self._finish_offline(went_offline)

        came_online = self.registry.attach(connection, user_id)
        self.registry.clear_last_seen(user_id)
        if came_online:
            logger.info(f"🟢 User online: {user_id}")
        await self.broadcaster.broadcast()

    async def query_presence(self, connection: Connection) -> None:
        await self.broadcaster.send_to(connection)

    async def teardown(self, connection: Connection) -> None:
        """
        Run the offline logic for ``connection`` at most once. Whichever of
        ``offline`` / ``disconnect`` arrives first does the work.
        """
        if not connection.begin_teardown():
            return

        try:
            for chat_id, user_id in self.rooms.leave_all(connection):
                await self.push.to_all(
                    "chat-active", {"chatId": chat_id, "userId": user_id, "active": False}
                )

            user_id = self.registry.detach(connection)
            if user_id:
                await self._finish_offline(user_id)
        finally:
            connection.mark_closed()

    async def _finish_offline(self, user_id: str) -> None:
        last_seen = utcnow()
        try:
            with session_scope(self.session_factory) as db:
                UserRepository.set_last_seen(db, user_id, last_seen)
        except SQLAlchemyError as e:
            logger.error(f"❌ LastSeen DB update failed for {user_id}: {e}")

        # The user may have reconnected while the write was in flight
        if not self.registry.is_online(user_id):
            self.registry.record_last_seen(user_id, last_seen)

        await self.broadcaster.broadcast()
        logger.info(f"🔴 User fully offline: {user_id}")
