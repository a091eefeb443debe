"""Server -> client push API over the registered connections"""

import logging
from typing import Any, Iterable, Optional

from .connections import Connection, ConnectionRegistry
from .rooms import RoomMembershipTracker

logger = logging.getLogger(__name__)


class PushChannel:
    """Sends ``{"event": ..., "data": ...}`` frames; a failed send is logged and skipped"""

    def __init__(self, registry: ConnectionRegistry, rooms: RoomMembershipTracker):
        self.registry = registry
        self.rooms = rooms

    async def to_connection(self, connection: Connection, event: str, data: Any) -> bool:
        try:
            await connection.transport.send_json({"event": event, "data": data})
            return True
        except Exception as e:
            logger.debug(f"Failed to push {event} to {connection.connection_id}: {e}")
            return False

    async def to_connections(
        self, connections: Iterable[Connection], event: str, data: Any
    ) -> int:
        sent = 0
        for connection in connections:
            if await self.to_connection(connection, event, data):
                sent += 1
        return sent

    async def to_user(self, user_id: str, event: str, data: Any) -> int:
        """Every live connection of ``user_id``; 0 when the user is offline"""
        return await self.to_connections(self.registry.connections_for(user_id), event, data)

    async def to_room(
        self, chat_id: str, event: str, data: Any, exclude: Optional[Connection] = None
    ) -> int:
        """The chat's delivery group, optionally minus the originating connection"""
        targets = []
        for connection_id in self.rooms.delivery_group(chat_id):
            if exclude is not None and connection_id == exclude.connection_id:
                continue
            connection = self.registry.get(connection_id)
            if connection is not None:
                targets.append(connection)
        return await self.to_connections(targets, event, data)

    async def to_all(self, event: str, data: Any) -> int:
        return await self.to_connections(self.registry.all_connections(), event, data)
