"""
Connection registry: which users are online, over which connections.

A user is online iff at least one of their connections is registered. Every
connection walks CONNECTED -> DISCONNECTING -> CLOSED exactly once, which makes
presence teardown single-fire even when both an explicit ``offline`` and the
transport ``disconnect`` arrive for the same connection.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional, Protocol

from ..models import utcnow

logger = logging.getLogger(__name__)


class Transport(Protocol):
    async def send_json(self, data: Any) -> None: ...


class ConnectionState(str, Enum):
    CONNECTED = "connected"
    DISCONNECTING = "disconnecting"
    CLOSED = "closed"


@dataclass(eq=False)
class Connection:
    transport: Transport
    connection_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    user_id: Optional[str] = None
    state: ConnectionState = ConnectionState.CONNECTED
    # chat_id -> user_id the connection joined that chat as
    chats: dict[str, str] = field(default_factory=dict)

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    def begin_teardown(self) -> bool:
        """Claim the teardown; only the first caller gets True"""
        if self.state != ConnectionState.CONNECTED:
            return False
        self.state = ConnectionState.DISCONNECTING
        return True

    def mark_closed(self) -> None:
        self.state = ConnectionState.CLOSED


class ConnectionRegistry:
    """In-memory presence source of truth for a single process"""

    def __init__(self, last_seen_retention: Optional[timedelta] = None):
        self._connections: dict[str, Connection] = {}
        self._presence: dict[str, set[str]] = {}
        self._last_seen: dict[str, datetime] = {}
        self._last_seen_retention = last_seen_retention

    def open(self, transport: Transport) -> Connection:
        """Register a freshly accepted, not yet identified connection"""
        connection = Connection(transport=transport)
        self._connections[connection.connection_id] = connection
        logger.debug(f"🔌 Connected: {connection.connection_id}")
        return connection

    def discard(self, connection: Connection) -> None:
        """Forget a physically closed connection"""
        self._connections.pop(connection.connection_id, None)

    def get(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def attach(self, connection: Connection, user_id: str) -> bool:
        """Add the connection to the user's set; True if the user just came online"""
        connection.user_id = user_id
        sockets = self._presence.get(user_id)
        came_online = sockets is None
        if came_online:
            sockets = self._presence[user_id] = set()
        sockets.add(connection.connection_id)
        return came_online

    def detach(self, connection: Connection) -> Optional[str]:
        """
        Remove the connection from its user's set. Returns the user ID when
        that was the user's last connection, None otherwise.
        """
        user_id = connection.user_id
        if not user_id:
            return None
        sockets = self._presence.get(user_id)
        if not sockets or connection.connection_id not in sockets:
            return None
        sockets.discard(connection.connection_id)
        if sockets:
            return None
        del self._presence[user_id]
        return user_id

    def is_online(self, user_id: str) -> bool:
        return user_id in self._presence

    def connections_for(self, user_id: str) -> list[Connection]:
        return [
            self._connections[cid]
            for cid in self._presence.get(user_id, ())
            if cid in self._connections
        ]

    def all_connections(self) -> list[Connection]:
        return list(self._connections.values())

    def online_user_ids(self) -> list[str]:
        return list(self._presence.keys())

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def record_last_seen(self, user_id: str, when: datetime) -> None:
        self._last_seen[user_id] = when

    def clear_last_seen(self, user_id: str) -> None:
        self._last_seen.pop(user_id, None)

    def last_seen_snapshot(self) -> dict[str, str]:
        """Recently-offline users as {user_id: iso timestamp}; prunes stale entries"""
        if self._last_seen_retention is not None:
            cutoff = utcnow() - self._last_seen_retention
            for user_id in [uid for uid, when in self._last_seen.items() if when < cutoff]:
                del self._last_seen[user_id]
        return {user_id: when.isoformat() for user_id, when in self._last_seen.items()}
