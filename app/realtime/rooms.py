"""
Room membership: per chat, the delivery group (connections that receive the
room's events) and the active viewers (users currently looking at the chat).
A user stays an active viewer while at least one of their connections remains
joined to the chat.
"""

import logging
from typing import Optional

from .connections import Connection

logger = logging.getLogger(__name__)


class RoomMembershipTracker:
    def __init__(self):
        # chat_id -> connection ids
        self._groups: dict[str, set[str]] = {}
        # chat_id -> {user_id -> connection ids}
        self._viewers: dict[str, dict[str, set[str]]] = {}

    def join(self, chat_id: str, connection: Connection, user_id: str) -> None:
        previous = connection.chats.get(chat_id)
        if previous is not None and previous != user_id:
            self.leave(chat_id, connection)

        self._groups.setdefault(chat_id, set()).add(connection.connection_id)
        viewers = self._viewers.setdefault(chat_id, {})
        viewers.setdefault(user_id, set()).add(connection.connection_id)
        connection.chats[chat_id] = user_id

    def leave(self, chat_id: str, connection: Connection) -> Optional[str]:
        """
        Take the connection out of the chat. Returns the user ID if that user
        stopped being an active viewer as a result.
        """
        user_id = connection.chats.pop(chat_id, None)

        group = self._groups.get(chat_id)
        if group is not None:
            group.discard(connection.connection_id)
            if not group:
                del self._groups[chat_id]

        if user_id is None:
            return None

        viewers = self._viewers.get(chat_id)
        if not viewers or user_id not in viewers:
            return None
        sockets = viewers[user_id]
        sockets.discard(connection.connection_id)
        if sockets:
            return None
        del viewers[user_id]
        if not viewers:
            del self._viewers[chat_id]
        return user_id

    def leave_all(self, connection: Connection) -> list[tuple[str, str]]:
        """Leave every joined chat; returns (chat_id, user_id) for viewers that went inactive"""
        inactive = []
        for chat_id in list(connection.chats):
            user_id = self.leave(chat_id, connection)
            if user_id is not None:
                inactive.append((chat_id, user_id))
        return inactive

    def is_active_viewer(self, chat_id: str, user_id: str) -> bool:
        return user_id in self._viewers.get(chat_id, {})

    def delivery_group(self, chat_id: str) -> set[str]:
        return set(self._groups.get(chat_id, ()))
