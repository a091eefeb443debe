"""
RealtimeHub - owns the presence/room state and routes inbound socket events.

One hub is built at application start-up and handed to the websocket
endpoint. Handlers are fire-and-forget: they return nothing to the client,
malformed payloads are dropped silently and failures are only logged.
"""

import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel, ValidationError

from ..config import LAST_SEEN_RETENTION_SECONDS
from ..database import session_scope
from ..domain.chats.chat_ids import canonical_chat_id
from ..rate_limiter import EventRateLimiter
from .connections import Connection, ConnectionRegistry, Transport
from .messages import MessagePipeline
from .notifications import NotificationAggregator
from .presence import PresenceBroadcaster, PresenceService
from .push import PushChannel
from .receipts import SeenDeliveryTracker
from .rooms import RoomMembershipTracker
from .schemas import (
    JoinChatPayload,
    LeaveChatPayload,
    MarkSeenPayload,
    SendMessagePayload,
    TypingPayload,
)

logger = logging.getLogger(__name__)

# Events that go through the per-connection rate limiter
RATE_LIMITED_EVENTS = {"sendMessage", "typing"}


class RealtimeNotInitializedError(RuntimeError):
    """The push channel was requested before the hub was started"""


class RealtimeHub:
    def __init__(self, session_factory=None, rate_limiter: Optional[EventRateLimiter] = None):
        self.session_factory = session_factory
        self.rate_limiter = rate_limiter

        self.registry = ConnectionRegistry(
            last_seen_retention=timedelta(seconds=LAST_SEEN_RETENTION_SECONDS)
        )
        self.rooms = RoomMembershipTracker()
        self.push = PushChannel(self.registry, self.rooms)
        self.broadcaster = PresenceBroadcaster(self.registry, self.push)
        self.presence = PresenceService(
            self.registry, self.rooms, self.push, self.broadcaster, session_factory
        )
        self.aggregator = NotificationAggregator(self.registry, self.rooms, self.push)
        self.pipeline = MessagePipeline(self.registry, self.rooms, self.push, self.aggregator)
        self.receipts = SeenDeliveryTracker(self.registry, self.push)

        self._handlers: dict[str, Callable[[Connection, Any], Awaitable[None]]] = {
            "online": self._on_online,
            "get-presence": self._on_get_presence,
            "online-check": self._on_get_presence,
            "offline": self._on_offline,
            "disconnect": self._on_disconnect,
            "joinChat": self._on_join_chat,
            "leaveChat": self._on_leave_chat,
            "sendMessage": self._on_send_message,
            "typing": self._on_typing,
            "markSeen": self._on_mark_seen,
        }

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def connect(self, transport: Transport) -> Connection:
        return self.registry.open(transport)

    async def disconnect(self, connection: Connection) -> None:
        await self.dispatch(connection, "disconnect", None)

    async def dispatch(self, connection: Connection, event: str, data: Any) -> None:
        """Run the handler for one inbound event; never raises"""
        handler = self._handlers.get(event)
        if handler is None:
            logger.debug(f"Unknown event {event!r} from {connection.connection_id}")
            return

        if event in RATE_LIMITED_EVENTS and self.rate_limiter is not None:
            key = f"ws:{event}:{connection.user_id or connection.connection_id}"
            if not self.rate_limiter.allow(key):
                return

        try:
            await handler(connection, data)
        except Exception as e:
            logger.error(f"❌ Handler for {event} failed on {connection.connection_id}: {e}")

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    @staticmethod
    def _parse(model: type[BaseModel], data: Any) -> Optional[BaseModel]:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.debug(f"Dropping malformed {model.__name__}: {e.error_count()} error(s)")
            return None

    async def _on_online(self, connection: Connection, data: Any) -> None:
        if isinstance(data, dict):
            data = data.get("userId")
        if isinstance(data, int) and not isinstance(data, bool):
            data = str(data)
        if not isinstance(data, str) or not data:
            return
        await self.presence.announce_online(connection, data)

    async def _on_get_presence(self, connection: Connection, data: Any) -> None:
        await self.presence.query_presence(connection)

    async def _on_offline(self, connection: Connection, data: Any) -> None:
        """
        Takes this connection out of presence for good. A later `online` on the
        same socket is ignored; clients that want to reappear must reconnect.
        """
        await self.presence.teardown(connection)

    async def _on_disconnect(self, connection: Connection, data: Any) -> None:
        try:
            await self.presence.teardown(connection)
        finally:
            # A closed socket must never stay in a room
            self.rooms.leave_all(connection)
            self.registry.discard(connection)
            if self.rate_limiter is not None:
                self.rate_limiter.cleanup_expired()
            logger.debug(f"🔌 Disconnected: {connection.connection_id}")

    async def _on_join_chat(self, connection: Connection, data: Any) -> None:
        if not connection.is_connected:
            return
        payload = self._parse(JoinChatPayload, data)
        if payload is None:
            return
        chat_id = canonical_chat_id(payload.chatId)
        if chat_id is None:
            return

        self.rooms.join(chat_id, connection, payload.userId)
        await self.push.to_all("chat-active", {"chatId": chat_id, "userId": payload.userId, "active": True})

        with session_scope(self.session_factory) as db:
            await self.receipts.mark_delivered(db, chat_id, payload.userId)

    async def _on_leave_chat(self, connection: Connection, data: Any) -> None:
        if not connection.is_connected:
            return
        if isinstance(data, str):
            data = {"chatId": data}
        payload = self._parse(LeaveChatPayload, data)
        if payload is None:
            return
        chat_id = canonical_chat_id(payload.chatId)
        if chat_id is None:
            return

        user_id = self.rooms.leave(chat_id, connection)
        if user_id is not None:
            await self.push.to_all("chat-active", {"chatId": chat_id, "userId": user_id, "active": False})

    async def _on_send_message(self, connection: Connection, data: Any) -> None:
        payload = self._parse(SendMessagePayload, data)
        if payload is None:
            return
        with session_scope(self.session_factory) as db:
            await self.pipeline.handle(db, payload)

    async def _on_typing(self, connection: Connection, data: Any) -> None:
        if not connection.is_connected:
            return
        payload = self._parse(TypingPayload, data)
        if payload is None:
            return
        chat_id = canonical_chat_id(payload.chatId)
        if chat_id is None:
            return
        await self.push.to_room(chat_id, "typing", {"chatId": chat_id}, exclude=connection)

    async def _on_mark_seen(self, connection: Connection, data: Any) -> None:
        payload = self._parse(MarkSeenPayload, data)
        if payload is None:
            return
        chat_id = canonical_chat_id(payload.chatId)
        if chat_id is None:
            return
        with session_scope(self.session_factory) as db:
            await self.receipts.mark_seen(db, chat_id, payload.userId)


def get_realtime_hub(app) -> RealtimeHub:
    """The hub started by the application lifespan; asking earlier is a configuration error"""
    hub = getattr(app.state, "realtime", None)
    if hub is None:
        raise RealtimeNotInitializedError("Realtime hub not initialized")
    return hub
