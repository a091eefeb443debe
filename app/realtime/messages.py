"""
Message pipeline: persist a chat message, fan it out live, keep the chat
record current and hand off to notification aggregation.

Steps:
1. Persist (delivered only if the counterpart is viewing the chat right now)
2. receiveMessage to the room and to all of the sender's connections
3. Create the chat on first exchange, else move its last-message pointer
4. new-message hint to the counterpart's connections
5. Notification aggregation
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain.chats.chat_ids import derive_chat_id, split_chat_id
from ..domain.chats.repository import ChatRepository, MessageRepository
from ..domain.chats.schemas import MessageResponse
from ..models import Message
from .connections import ConnectionRegistry
from .notifications import NotificationAggregator
from .push import PushChannel
from .rooms import RoomMembershipTracker
from .schemas import SendMessagePayload

logger = logging.getLogger(__name__)


class MessagePipeline:
    def __init__(
        self,
        registry: ConnectionRegistry,
        rooms: RoomMembershipTracker,
        push: PushChannel,
        aggregator: NotificationAggregator,
    ):
        self.registry = registry
        self.rooms = rooms
        self.push = push
        self.aggregator = aggregator

    async def handle(self, db: Session, payload: SendMessagePayload) -> Optional[Message]:
        members = split_chat_id(payload.chatId)
        if members is None:
            logger.debug(f"Dropping message for malformed chat id {payload.chatId!r}")
            return None
        chat_id = derive_chat_id(*members)

        sender_id = payload.sender
        if sender_id not in members:
            logger.warning(f"⚠️ Dropping message: {sender_id} is not a member of {chat_id}")
            return None
        counterpart_id = members[1] if members[0] == sender_id else members[0]
        is_self_chat = counterpart_id == sender_id

        delivered = is_self_chat or self.rooms.is_active_viewer(chat_id, counterpart_id)

        try:
            message = MessageRepository.create_message(
                db,
                chat_id=chat_id,
                sender_id=sender_id,
                text=payload.text,
                reply_to_id=payload.replyTo,
                reply_text=payload.replyText,
                reply_sender_id=payload.replySender,
                appointment_id=payload.appointmentId,
                delivered=delivered,
                seen=False,
            )
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Message create failed in {chat_id}: {e}")
            return None

        await self._fan_out(message, payload.tempId)

        try:
            ChatRepository.record_message(db, chat_id, message)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Chat update failed for {chat_id}: {e}")
            return message

        if is_self_chat:
            return message

        if self.registry.is_online(counterpart_id):
            await self.push.to_user(
                counterpart_id, "new-message", {"chatId": chat_id, "sender": sender_id}
            )

        await self.aggregator.on_message(db, message, counterpart_id)
        return message

    async def _fan_out(self, message: Message, temp_id) -> None:
        """receiveMessage to the room plus every connection of the sender, once each"""
        data = MessageResponse.from_model(message).model_dump(mode="json")
        data["tempId"] = temp_id

        targets = {}
        for connection_id in self.rooms.delivery_group(message.chat_id):
            connection = self.registry.get(connection_id)
            if connection is not None:
                targets[connection_id] = connection
        for connection in self.registry.connections_for(message.sender_id):
            targets.setdefault(connection.connection_id, connection)

        await self.push.to_connections(targets.values(), "receiveMessage", data)
