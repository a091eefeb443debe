"""Delivered / seen receipts: batch flag flips and the sender's seen signal"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain.chats.repository import ChatRepository, MessageRepository
from ..domain.notifications.repository import NotificationRepository
from .connections import ConnectionRegistry
from .push import PushChannel

logger = logging.getLogger(__name__)


class SeenDeliveryTracker:
    def __init__(self, registry: ConnectionRegistry, push: PushChannel):
        self.registry = registry
        self.push = push

    async def mark_delivered(self, db: Session, chat_id: str, user_id: str) -> None:
        """``user_id`` opened the chat: the other party's messages reached them"""
        try:
            updated = MessageRepository.mark_delivered(db, chat_id, user_id)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Delivered update failed for {chat_id}: {e}")
        else:
            if updated:
                logger.debug(f"Marked {updated} message(s) delivered in {chat_id}")

        await self.push.to_room(chat_id, "deliveredUpdate", {"chatId": chat_id})

    async def mark_seen(self, db: Session, chat_id: str, user_id: str) -> Optional[str]:
        """
        ``user_id`` read the chat. Flips seen on the other party's messages,
        marks the matching message notifications read and tells the other
        member. Returns the other member's ID when the chat resolves.
        """
        try:
            MessageRepository.mark_seen(db, chat_id, user_id)
            NotificationRepository.mark_chat_read(db, user_id, chat_id)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Seen update failed for {chat_id}: {e}")

        try:
            chat = ChatRepository.get_by_chat_id(db, chat_id)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Chat lookup failed for {chat_id}: {e}")
            return None
        if chat is None:
            return None

        sender_id = chat.other_member(user_id)
        if not sender_id:
            return None

        if self.registry.is_online(sender_id):
            await self.push.to_user(sender_id, "seenUpdate", {"chatId": chat_id, "seenBy": user_id})
        return sender_id
