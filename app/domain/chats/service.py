"""Chat service - Business logic for the chat list, history and chat housekeeping"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Chat, Message, utcnow
from ..notifications.repository import NotificationRepository
from .chat_ids import canonical_chat_id
from .repository import ChatRepository, MessageRepository

logger = logging.getLogger(__name__)


class ChatService:
    """Service layer for chat business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ChatRepository()
        self.messages = MessageRepository()

    def get_chats(self, user_id: str) -> list[Chat]:
        return self.repo.get_chats_for_user(self.db, user_id)

    def get_member_chat(self, chat_id: str, user_id: str) -> Chat:
        """Chat the user belongs to; 404 when unknown, 403 for outsiders"""
        chat = self.repo.get_by_chat_id(self.db, canonical_chat_id(chat_id) or chat_id)
        if not chat:
            raise HTTPException(status_code=404, detail="Chat not found")
        if user_id not in chat.members:
            logger.warning(f"⚠️ User {user_id} is not a member of chat {chat.chat_id}")
            raise HTTPException(status_code=403, detail="Not authorized")
        return chat

    def clear_chat(self, chat_id: str, user_id: str) -> Chat:
        """Hide the current history from this user only"""
        chat = self.get_member_chat(chat_id, user_id)
        chat = self.repo.set_cleared_at(self.db, chat, user_id, utcnow())
        logger.info(f"🧹 User {user_id} cleared chat {chat.chat_id}")
        return chat

    def delete_chat(self, chat_id: str, user_id: str) -> int:
        """Remove the chat and its messages for both members"""
        chat = self.get_member_chat(chat_id, user_id)
        deleted = self.repo.delete_chat(self.db, chat)
        logger.info(f"🗑️ User {user_id} deleted chat {chat_id} ({deleted} messages)")
        return deleted

    def get_history(self, chat_id: str, user_id: str) -> list[Message]:
        """Messages newer than the user's clear point, oldest first"""
        chat = self.repo.get_by_chat_id(self.db, canonical_chat_id(chat_id) or chat_id)
        if not chat:
            return []
        if user_id not in chat.members:
            raise HTTPException(status_code=403, detail="Not authorized")
        return self.messages.get_messages(self.db, chat.chat_id, after=chat.cleared_at_for(user_id))

    def get_unread_counts(self, user_id: str) -> dict[str, int]:
        return NotificationRepository.get_unread_counts(self.db, user_id)
