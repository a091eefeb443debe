"""Chat repository - Database operations for chats and messages"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ...models import Chat, Message, Notification, NotificationType, utcnow
from .chat_ids import split_chat_id

logger = logging.getLogger(__name__)


class ChatRepository:
    """Repository for chat database operations"""

    @staticmethod
    def get_by_chat_id(db: Session, chat_id: str) -> Optional[Chat]:
        """Get a chat by its canonical ID"""
        return db.query(Chat).filter(Chat.chat_id == chat_id).first()

    @staticmethod
    def get_chats_for_user(db: Session, user_id: str) -> list[Chat]:
        """All chats a user belongs to, most recently active first"""
        return (
            db.query(Chat)
            .options(
                joinedload(Chat.member_a),
                joinedload(Chat.member_b),
                joinedload(Chat.last_message),
            )
            .filter(or_(Chat.member_a_id == user_id, Chat.member_b_id == user_id))
            .order_by(Chat.updated_at.desc())
            .all()
        )

    @staticmethod
    def record_message(db: Session, chat_id: str, message: Message) -> Chat:
        """
        Point the chat at ``message``, creating the chat on first exchange.
        A concurrent creator wins the unique constraint; we then update its row.
        """
        chat = ChatRepository.get_by_chat_id(db, chat_id)
        if chat is None:
            member_a, member_b = split_chat_id(chat_id)
            chat = Chat(
                chat_id=chat_id,
                member_a_id=member_a,
                member_b_id=member_b,
                last_message_id=message.id,
                cleared_at={},
                updated_at=utcnow(),
            )
            db.add(chat)
            try:
                db.commit()
                db.refresh(chat)
                logger.info(f"💬 Chat {chat_id} created")
                return chat
            except IntegrityError:
                db.rollback()
                chat = ChatRepository.get_by_chat_id(db, chat_id)
                if chat is None:
                    raise

        chat.last_message_id = message.id
        chat.updated_at = utcnow()
        db.commit()
        db.refresh(chat)
        return chat

    @staticmethod
    def set_cleared_at(db: Session, chat: Chat, user_id: str, when: datetime) -> Chat:
        """Hide everything up to ``when`` from ``user_id`` without deleting rows"""
        cleared = dict(chat.cleared_at or {})
        cleared[user_id] = when.isoformat()
        chat.cleared_at = cleared
        db.commit()
        db.refresh(chat)
        return chat

    @staticmethod
    def delete_chat(db: Session, chat: Chat) -> int:
        """Delete a chat and every message in it; returns deleted message count

        Unread message notifications for the chat are marked read in the same
        transaction so unread counts stop listing it.
        """
        chat_id = chat.chat_id
        db.delete(chat)
        db.flush()
        deleted = (
            db.query(Message).filter(Message.chat_id == chat_id).delete(synchronize_session=False)
        )
        db.query(Notification).filter(
            Notification.chat_id == chat_id,
            Notification.type == NotificationType.MESSAGE,
            Notification.is_read.is_(False),
        ).update({Notification.is_read: True}, synchronize_session=False)
        db.commit()
        return deleted


class MessageRepository:
    """Repository for message database operations"""

    @staticmethod
    def create_message(db: Session, **message_data) -> Message:
        """Create a new message"""
        message = Message(**message_data)
        db.add(message)
        db.commit()
        db.refresh(message)
        return message

    @staticmethod
    def get_messages(db: Session, chat_id: str, after: Optional[datetime] = None) -> list[Message]:
        """Chat history oldest first, optionally only messages after a cutoff"""
        query = db.query(Message).filter(Message.chat_id == chat_id)
        if after is not None:
            query = query.filter(Message.created_at > after)
        return query.order_by(Message.created_at.asc(), Message.id.asc()).all()

    @staticmethod
    def mark_delivered(db: Session, chat_id: str, recipient_id: str) -> int:
        """Flip delivered on everything the other party sent into this chat"""
        updated = (
            db.query(Message)
            .filter(
                Message.chat_id == chat_id,
                Message.delivered.is_(False),
                Message.sender_id != recipient_id,
            )
            .update({Message.delivered: True}, synchronize_session=False)
        )
        db.commit()
        return updated

    @staticmethod
    def mark_seen(db: Session, chat_id: str, viewer_id: str) -> int:
        """Flip seen on everything the other party sent into this chat"""
        updated = (
            db.query(Message)
            .filter(
                Message.chat_id == chat_id,
                Message.seen.is_(False),
                Message.sender_id != viewer_id,
            )
            .update({Message.seen: True, Message.delivered: True}, synchronize_session=False)
        )
        db.commit()
        return updated
