import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship

from .database import Base


def generate_public_id():
    """Generate a unique public ID for users"""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp with microseconds (stored as-is by every backend)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class NotificationType:
    MESSAGE = "message"
    APPOINTMENT = "appointment"
    JOB = "job"
    ACCOUNT = "account"
    PAYMENT = "payment"


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, index=True, default=generate_public_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=True)
    profile_image = Column(String(500), nullable=True)  # Object storage key
    role = Column(String(20), default="user", nullable=False)  # user, admin
    is_blocked = Column(Boolean, default=False, nullable=False)
    last_seen = Column(DateTime, nullable=True)  # Written when the last connection closes
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Chat(Base):
    """One-to-one conversation; chat_id is the canonical form of the member pair"""

    __tablename__ = "chats"

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(String(80), unique=True, index=True, nullable=False)
    member_a_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    member_b_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    last_message_id = Column(Integer, ForeignKey("messages.id", ondelete="SET NULL"), nullable=True)
    # {user_id: iso timestamp}; messages at or before the cutoff are hidden from that user
    cleared_at = Column(JSON, default=dict, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    member_a = relationship("User", foreign_keys=[member_a_id])
    member_b = relationship("User", foreign_keys=[member_b_id])
    last_message = relationship("Message", foreign_keys=[last_message_id])

    @property
    def members(self) -> list[str]:
        return [self.member_a_id, self.member_b_id]

    def other_member(self, user_id: str):
        """Return the member that is not ``user_id`` (None when absent or self-chat)"""
        if user_id == self.member_a_id:
            other = self.member_b_id
        elif user_id == self.member_b_id:
            other = self.member_a_id
        else:
            return None
        return other if other != user_id else None

    def cleared_at_for(self, user_id: str):
        value = (self.cleared_at or {}).get(user_id)
        if not value:
            return None
        return datetime.fromisoformat(value)


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (Index("ix_messages_chat_seen_sender", "chat_id", "seen", "sender_id"),)

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(String(80), nullable=False, index=True)
    sender_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    text = Column(Text, nullable=False)

    # Reply snapshot; reply_to_id is a weak pointer and may dangle
    reply_to_id = Column(Integer, nullable=True)
    reply_text = Column(Text, nullable=True)
    reply_sender_id = Column(String(36), nullable=True)

    appointment_id = Column(String(36), nullable=True)

    # Only ever flipped false -> true
    delivered = Column(Boolean, default=False, nullable=False)
    seen = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        # At most one unread message notification per (recipient, chat, sender)
        Index(
            "uq_notifications_unread_message",
            "user_id",
            "chat_id",
            "sender_id",
            unique=True,
            postgresql_where=text("is_read = false AND type = 'message'"),
            sqlite_where=text("is_read = 0 AND type = 'message'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(30), nullable=False, default=NotificationType.MESSAGE)
    is_read = Column(Boolean, default=False, nullable=False)

    # Message notification meta
    chat_id = Column(String(80), nullable=True)
    sender_id = Column(String(36), nullable=True)
    meta_count = Column(Integer, default=1, nullable=False)
    appointment_id = Column(String(36), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
