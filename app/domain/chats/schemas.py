"""Chat domain schemas - Pydantic models for chats and messages"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ...models import Chat, Message, User


class MessageResponse(BaseModel):
    """Schema for a chat message (REST history and receiveMessage pushes)"""

    id: int
    chatId: str
    sender: str
    text: str
    replyTo: Optional[int] = None
    replyText: Optional[str] = None
    replySender: Optional[str] = None
    appointmentId: Optional[str] = None
    delivered: bool
    seen: bool
    createdAt: datetime
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, message: Message) -> "MessageResponse":
        return cls(
            id=message.id,
            chatId=message.chat_id,
            sender=message.sender_id,
            text=message.text,
            replyTo=message.reply_to_id,
            replyText=message.reply_text,
            replySender=message.reply_sender_id,
            appointmentId=message.appointment_id,
            delivered=message.delivered,
            seen=message.seen,
            createdAt=message.created_at,
            updatedAt=message.updated_at,
        )


class MemberSummary(BaseModel):
    id: str
    name: Optional[str] = None
    profileImage: Optional[str] = None
    lastSeen: Optional[datetime] = None

    @classmethod
    def from_model(cls, user: Optional[User], user_id: str) -> "MemberSummary":
        if user is None:
            return cls(id=user_id)
        return cls(id=user.id, name=user.name, profileImage=user.profile_image, lastSeen=user.last_seen)


class LastMessagePreview(BaseModel):
    id: int
    text: str
    sender: str
    createdAt: datetime


class ChatResponse(BaseModel):
    """Schema for an entry of the chat list"""

    chatId: str
    members: list[MemberSummary]
    lastMessage: Optional[LastMessagePreview] = None
    updatedAt: datetime

    @classmethod
    def for_viewer(cls, chat: Chat, viewer_id: str) -> "ChatResponse":
        """Build the list entry as ``viewer_id`` sees it (cleared history hidden)"""
        preview = None
        last = chat.last_message
        if last is not None:
            cleared_at = chat.cleared_at_for(viewer_id)
            if cleared_at is None or last.created_at > cleared_at:
                preview = LastMessagePreview(
                    id=last.id, text=last.text, sender=last.sender_id, createdAt=last.created_at
                )

        members = [MemberSummary.from_model(chat.member_a, chat.member_a_id)]
        if chat.member_b_id != chat.member_a_id:
            members.append(MemberSummary.from_model(chat.member_b, chat.member_b_id))

        return cls(chatId=chat.chat_id, members=members, lastMessage=preview, updatedAt=chat.updated_at)


class ActionResponse(BaseModel):
    success: bool = True
