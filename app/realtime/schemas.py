"""Websocket frame and event payload schemas"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class InboundFrame(BaseModel):
    """Client → Server envelope"""

    event: str = Field(..., min_length=1)
    data: Any = None


class EventPayload(BaseModel):
    # Clients send numeric IDs too; everything is keyed by string IDs
    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")


class JoinChatPayload(EventPayload):
    chatId: str = Field(..., min_length=1)
    userId: str = Field(..., min_length=1)


class LeaveChatPayload(EventPayload):
    chatId: str = Field(..., min_length=1)


class TypingPayload(EventPayload):
    chatId: str = Field(..., min_length=1)


class MarkSeenPayload(EventPayload):
    chatId: str = Field(..., min_length=1)
    userId: str = Field(..., min_length=1)


class SendMessagePayload(EventPayload):
    chatId: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)
    sender: str = Field(..., min_length=1)
    tempId: Any = None
    appointmentId: Optional[str] = None
    replyTo: Optional[int] = None
    replyText: Optional[str] = None
    replySender: Optional[str] = None


class PresenceSnapshot(BaseModel):
    """Server → Client presence payload"""

    onlineUsers: list[str]
    lastSeenMap: dict[str, str]
