"""Notification domain schemas - Pydantic models for notifications"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ...models import Notification


class NotificationMeta(BaseModel):
    chatId: Optional[str] = None
    sender: Optional[str] = None
    count: int = 1
    appointmentId: Optional[str] = None


class NotificationResponse(BaseModel):
    """Schema for a notification (REST list and new-notification pushes)"""

    id: int
    user: str
    title: str
    message: str
    type: str
    isRead: bool
    meta: NotificationMeta
    createdAt: datetime
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            id=notification.id,
            user=notification.user_id,
            title=notification.title,
            message=notification.message,
            type=notification.type,
            isRead=notification.is_read,
            meta=NotificationMeta(
                chatId=notification.chat_id,
                sender=notification.sender_id,
                count=notification.meta_count or 1,
                appointmentId=notification.appointment_id,
            ),
            createdAt=notification.created_at,
            updatedAt=notification.updated_at,
        )
