"""
Notification aggregation for chat messages.

A recipient looking at the chat gets nothing. Otherwise unread messages from
one sender in one chat collapse into a single "N new messages" notification.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain.notifications.repository import NotificationRepository
from ..domain.notifications.schemas import NotificationResponse
from ..domain.users.repository import UserRepository
from ..models import Message, Notification
from .connections import ConnectionRegistry
from .push import PushChannel
from .rooms import RoomMembershipTracker

logger = logging.getLogger(__name__)


class NotificationAggregator:
    def __init__(self, registry: ConnectionRegistry, rooms: RoomMembershipTracker, push: PushChannel):
        self.registry = registry
        self.rooms = rooms
        self.push = push

    async def on_message(
        self, db: Session, message: Message, recipient_id: str
    ) -> Optional[Notification]:
        if self.rooms.is_active_viewer(message.chat_id, recipient_id):
            logger.debug(f"Recipient {recipient_id} is viewing {message.chat_id}, no notification")
            return None

        try:
            sender_name = UserRepository.get_display_name(db, message.sender_id)
            notification, created = NotificationRepository.upsert_message_notification(
                db,
                user_id=recipient_id,
                chat_id=message.chat_id,
                sender_id=message.sender_id,
                sender_name=sender_name,
                appointment_id=message.appointment_id,
            )
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Message notification failed for {recipient_id} in {message.chat_id}: {e}")
            return None

        if notification is None:
            return None

        logger.debug(
            f"{'Created' if created else 'Bumped'} message notification {notification.id} "
            f"(count={notification.meta_count}) for {recipient_id}"
        )

        if self.registry.is_online(recipient_id):
            await self.push.to_user(
                recipient_id,
                "new-notification",
                NotificationResponse.from_model(notification).model_dump(mode="json"),
            )
        return notification
