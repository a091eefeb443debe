"""Notification repository - Database operations for notifications"""

import logging
from typing import Optional

from sqlalchemy import String, cast, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import Notification, NotificationType, utcnow

logger = logging.getLogger(__name__)

# Increment-or-insert attempts before giving up on a contended row
UPSERT_ATTEMPTS = 3


class NotificationRepository:
    """Repository for notification database operations"""

    @staticmethod
    def create_notification(db: Session, user_id: str, **notification_data) -> Notification:
        """Create a new notification"""
        notification = Notification(user_id=user_id, **notification_data)
        db.add(notification)
        db.commit()
        db.refresh(notification)
        return notification

    @staticmethod
    def _unread_message_filter(query, user_id: str, chat_id: str, sender_id: str):
        return query.filter(
            Notification.user_id == user_id,
            Notification.type == NotificationType.MESSAGE,
            Notification.is_read.is_(False),
            Notification.chat_id == chat_id,
            Notification.sender_id == sender_id,
        )

    @staticmethod
    def upsert_message_notification(
        db: Session,
        user_id: str,
        chat_id: str,
        sender_id: str,
        sender_name: str,
        appointment_id: Optional[str] = None,
    ) -> tuple[Optional[Notification], bool]:
        """
        Atomic find-and-increment of the unread message notification for
        (recipient, chat, sender). The count and display text are rewritten in
        one UPDATE; when no row matches a new one is inserted and the partial
        unique index turns a concurrent duplicate insert into a retry.

        Returns (notification, created).
        """
        for _ in range(UPSERT_ATTEMPTS):
            updated = NotificationRepository._unread_message_filter(
                db.query(Notification), user_id, chat_id, sender_id
            ).update(
                {
                    Notification.meta_count: Notification.meta_count + 1,
                    Notification.message: cast(Notification.meta_count + 1, String) + " new messages",
                    Notification.updated_at: utcnow(),
                },
                synchronize_session=False,
            )
            if updated:
                db.commit()
                notification = NotificationRepository._unread_message_filter(
                    db.query(Notification), user_id, chat_id, sender_id
                ).first()
                if notification is not None:
                    return notification, False
                # Read between our increment and this query; try again
                continue

            notification = Notification(
                user_id=user_id,
                title=f"New message from {sender_name}",
                message="1 new message",
                type=NotificationType.MESSAGE,
                chat_id=chat_id,
                sender_id=sender_id,
                appointment_id=appointment_id,
                meta_count=1,
            )
            db.add(notification)
            try:
                db.commit()
                db.refresh(notification)
                return notification, True
            except IntegrityError:
                db.rollback()
                logger.debug(
                    f"Concurrent message notification insert for user={user_id} chat={chat_id}, retrying"
                )

        logger.warning(f"⚠️ Gave up aggregating message notification for user={user_id} chat={chat_id}")
        return None, False

    @staticmethod
    def mark_chat_read(db: Session, user_id: str, chat_id: str) -> int:
        """Mark every unread message notification of a chat as read"""
        updated = (
            db.query(Notification)
            .filter(
                Notification.user_id == user_id,
                Notification.type == NotificationType.MESSAGE,
                Notification.chat_id == chat_id,
                Notification.is_read.is_(False),
            )
            .update({Notification.is_read: True}, synchronize_session=False)
        )
        db.commit()
        return updated

    @staticmethod
    def get_notifications(db: Session, user_id: str) -> list[Notification]:
        """All notifications for a user, newest first"""
        return (
            db.query(Notification)
            .filter(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .all()
        )

    @staticmethod
    def mark_all_read(db: Session, user_id: str) -> int:
        updated = (
            db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .update({Notification.is_read: True}, synchronize_session=False)
        )
        db.commit()
        return updated

    @staticmethod
    def mark_read(db: Session, notification_id: int, user_id: str) -> int:
        updated = (
            db.query(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .update({Notification.is_read: True}, synchronize_session=False)
        )
        db.commit()
        return updated

    @staticmethod
    def delete_all(db: Session, user_id: str) -> int:
        deleted = (
            db.query(Notification)
            .filter(Notification.user_id == user_id)
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted

    @staticmethod
    def get_unread_counts(db: Session, user_id: str) -> dict[str, int]:
        """Sum of unread message counts per chat"""
        rows = (
            db.query(Notification.chat_id, func.sum(Notification.meta_count))
            .filter(
                Notification.user_id == user_id,
                Notification.type == NotificationType.MESSAGE,
                Notification.is_read.is_(False),
            )
            .group_by(Notification.chat_id)
            .all()
        )
        return {chat_id: int(total or 0) for chat_id, total in rows}
