"""User repository - Database operations the realtime layer needs on users"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import User

DEFAULT_DISPLAY_NAME = "Someone"


class UserRepository:
    """Repository for user database operations"""

    @staticmethod
    def get_user(db: Session, user_id: str) -> Optional[User]:
        """Get a user by ID"""
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_display_name(db: Session, user_id: str) -> str:
        """Name shown in notification titles; falls back to 'Someone'"""
        name = db.query(User.name).filter(User.id == user_id).scalar()
        return name or DEFAULT_DISPLAY_NAME

    @staticmethod
    def set_last_seen(db: Session, user_id: str, when: datetime) -> int:
        """Persist last-seen for a user who just went fully offline"""
        updated = (
            db.query(User)
            .filter(User.id == user_id)
            .update({User.last_seen: when}, synchronize_session=False)
        )
        db.commit()
        return updated
