"""Notification router - FastAPI endpoints for the notification inbox"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ...auth import get_current_user_id
from ...database import get_db
from ..chats.schemas import ActionResponse
from .repository import NotificationRepository
from .schemas import NotificationResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=list[NotificationResponse])
async def get_notifications(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """All my notifications, newest first"""
    notifications = NotificationRepository.get_notifications(db, user_id)
    return [NotificationResponse.from_model(n) for n in notifications]


@router.patch("/read-all", response_model=ActionResponse)
async def mark_all_read(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    updated = NotificationRepository.mark_all_read(db, user_id)
    logger.info(f"✅ Marked {updated} notification(s) read for {user_id}")
    return ActionResponse()


@router.patch("/{notification_id}/read", response_model=ActionResponse)
async def mark_read(
    notification_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    if not NotificationRepository.mark_read(db, notification_id, user_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return ActionResponse()


@router.delete("/clear", response_model=ActionResponse)
async def clear_notifications(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    deleted = NotificationRepository.delete_all(db, user_id)
    logger.info(f"🗑️ Cleared {deleted} notification(s) for {user_id}")
    return ActionResponse()
