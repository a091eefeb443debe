"""Chat router - FastAPI endpoints for chats and message history"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user_id
from ...database import get_db
from .schemas import ActionResponse, ChatResponse, MessageResponse
from .service import ChatService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chats", tags=["Chats"])
messages_router = APIRouter(prefix="/messages", tags=["Chats"])


def get_chat_service(db: Session = Depends(get_db)) -> ChatService:
    """Dependency injection for ChatService"""
    return ChatService(db)


@router.get("", response_model=list[ChatResponse])
async def get_chats(
    user_id: str = Depends(get_current_user_id),
    service: ChatService = Depends(get_chat_service),
):
    """My chats, most recently active first"""
    return [ChatResponse.for_viewer(chat, user_id) for chat in service.get_chats(user_id)]


@router.get("/unread-counts", response_model=dict[str, int])
async def get_unread_counts(
    user_id: str = Depends(get_current_user_id),
    service: ChatService = Depends(get_chat_service),
):
    """Unread message count per chat, from my unread message notifications"""
    return service.get_unread_counts(user_id)


@router.post("/clear/{chat_id}", response_model=ActionResponse)
async def clear_chat(
    chat_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ChatService = Depends(get_chat_service),
):
    """Clear the chat for me only; the other member keeps the history"""
    service.clear_chat(chat_id, user_id)
    return ActionResponse()


@router.delete("/{chat_id}", response_model=ActionResponse)
async def delete_chat(
    chat_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ChatService = Depends(get_chat_service),
):
    service.delete_chat(chat_id, user_id)
    return ActionResponse()


@messages_router.get("/{chat_id}", response_model=list[MessageResponse])
async def get_messages(
    chat_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ChatService = Depends(get_chat_service),
):
    """Chat history after my clear point, oldest first; unknown chats are empty"""
    return [MessageResponse.from_model(m) for m in service.get_history(chat_id, user_id)]
