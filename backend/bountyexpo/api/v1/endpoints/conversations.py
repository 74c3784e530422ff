"""
Conversation Endpoints - poster/hunter messaging

Endpoints:
- GET /conversations - My conversations with unread counts and typing flags
- POST /conversations - Start (or reuse) a conversation
- GET /conversations/{id}/messages - Message page, oldest first
- POST /conversations/{id}/messages - Send a message
- POST /conversations/{id}/read - Mark as read
- POST /conversations/{id}/typing - Typing indicator
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime
from typing import Optional

from bountyexpo.core.database import get_db
from bountyexpo.modules.auth.dependencies import get_current_user
from bountyexpo.models.user import User
from bountyexpo.services.message_service import message_service
from bountyexpo.schemas.conversation import (
    ConversationCreate,
    ConversationListResponse,
    ConversationResponse,
    MessageCreate,
    MessageListResponse,
    MessageResponse,
    TypingRequest,
)

router = APIRouter(prefix="/conversations", tags=["Conversations"])


@router.get("", response_model=ConversationListResponse)
async def list_conversations(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    conversations = await message_service.list_conversations(db, current_user.id)
    return ConversationListResponse(
        conversations=[ConversationResponse(**c) for c in conversations],
        total=len(conversations),
    )


@router.post("", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    data: ConversationCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Start a conversation

    A 1:1 conversation with the same person about the same bounty is reused;
    the response then has existing=true.
    """
    conversation, existing = await message_service.create_conversation(
        db,
        creator_id=current_user.id,
        participant_ids=data.participant_ids,
        name=data.name,
        avatar=data.avatar,
        bounty_id=data.bounty_id,
        is_group=data.is_group,
    )
    _, participant = await message_service.get_conversation(db, current_user.id, conversation.id)
    view = await message_service.conversation_view(db, conversation, participant, existing=existing)
    return ConversationResponse(**view)


@router.get("/{conversation_id}/messages", response_model=MessageListResponse)
async def get_messages(
    conversation_id: str,
    before: Optional[datetime] = None,
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    messages, has_more = await message_service.get_messages(
        db, current_user.id, conversation_id, before=before, limit=limit
    )
    return MessageListResponse(
        messages=[MessageResponse.model_validate(m) for m in messages],
        has_more=has_more,
    )


@router.post(
    "/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    conversation_id: str,
    data: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    message = await message_service.send_message(db, current_user.id, conversation_id, data.content)
    return MessageResponse.model_validate(message)


@router.post("/{conversation_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_read(
    conversation_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await message_service.mark_read(db, current_user.id, conversation_id)


@router.post("/{conversation_id}/typing", status_code=status.HTTP_204_NO_CONTENT)
async def set_typing(
    conversation_id: str,
    data: TypingRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await message_service.set_typing(db, current_user.id, conversation_id, data.is_typing)
