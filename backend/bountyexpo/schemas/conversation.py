"""
Messaging Schemas - conversations, messages, typing indicators
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class ConversationCreate(BaseModel):
    participant_ids: List[str] = Field(..., min_length=1, description="Other users in the thread")
    name: Optional[str] = Field(None, max_length=255)
    avatar: Optional[str] = None
    bounty_id: Optional[str] = None
    is_group: bool = False


class ConversationResponse(BaseModel):
    """Conversation view model as seen by one participant"""
    id: str
    name: str
    avatar: Optional[str] = None
    is_group: bool
    bounty_id: Optional[str] = None
    last_message: Optional[str] = None
    unread_count: int = 0
    is_typing: bool = False
    participant_ids: List[str] = []
    updated_at: datetime
    existing: bool = False


class ConversationListResponse(BaseModel):
    conversations: List[ConversationResponse]
    total: int


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1)


class MessageResponse(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    content: str
    created_at: datetime

    class Config:
        from_attributes = True


class MessageListResponse(BaseModel):
    messages: List[MessageResponse]
    has_more: bool


class TypingRequest(BaseModel):
    is_typing: bool
