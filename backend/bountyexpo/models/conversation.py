from sqlalchemy import (
    Column, String, Boolean, DateTime, Text, ForeignKey, Index, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime

from bountyexpo.core.database import Base
from bountyexpo.core.types import GUID, generate_uuid


class Conversation(Base):
    """Chat thread metadata"""
    __tablename__ = "conversations"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    bounty_id = Column(GUID, ForeignKey("bounties.id", ondelete="SET NULL"), nullable=True)
    is_group = Column(Boolean, default=False, nullable=False)
    name = Column(String(255), nullable=False)
    avatar = Column(Text, nullable=True)

    # Preview of the latest message
    last_message = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    participants = relationship(
        "ConversationParticipant",
        back_populates="conversation",
        cascade="all, delete-orphan",
    )
    messages = relationship("Message", back_populates="conversation", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Conversation {self.name!r}>"


class ConversationParticipant(Base):
    """Membership of a user in a conversation, with read marker"""
    __tablename__ = "conversation_participants"

    __table_args__ = (
        UniqueConstraint('conversation_id', 'user_id', name='uq_conversation_participants_user'),
        Index('ix_conversation_participants_user', 'user_id'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    conversation_id = Column(GUID, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    last_read_at = Column(DateTime, nullable=True)
    joined_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    conversation = relationship("Conversation", back_populates="participants")
    user = relationship("User")


class Message(Base):
    """A single chat message"""
    __tablename__ = "messages"

    __table_args__ = (
        Index('ix_messages_conversation_created', 'conversation_id', 'created_at'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    conversation_id = Column(GUID, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    conversation = relationship("Conversation", back_populates="messages")
    sender = relationship("User")

    def __repr__(self):
        return f"<Message {self.sender_id} in {self.conversation_id}>"
