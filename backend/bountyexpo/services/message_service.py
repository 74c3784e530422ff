"""
Message Service - conversations between posters and hunters

Stores threads, their participants and messages, tracks per-participant read
markers for unread counts, and keeps a short-lived in-process registry of who
is typing.
"""

import time
from datetime import datetime
from typing import Optional, List, Dict, Tuple, Any, Iterable

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_

from bountyexpo.core.config import settings
from bountyexpo.core.exceptions import (
    AuthorizationError,
    ConversationNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from bountyexpo.core.logging_config import logger
from bountyexpo.models.conversation import Conversation, ConversationParticipant, Message
from bountyexpo.models.user import User


class TypingRegistry:
    """
    Who is typing where, forgotten after `ttl` seconds.

    Process-local: each worker only sees typing updates it received.
    """

    def __init__(self, ttl: float, clock=time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[Tuple[str, str], float] = {}

    def set(self, conversation_id: str, user_id: str, is_typing: bool) -> None:
        key = (str(conversation_id), str(user_id))
        if is_typing:
            self._entries[key] = self._clock() + self.ttl
        else:
            self._entries.pop(key, None)

    def typing_users(self, conversation_id: str) -> List[str]:
        now = self._clock()
        expired = [key for key, expires in self._entries.items() if expires <= now]
        for key in expired:
            del self._entries[key]
        return [user for (conv, user) in self._entries if conv == str(conversation_id)]

    def is_anyone_else_typing(self, conversation_id: str, user_id: str) -> bool:
        return any(user != str(user_id) for user in self.typing_users(conversation_id))


class MessageService:
    """Service for conversations and chat messages"""

    def __init__(self, typing_ttl: float = settings.TYPING_INDICATOR_TTL_SECONDS):
        self.typing = TypingRegistry(typing_ttl)

    # ==================== CONVERSATIONS ====================

    async def _participant(
        self,
        db: AsyncSession,
        conversation_id: str,
        user_id: str,
    ) -> ConversationParticipant:
        """Membership row, or raise if the conversation is missing or foreign"""
        conversation = await db.get(Conversation, str(conversation_id))
        if not conversation:
            raise ConversationNotFoundError(str(conversation_id))

        result = await db.execute(
            select(ConversationParticipant).where(
                and_(
                    ConversationParticipant.conversation_id == str(conversation_id),
                    ConversationParticipant.user_id == str(user_id),
                )
            )
        )
        participant = result.scalar_one_or_none()
        if not participant:
            raise AuthorizationError("Not a participant in this conversation")
        return participant

    async def _participant_ids(self, db: AsyncSession, conversation_id: str) -> List[str]:
        result = await db.execute(
            select(ConversationParticipant.user_id)
            .where(ConversationParticipant.conversation_id == str(conversation_id))
            .order_by(ConversationParticipant.joined_at.asc())
        )
        return [str(user_id) for user_id in result.scalars().all()]

    async def _find_direct(
        self,
        db: AsyncSession,
        user_a: str,
        user_b: str,
        bounty_id: Optional[str],
    ) -> Optional[Conversation]:
        """Existing 1:1 thread between two users about the same bounty"""
        query = (
            select(Conversation)
            .join(ConversationParticipant, ConversationParticipant.conversation_id == Conversation.id)
            .where(
                and_(
                    Conversation.is_group.is_(False),
                    ConversationParticipant.user_id.in_([user_a, user_b]),
                    (Conversation.bounty_id == bounty_id) if bounty_id else Conversation.bounty_id.is_(None),
                )
            )
            .group_by(Conversation.id)
            .having(func.count(ConversationParticipant.id) == 2)
        )
        result = await db.execute(query)
        for conversation in result.scalars().all():
            members = await self._participant_ids(db, conversation.id)
            if sorted(members) == sorted([user_a, user_b]):
                return conversation
        return None

    async def create_conversation(
        self,
        db: AsyncSession,
        creator_id: str,
        participant_ids: Iterable[str],
        name: Optional[str] = None,
        avatar: Optional[str] = None,
        bounty_id: Optional[str] = None,
        is_group: bool = False,
    ) -> Tuple[Conversation, bool]:
        """
        Start a conversation; the creator is always a participant.

        Returns:
            (conversation, existing) where existing is True when a matching
            1:1 thread was found instead of creating a new one
        """
        creator_id = str(creator_id)
        members = [creator_id]
        for user_id in participant_ids:
            if str(user_id) not in members:
                members.append(str(user_id))

        if len(members) < 2:
            raise ValidationError("A conversation needs at least one other participant", field="participant_ids")

        result = await db.execute(select(User).where(User.id.in_(members)))
        users = {user.id: user for user in result.scalars().all()}
        for user_id in members:
            if user_id not in users:
                raise UserNotFoundError(user_id)

        bounty_id = str(bounty_id) if bounty_id else None

        if not is_group and len(members) == 2:
            existing = await self._find_direct(db, members[0], members[1], bounty_id)
            if existing:
                return existing, True

        if not name:
            name = ", ".join(users[user_id].display_name for user_id in members[1:])

        now = datetime.utcnow()
        conversation = Conversation(
            bounty_id=bounty_id,
            is_group=is_group or len(members) > 2,
            name=name,
            avatar=avatar,
            created_at=now,
            updated_at=now,
        )
        db.add(conversation)
        await db.flush()

        for user_id in members:
            db.add(ConversationParticipant(
                conversation_id=conversation.id,
                user_id=user_id,
                joined_at=now,
            ))

        await db.commit()
        await db.refresh(conversation)

        logger.info(f"Created conversation {conversation.id} with {len(members)} participants")
        return conversation, False

    async def unread_count(self, db: AsyncSession, participant: ConversationParticipant) -> int:
        """Messages from others after the participant's read marker"""
        conditions = [
            Message.conversation_id == participant.conversation_id,
            Message.sender_id != participant.user_id,
        ]
        if participant.last_read_at is not None:
            conditions.append(Message.created_at > participant.last_read_at)

        result = await db.execute(select(func.count(Message.id)).where(and_(*conditions)))
        return result.scalar() or 0

    async def conversation_view(
        self,
        db: AsyncSession,
        conversation: Conversation,
        participant: ConversationParticipant,
        existing: bool = False,
    ) -> Dict[str, Any]:
        """Conversation as seen by one participant"""
        participant_ids = await self._participant_ids(db, conversation.id)
        name = conversation.name

        # 1:1 threads show the other person's name to each side
        if not conversation.is_group and len(participant_ids) == 2:
            other_id = next(uid for uid in participant_ids if uid != participant.user_id)
            other = await db.get(User, other_id)
            if other:
                name = other.display_name

        return {
            "id": conversation.id,
            "name": name,
            "avatar": conversation.avatar,
            "is_group": conversation.is_group,
            "bounty_id": conversation.bounty_id,
            "last_message": conversation.last_message,
            "unread_count": await self.unread_count(db, participant),
            "is_typing": self.typing.is_anyone_else_typing(conversation.id, participant.user_id),
            "participant_ids": participant_ids,
            "updated_at": conversation.updated_at,
            "existing": existing,
        }

    async def list_conversations(self, db: AsyncSession, user_id: str) -> List[Dict[str, Any]]:
        """The user's conversations, most recent activity first"""
        result = await db.execute(
            select(Conversation, ConversationParticipant)
            .join(ConversationParticipant, ConversationParticipant.conversation_id == Conversation.id)
            .where(ConversationParticipant.user_id == str(user_id))
            .order_by(Conversation.updated_at.desc())
        )
        return [
            await self.conversation_view(db, conversation, participant)
            for conversation, participant in result.all()
        ]

    async def get_conversation(
        self,
        db: AsyncSession,
        user_id: str,
        conversation_id: str,
    ) -> Tuple[Conversation, ConversationParticipant]:
        participant = await self._participant(db, conversation_id, user_id)
        conversation = await db.get(Conversation, str(conversation_id))
        return conversation, participant

    # ==================== MESSAGES ====================

    async def send_message(
        self,
        db: AsyncSession,
        user_id: str,
        conversation_id: str,
        content: str,
    ) -> Message:
        """Post a message; the sender's own read marker moves past it"""
        participant = await self._participant(db, conversation_id, user_id)

        content = (content or "").strip()
        if not content:
            raise ValidationError("Message cannot be empty", field="content")
        if len(content) > settings.MESSAGE_MAX_LENGTH:
            raise ValidationError(
                f"Message exceeds {settings.MESSAGE_MAX_LENGTH} characters",
                field="content",
            )

        now = datetime.utcnow()
        message = Message(
            conversation_id=str(conversation_id),
            sender_id=str(user_id),
            content=content,
            created_at=now,
        )
        db.add(message)

        conversation = await db.get(Conversation, str(conversation_id))
        conversation.last_message = content
        conversation.updated_at = now
        participant.last_read_at = now

        await db.commit()
        await db.refresh(message)

        self.typing.set(conversation_id, user_id, False)
        logger.debug(f"Message {message.id} sent in conversation {conversation_id}")
        return message

    async def get_messages(
        self,
        db: AsyncSession,
        user_id: str,
        conversation_id: str,
        before: Optional[datetime] = None,
        limit: int = 50,
    ) -> Tuple[List[Message], bool]:
        """
        Newest page of messages, returned oldest first.

        Returns:
            (messages, has_more) where has_more means older messages exist
        """
        await self._participant(db, conversation_id, user_id)

        conditions = [Message.conversation_id == str(conversation_id)]
        if before is not None:
            conditions.append(Message.created_at < before)

        result = await db.execute(
            select(Message)
            .where(and_(*conditions))
            .order_by(Message.created_at.desc())
            .limit(limit + 1)
        )
        messages = list(result.scalars().all())
        has_more = len(messages) > limit
        messages = messages[:limit]
        messages.reverse()
        return messages, has_more

    async def mark_read(self, db: AsyncSession, user_id: str, conversation_id: str) -> None:
        participant = await self._participant(db, conversation_id, user_id)
        participant.last_read_at = datetime.utcnow()
        await db.commit()

    async def set_typing(
        self,
        db: AsyncSession,
        user_id: str,
        conversation_id: str,
        is_typing: bool,
    ) -> None:
        await self._participant(db, conversation_id, user_id)
        self.typing.set(conversation_id, user_id, is_typing)


# Singleton instance
message_service = MessageService()
