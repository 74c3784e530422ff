"""
User Service - accounts and profiles
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import datetime
from typing import Optional, Dict, Any

from bountyexpo.core.logging_config import logger
from bountyexpo.core.security import get_password_hash, verify_password
from bountyexpo.models.user import User


class UserService:
    """Service for user accounts"""

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def get_by_id(self, db: AsyncSession, user_id: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.id == str(user_id)))
        return result.scalar_one_or_none()

    async def username_taken(
        self,
        db: AsyncSession,
        username: str,
        exclude_id: Optional[str] = None,
    ) -> bool:
        query = select(User.id).where(User.username == username)
        if exclude_id:
            query = query.where(User.id != str(exclude_id))
        result = await db.execute(query)
        return result.first() is not None

    async def create_user(
        self,
        db: AsyncSession,
        email: str,
        password: str,
        username: Optional[str] = None,
        full_name: Optional[str] = None,
    ) -> User:
        user = User(
            email=email,
            username=username,
            full_name=full_name,
            hashed_password=get_password_hash(password),
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    async def authenticate(self, db: AsyncSession, email: str, password: str) -> Optional[User]:
        """The user for these credentials, or None. Active status is not checked here."""
        user = await self.get_by_email(db, email)
        if not user or not verify_password(password, user.hashed_password):
            return None
        return user

    async def record_login(self, db: AsyncSession, user: User) -> None:
        user.last_login = datetime.utcnow()
        await db.commit()

    async def update_profile(self, db: AsyncSession, user: User, changes: Dict[str, Any]) -> User:
        for key, value in changes.items():
            setattr(user, key, value)
        user.updated_at = datetime.utcnow()
        await db.commit()
        await db.refresh(user)

        logger.info(f"Profile updated for {user.id}: {sorted(changes)}")
        return user


# Singleton instance
user_service = UserService()
