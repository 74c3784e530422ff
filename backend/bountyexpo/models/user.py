from sqlalchemy import Column, String, Boolean, DateTime, Text
from sqlalchemy.orm import relationship
from datetime import datetime

from bountyexpo.core.database import Base
from bountyexpo.core.types import GUID, generate_uuid


class User(Base):
    """Marketplace user - both posters and hunters share one account"""
    __tablename__ = "users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(100), unique=True, index=True, nullable=True)
    full_name = Column(String(255), nullable=True)
    hashed_password = Column(String(255), nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)

    # Profile fields
    avatar_url = Column(Text, nullable=True)
    about = Column(Text, nullable=True)
    phone = Column(String(20), nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    # Relationships
    bounties = relationship(
        "Bounty",
        back_populates="poster",
        foreign_keys="Bounty.user_id",
        cascade="all, delete-orphan",
    )
    wallet = relationship("Wallet", back_populates="user", uselist=False, cascade="all, delete-orphan")

    @property
    def display_name(self) -> str:
        return self.username or self.full_name or self.email.split("@")[0]

    def __repr__(self):
        return f"<User {self.email}>"
