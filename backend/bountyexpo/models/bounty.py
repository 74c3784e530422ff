from sqlalchemy import (
    Column, String, Boolean, DateTime, Integer, Text, ForeignKey, JSON,
    Enum as SQLEnum, Index, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from bountyexpo.core.database import Base
from bountyexpo.core.types import GUID, generate_uuid


class BountyStatus(str, enum.Enum):
    """Bounty lifecycle status"""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class WorkType(str, enum.Enum):
    """Where the work happens"""
    ONLINE = "online"
    IN_PERSON = "in_person"


class RequestStatus(str, enum.Enum):
    """Hunter application status"""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Bounty(Base):
    """
    A task posting with a reward amount (cents) or "for honor" status.

    Honor bounties always carry amount 0.
    """
    __tablename__ = "bounties"

    __table_args__ = (
        Index('ix_bounties_status', 'status'),
        Index('ix_bounties_user', 'user_id'),
        Index('ix_bounties_created_at', 'created_at'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)

    # Poster (owner)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    # Reward in cents (e.g., 2500 = $25.00)
    amount = Column(Integer, default=0, nullable=False)
    is_for_honor = Column(Boolean, default=False, nullable=False)

    # Free text location; may be "lat,lng"
    location = Column(String(500), nullable=True)
    work_type = Column(SQLEnum(WorkType), default=WorkType.ONLINE, nullable=False)

    status = Column(SQLEnum(BountyStatus), default=BountyStatus.OPEN, nullable=False)

    # Hunter assigned when a request is accepted
    accepted_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    timeline = Column(String(255), nullable=True)
    skills_required = Column(JSON, nullable=True)
    is_time_sensitive = Column(Boolean, default=False, nullable=False)
    deadline = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    poster = relationship("User", back_populates="bounties", foreign_keys=[user_id])
    hunter = relationship("User", foreign_keys=[accepted_by])
    requests = relationship("BountyRequest", back_populates="bounty", cascade="all, delete-orphan")

    @property
    def amount_usd(self) -> float:
        return self.amount / 100

    @property
    def is_archived(self) -> bool:
        return self.status == BountyStatus.ARCHIVED

    def __repr__(self):
        return f"<Bounty {self.title!r} {self.status.value if self.status else None}>"


class BountyRequest(Base):
    """A hunter's application to work on a bounty"""
    __tablename__ = "bounty_requests"

    __table_args__ = (
        UniqueConstraint('bounty_id', 'hunter_id', name='uq_bounty_requests_bounty_hunter'),
        Index('ix_bounty_requests_bounty', 'bounty_id'),
        Index('ix_bounty_requests_hunter', 'hunter_id'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    bounty_id = Column(GUID, ForeignKey("bounties.id", ondelete="CASCADE"), nullable=False)
    hunter_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    status = Column(SQLEnum(RequestStatus), default=RequestStatus.PENDING, nullable=False)
    message = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    bounty = relationship("Bounty", back_populates="requests")
    hunter = relationship("User")

    def __repr__(self):
        return f"<BountyRequest bounty={self.bounty_id} hunter={self.hunter_id} {self.status.value if self.status else None}>"
