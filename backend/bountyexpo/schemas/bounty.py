"""
Bounty Schemas - Request/Response models for bounties, the feed and applications
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from enum import Enum


# ============== Enums ==============

class BountyStatusEnum(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class WorkTypeEnum(str, Enum):
    ONLINE = "online"
    IN_PERSON = "in_person"


class RequestStatusEnum(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class BountySortField(str, Enum):
    CREATED_AT = "created_at"
    AMOUNT = "amount"
    DEADLINE = "deadline"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


# ============== Bounty Schemas ==============

class BountyCreate(BaseModel):
    """Schema for posting a new bounty"""
    title: str = Field(..., max_length=200, description="Short task title")
    description: Optional[str] = Field(None, max_length=5000)
    amount: int = Field(default=0, ge=0, description="Reward in cents (2500 = $25)")
    is_for_honor: bool = Field(default=False, description="Zero-reward bounty")
    location: Optional[str] = Field(None, max_length=500, description="Free text or 'lat,lng'")
    work_type: WorkTypeEnum = WorkTypeEnum.ONLINE
    timeline: Optional[str] = Field(None, max_length=255)
    skills_required: Optional[List[str]] = None
    is_time_sensitive: bool = False
    deadline: Optional[datetime] = None


class BountyUpdate(BaseModel):
    """Schema for the edit-posting dialog - every field optional"""
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    amount: Optional[int] = Field(None, ge=0)
    is_for_honor: Optional[bool] = None
    location: Optional[str] = Field(None, max_length=500)
    work_type: Optional[WorkTypeEnum] = None
    timeline: Optional[str] = Field(None, max_length=255)
    skills_required: Optional[List[str]] = None
    is_time_sensitive: Optional[bool] = None
    deadline: Optional[datetime] = None


class BountyResponse(BaseModel):
    """Schema for bounty response"""
    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    amount: int  # in cents
    amount_usd: float
    is_for_honor: bool
    location: Optional[str] = None
    work_type: WorkTypeEnum
    status: BountyStatusEnum
    is_archived: bool
    accepted_by: Optional[str] = None
    timeline: Optional[str] = None
    skills_required: Optional[List[str]] = None
    is_time_sensitive: bool
    deadline: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BountyListResponse(BaseModel):
    """Paginated list of bounties"""
    bounties: List[BountyResponse]
    total: int
    page: int
    page_size: int


# ============== Feed Schemas ==============

class FeedItemResponse(BaseModel):
    bounty: BountyResponse
    distance: Optional[float] = None  # miles, None = "Location TBD"


class FeedResponse(BaseModel):
    items: List[FeedItemResponse]
    category: str
    total: int
    distance_filter: Optional[int] = None
    distance_options: List[int]


class LocationGroupResponse(BaseModel):
    location: str
    count: int
    bounties: List[BountyResponse]


class MapResponse(BaseModel):
    """Bounties grouped by location (map placeholder view)"""
    groups: List[LocationGroupResponse]
    total_locations: int


# ============== Application Schemas ==============

class BountyRequestCreate(BaseModel):
    message: Optional[str] = Field(None, max_length=1000)


class BountyRequestResponse(BaseModel):
    id: str
    bounty_id: str
    hunter_id: str
    status: RequestStatusEnum
    message: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BountyRequestListResponse(BaseModel):
    requests: List[BountyRequestResponse]
    total: int


class AcceptRequestResponse(BaseModel):
    """Result of accepting an application"""
    request: BountyRequestResponse
    bounty: BountyResponse
    escrow_transaction_id: Optional[str] = None
    rejected_request_ids: List[str] = []


# ============== Escrow ==============

class EscrowStatusEnum(str, Enum):
    NONE = "none"
    HELD = "held"
    RELEASED = "released"
    REFUNDED = "refunded"


class EscrowStatusResponse(BaseModel):
    bounty_id: str
    status: EscrowStatusEnum
    amount: int
    amount_usd: float
