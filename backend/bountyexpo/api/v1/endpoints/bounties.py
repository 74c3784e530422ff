"""
Bounty API Endpoints

Endpoints:
- GET /bounties - List bounties (filters, sort, pagination)
- GET /bounties/feed - Browse feed with category chips and distance filter
- GET /bounties/map - Open bounties grouped by location
- GET /bounties/archived - Current user's archived postings
- POST /bounties - Post a bounty
- GET/PATCH/DELETE /bounties/{id}
- POST /bounties/{id}/archive, /bounties/{id}/complete
- GET /bounties/{id}/escrow - Escrow status for the bounty
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from bountyexpo.core.config import settings
from bountyexpo.core.database import get_db
from bountyexpo.core.logging_config import set_bounty_id
from bountyexpo.modules.auth.dependencies import get_current_user, get_optional_current_user
from bountyexpo.models.bounty import Bounty
from bountyexpo.models.user import User
from bountyexpo.services.bounty_service import bounty_service
from bountyexpo.services.request_service import request_service
from bountyexpo.services.wallet_service import wallet_service
from bountyexpo.services.feed import FeedCategory
from bountyexpo.schemas.bounty import (
    BountyCreate,
    BountyUpdate,
    BountyResponse,
    BountyListResponse,
    BountySortField,
    BountyStatusEnum,
    EscrowStatusResponse,
    FeedItemResponse,
    FeedResponse,
    LocationGroupResponse,
    MapResponse,
    SortOrder,
    WorkTypeEnum,
)

router = APIRouter(prefix="/bounties", tags=["Bounties"])


def to_bounty_response(bounty: Bounty) -> BountyResponse:
    return BountyResponse(
        id=bounty.id,
        user_id=bounty.user_id,
        title=bounty.title,
        description=bounty.description,
        amount=bounty.amount,
        amount_usd=bounty.amount_usd,
        is_for_honor=bounty.is_for_honor,
        location=bounty.location,
        work_type=bounty.work_type.value,
        status=bounty.status.value,
        is_archived=bounty.is_archived,
        accepted_by=bounty.accepted_by,
        timeline=bounty.timeline,
        skills_required=bounty.skills_required,
        is_time_sensitive=bounty.is_time_sensitive,
        deadline=bounty.deadline,
        created_at=bounty.created_at,
        updated_at=bounty.updated_at,
    )


@router.get("", response_model=BountyListResponse)
async def list_bounties(
    status_filter: Optional[BountyStatusEnum] = Query(BountyStatusEnum.OPEN, alias="status"),
    user_id: Optional[str] = None,
    accepted_by: Optional[str] = None,
    work_type: Optional[WorkTypeEnum] = None,
    is_for_honor: Optional[bool] = None,
    search: Optional[str] = Query(None, max_length=100),
    sort_by: BountySortField = BountySortField.CREATED_AT,
    sort_order: SortOrder = SortOrder.DESC,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    """List bounties; open ones by default"""
    bounties, total = await bounty_service.list_bounties(
        db,
        status=status_filter.value if status_filter else None,
        user_id=user_id,
        accepted_by=accepted_by,
        work_type=work_type.value if work_type else None,
        is_for_honor=is_for_honor,
        search=search,
        sort_by=sort_by.value,
        sort_order=sort_order.value,
        page=page,
        page_size=page_size,
    )
    return BountyListResponse(
        bounties=[to_bounty_response(b) for b in bounties],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/feed", response_model=FeedResponse)
async def get_feed(
    category: str = Query(FeedCategory.ALL, max_length=50),
    max_distance: Optional[int] = Query(None, gt=0, description="Miles; needs lat/lng"),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    exclude_applied: bool = True,
    current_user: Optional[User] = Depends(get_optional_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Browse feed

    - category: all, highpaying, remote, forhonor, local, or a keyword
    - max_distance: only applied when lat/lng are given
    - exclude_applied: hide bounties the caller already applied to
    """
    origin = (lat, lng) if lat is not None and lng is not None else None

    exclude_ids = set()
    if current_user and exclude_applied:
        exclude_ids = await request_service.applied_bounty_ids(db, current_user.id)

    items = await bounty_service.get_feed(
        db,
        category=category,
        max_distance=max_distance,
        origin=origin,
        exclude_ids=exclude_ids,
    )

    return FeedResponse(
        items=[
            FeedItemResponse(bounty=to_bounty_response(item.bounty), distance=item.distance)
            for item in items
        ],
        category=FeedCategory.normalize(category),
        total=len(items),
        distance_filter=max_distance,
        distance_options=settings.DISTANCE_FILTER_OPTIONS,
    )


@router.get("/map", response_model=MapResponse)
async def get_map(db: AsyncSession = Depends(get_db)):
    """Open bounties grouped by location"""
    groups = await bounty_service.get_map_groups(db)
    return MapResponse(
        groups=[
            LocationGroupResponse(
                location=location,
                count=len(bounties),
                bounties=[to_bounty_response(b) for b in bounties],
            )
            for location, bounties in groups.items()
        ],
        total_locations=len(groups),
    )


@router.get("/archived", response_model=BountyListResponse)
async def list_archived(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """The current user's archived postings"""
    bounties = await bounty_service.list_archived(db, current_user.id)
    return BountyListResponse(
        bounties=[to_bounty_response(b) for b in bounties],
        total=len(bounties),
        page=1,
        page_size=len(bounties),
    )


@router.post("", response_model=BountyResponse, status_code=status.HTTP_201_CREATED)
async def create_bounty(
    data: BountyCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Post a new bounty"""
    bounty = await bounty_service.create_bounty(db, current_user.id, data)
    set_bounty_id(bounty.id)
    return to_bounty_response(bounty)


@router.get("/{bounty_id}", response_model=BountyResponse)
async def get_bounty(bounty_id: str, db: AsyncSession = Depends(get_db)):
    bounty = await bounty_service.get_bounty(db, bounty_id)
    return to_bounty_response(bounty)


@router.patch("/{bounty_id}", response_model=BountyResponse)
async def update_bounty(
    bounty_id: str,
    patch: BountyUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Edit a posting (poster only, not once completed or archived; the reward is fixed once accepted)"""
    bounty = await bounty_service.update_bounty(db, current_user.id, bounty_id, patch)
    return to_bounty_response(bounty)


@router.delete("/{bounty_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bounty(
    bounty_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await bounty_service.delete_bounty(db, current_user.id, bounty_id)


@router.post("/{bounty_id}/archive", response_model=BountyResponse)
async def archive_bounty(
    bounty_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Archive a bounty; held escrow goes back to the poster"""
    bounty = await bounty_service.archive_bounty(db, current_user.id, bounty_id)
    return to_bounty_response(bounty)


@router.post("/{bounty_id}/complete", response_model=BountyResponse)
async def complete_bounty(
    bounty_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Complete an in-progress bounty; held escrow is paid to the hunter"""
    bounty = await bounty_service.complete_bounty(db, current_user.id, bounty_id)
    return to_bounty_response(bounty)


@router.get("/{bounty_id}/escrow", response_model=EscrowStatusResponse)
async def get_escrow_status(
    bounty_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Escrow state of a bounty (none, held, released, refunded)"""
    bounty = await bounty_service.get_bounty(db, bounty_id)
    escrow_status, amount = await wallet_service.escrow_status(db, bounty.id)
    return EscrowStatusResponse(
        bounty_id=bounty.id,
        status=escrow_status,
        amount=amount,
        amount_usd=amount / 100,
    )
