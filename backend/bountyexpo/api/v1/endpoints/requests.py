"""
Bounty Request (application) Endpoints

Endpoints:
- POST /bounties/{id}/requests - Apply to a bounty
- GET /bounties/{id}/requests - Applications on my bounty
- GET /requests/mine - My applications
- POST /requests/{id}/accept - Accept (holds escrow, rejects the rest)
- POST /requests/{id}/reject - Reject
- DELETE /requests/{id} - Withdraw my pending application
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from bountyexpo.core.database import get_db
from bountyexpo.modules.auth.dependencies import get_current_user
from bountyexpo.models.bounty import BountyRequest
from bountyexpo.models.user import User
from bountyexpo.services.request_service import request_service
from bountyexpo.schemas.bounty import (
    AcceptRequestResponse,
    BountyRequestCreate,
    BountyRequestListResponse,
    BountyRequestResponse,
    RequestStatusEnum,
)
from bountyexpo.api.v1.endpoints.bounties import to_bounty_response

router = APIRouter(tags=["Requests"])


def to_request_response(request: BountyRequest) -> BountyRequestResponse:
    return BountyRequestResponse(
        id=request.id,
        bounty_id=request.bounty_id,
        hunter_id=request.hunter_id,
        status=request.status.value,
        message=request.message,
        created_at=request.created_at,
        updated_at=request.updated_at,
    )


@router.post(
    "/bounties/{bounty_id}/requests",
    response_model=BountyRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def apply_to_bounty(
    bounty_id: str,
    body: Optional[BountyRequestCreate] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    request = await request_service.apply(
        db,
        hunter_id=current_user.id,
        bounty_id=bounty_id,
        message=body.message if body else None,
    )
    return to_request_response(request)


@router.get("/bounties/{bounty_id}/requests", response_model=BountyRequestListResponse)
async def list_bounty_requests(
    bounty_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    requests = await request_service.list_for_bounty(db, current_user.id, bounty_id)
    return BountyRequestListResponse(
        requests=[to_request_response(r) for r in requests],
        total=len(requests),
    )


@router.get("/requests/mine", response_model=BountyRequestListResponse)
async def list_my_requests(
    status_filter: Optional[RequestStatusEnum] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    requests = await request_service.list_for_hunter(
        db,
        current_user.id,
        status=status_filter.value if status_filter else None,
    )
    return BountyRequestListResponse(
        requests=[to_request_response(r) for r in requests],
        total=len(requests),
    )


@router.post("/requests/{request_id}/accept", response_model=AcceptRequestResponse)
async def accept_request(
    request_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Accept an application

    Moves the bounty to in_progress, rejects other pending applications and
    holds the reward in escrow from the poster's wallet (paid bounties).
    """
    request, bounty, escrow, rejected_ids = await request_service.accept(
        db, current_user.id, request_id
    )
    return AcceptRequestResponse(
        request=to_request_response(request),
        bounty=to_bounty_response(bounty),
        escrow_transaction_id=escrow.id if escrow else None,
        rejected_request_ids=rejected_ids,
    )


@router.post("/requests/{request_id}/reject", response_model=BountyRequestResponse)
async def reject_request(
    request_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    request = await request_service.reject(db, current_user.id, request_id)
    return to_request_response(request)


@router.delete("/requests/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def withdraw_request(
    request_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await request_service.withdraw(db, current_user.id, request_id)
