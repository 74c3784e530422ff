"""
Request Service - hunters applying to bounties and posters accepting them
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from datetime import datetime
from typing import Optional, List, Set, Tuple

from bountyexpo.core.exceptions import (
    AuthorizationError,
    BountyRequestNotFoundError,
    ConflictError,
    DuplicateRequestError,
    InvalidTransitionError,
    ValidationError,
)
from bountyexpo.core.logging_config import logger
from bountyexpo.models.bounty import Bounty, BountyRequest, BountyStatus, RequestStatus
from bountyexpo.models.wallet import WalletTransaction
from bountyexpo.services.bounty_service import bounty_service, transition
from bountyexpo.services.wallet_service import wallet_service


class RequestService:
    """Service for bounty applications"""

    async def apply(
        self,
        db: AsyncSession,
        hunter_id: str,
        bounty_id: str,
        message: Optional[str] = None,
    ) -> BountyRequest:
        """Apply to an open bounty"""
        bounty = await bounty_service.get_bounty(db, bounty_id)

        if bounty.status != BountyStatus.OPEN:
            raise InvalidTransitionError("apply to", bounty.status.value)
        if bounty.user_id == str(hunter_id):
            raise ValidationError("You cannot apply to your own bounty")

        existing = await db.execute(
            select(BountyRequest).where(
                and_(
                    BountyRequest.bounty_id == bounty.id,
                    BountyRequest.hunter_id == str(hunter_id),
                )
            )
        )
        if existing.scalar_one_or_none():
            raise DuplicateRequestError(bounty.id)

        request = BountyRequest(
            bounty_id=bounty.id,
            hunter_id=str(hunter_id),
            status=RequestStatus.PENDING,
            message=message.strip() if message else None,
        )
        db.add(request)
        await db.commit()
        await db.refresh(request)

        logger.info(f"User {hunter_id} applied to bounty {bounty.id}")
        return request

    async def get_request(self, db: AsyncSession, request_id: str) -> BountyRequest:
        result = await db.execute(
            select(BountyRequest).where(BountyRequest.id == str(request_id))
        )
        request = result.scalar_one_or_none()
        if not request:
            raise BountyRequestNotFoundError(str(request_id))
        return request

    async def list_for_bounty(
        self,
        db: AsyncSession,
        owner_id: str,
        bounty_id: str,
    ) -> List[BountyRequest]:
        """Applications on a bounty, visible to its poster only"""
        bounty = await bounty_service.get_bounty(db, bounty_id)
        if bounty.user_id != str(owner_id):
            raise AuthorizationError("Only the poster can view applications")

        result = await db.execute(
            select(BountyRequest)
            .where(BountyRequest.bounty_id == bounty.id)
            .order_by(BountyRequest.created_at.asc())
        )
        return list(result.scalars().all())

    async def list_for_hunter(
        self,
        db: AsyncSession,
        hunter_id: str,
        status: Optional[str] = None,
    ) -> List[BountyRequest]:
        conditions = [BountyRequest.hunter_id == str(hunter_id)]
        if status:
            conditions.append(BountyRequest.status == RequestStatus(status))

        result = await db.execute(
            select(BountyRequest)
            .where(and_(*conditions))
            .order_by(BountyRequest.created_at.desc())
        )
        return list(result.scalars().all())

    async def applied_bounty_ids(self, db: AsyncSession, hunter_id: str) -> Set[str]:
        """Bounties the hunter already applied to (hidden from their feed)"""
        result = await db.execute(
            select(BountyRequest.bounty_id).where(BountyRequest.hunter_id == str(hunter_id))
        )
        return {str(bounty_id) for bounty_id in result.scalars().all()}

    async def _get_for_owner(
        self,
        db: AsyncSession,
        owner_id: str,
        request_id: str,
    ) -> Tuple[BountyRequest, Bounty]:
        request = await self.get_request(db, request_id)
        bounty = await bounty_service.get_bounty(db, request.bounty_id)
        if bounty.user_id != str(owner_id):
            raise AuthorizationError("Only the poster can respond to applications")
        if request.status != RequestStatus.PENDING:
            raise ConflictError(
                f"Request already {request.status.value}",
                code="REQUEST_NOT_PENDING",
            )
        return request, bounty

    async def accept(
        self,
        db: AsyncSession,
        owner_id: str,
        request_id: str,
    ) -> Tuple[BountyRequest, Bounty, Optional[WalletTransaction], List[str]]:
        """
        Accept an application

        The bounty moves to in_progress with the hunter assigned, every other
        pending application is rejected and, for paid bounties, the reward is
        held in escrow from the poster's wallet. All of it commits together.

        Returns:
            (accepted request, bounty, escrow transaction or None, rejected request ids)
        """
        request, bounty = await self._get_for_owner(db, owner_id, request_id)
        if request.hunter_id == bounty.user_id:
            raise ValidationError("You cannot accept your own application")

        next_status = transition(bounty.status, "accept")

        escrow = None
        if not bounty.is_for_honor and bounty.amount > 0:
            escrow = await wallet_service.hold_escrow(db, bounty, bounty.user_id, commit=False)

        now = datetime.utcnow()
        bounty.status = next_status
        bounty.accepted_by = request.hunter_id
        bounty.updated_at = now
        request.status = RequestStatus.ACCEPTED
        request.updated_at = now

        others = await db.execute(
            select(BountyRequest).where(
                and_(
                    BountyRequest.bounty_id == bounty.id,
                    BountyRequest.id != request.id,
                    BountyRequest.status == RequestStatus.PENDING,
                )
            )
        )
        rejected_ids = []
        for other in others.scalars().all():
            other.status = RequestStatus.REJECTED
            other.updated_at = now
            rejected_ids.append(other.id)

        await db.commit()
        await db.refresh(request)
        await db.refresh(bounty)

        logger.info(
            f"Accepted request {request.id} on bounty {bounty.id}; "
            f"rejected {len(rejected_ids)} other(s)"
        )
        return request, bounty, escrow, rejected_ids

    async def reject(self, db: AsyncSession, owner_id: str, request_id: str) -> BountyRequest:
        request, _ = await self._get_for_owner(db, owner_id, request_id)
        request.status = RequestStatus.REJECTED
        request.updated_at = datetime.utcnow()
        await db.commit()
        await db.refresh(request)
        logger.info(f"Rejected request {request.id}")
        return request

    async def withdraw(self, db: AsyncSession, hunter_id: str, request_id: str) -> None:
        """Hunter withdraws a pending application"""
        request = await self.get_request(db, request_id)
        if request.hunter_id != str(hunter_id):
            raise AuthorizationError("Only the applicant can withdraw this request")
        if request.status != RequestStatus.PENDING:
            raise ConflictError(
                f"Request already {request.status.value}",
                code="REQUEST_NOT_PENDING",
            )
        await db.delete(request)
        await db.commit()
        logger.info(f"Withdrew request {request_id}")


# Singleton instance
request_service = RequestService()
