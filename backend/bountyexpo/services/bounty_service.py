"""
Bounty Service - Business logic for the bounty lifecycle

Handles:
- Posting and editing bounties (with the edit-dialog validation rules)
- Status transitions: open -> in_progress -> completed, archive
- Listing, archived listing, the feed and the map grouping
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_, or_
from datetime import datetime
from typing import Optional, List, Tuple, Dict, Any, Iterable

from bountyexpo.core.config import settings
from bountyexpo.core.exceptions import (
    AuthorizationError,
    BountyNotFoundError,
    ConflictError,
    InvalidTransitionError,
    ValidationError,
)
from bountyexpo.core.logging_config import logger
from bountyexpo.models.bounty import Bounty, BountyStatus, WorkType
from bountyexpo.schemas.bounty import BountyCreate, BountyUpdate
from bountyexpo.services import feed
from bountyexpo.services.wallet_service import wallet_service


# action -> statuses it is allowed from, and the status it leads to
TRANSITIONS: Dict[str, Tuple[Tuple[BountyStatus, ...], BountyStatus]] = {
    "accept": ((BountyStatus.OPEN,), BountyStatus.IN_PROGRESS),
    "complete": ((BountyStatus.IN_PROGRESS,), BountyStatus.COMPLETED),
    "archive": ((BountyStatus.OPEN, BountyStatus.IN_PROGRESS), BountyStatus.ARCHIVED),
}

# No edits once a bounty is finished
LOCKED_STATUSES = (BountyStatus.COMPLETED, BountyStatus.ARCHIVED)


def transition(status: BountyStatus, action: str) -> BountyStatus:
    """
    Next status for `action`, or InvalidTransitionError.

    Completed and archived bounties are terminal.
    """
    if action not in TRANSITIONS:
        raise ValueError(f"Unknown bounty action: {action}")
    allowed_from, target = TRANSITIONS[action]
    if status not in allowed_from:
        raise InvalidTransitionError(action, BountyStatus(status).value)
    return target


def validate_posting(
    title: Optional[str],
    description: Optional[str],
    amount: Optional[int],
    is_for_honor: bool,
    location: Optional[str] = None,
    require_description: bool = True,
) -> Dict[str, Any]:
    """
    Clean and check the fields of the post/edit form.

    Returns trimmed title/description, the effective amount (0 for honor
    bounties) and the location (blank -> None).
    """
    title = (title or "").strip()
    if not title:
        raise ValidationError("Title is required", field="title")

    cleaned_description = description.strip() if description is not None else None
    if require_description and not cleaned_description:
        raise ValidationError("Description is required", field="description")

    if is_for_honor:
        amount = 0
    elif not amount or amount <= 0:
        raise ValidationError("Amount must be greater than 0", field="amount")

    location = location.strip() if location else None

    return {
        "title": title,
        "description": cleaned_description or None,
        "amount": amount,
        "is_for_honor": is_for_honor,
        "location": location or None,
    }


class BountyService:
    """Service for posting and managing bounties"""

    # ==================== CRUD ====================

    async def create_bounty(
        self,
        db: AsyncSession,
        user_id: str,
        data: BountyCreate,
    ) -> Bounty:
        """Post a new bounty in the open state"""
        if data.is_for_honor and data.amount:
            raise ValidationError("Honor bounties must have amount set to 0", field="amount")

        fields = validate_posting(
            data.title,
            data.description,
            data.amount,
            data.is_for_honor,
            data.location,
        )

        bounty = Bounty(
            user_id=str(user_id),
            work_type=WorkType(data.work_type.value),
            status=BountyStatus.OPEN,
            timeline=data.timeline,
            skills_required=data.skills_required,
            is_time_sensitive=data.is_time_sensitive,
            deadline=data.deadline,
            **fields,
        )

        db.add(bounty)
        await db.commit()
        await db.refresh(bounty)

        logger.info(f"Created bounty {bounty.id} ({bounty.amount} cents) for user {user_id}")
        return bounty

    async def get_bounty(self, db: AsyncSession, bounty_id: str) -> Bounty:
        """Get bounty by ID or raise BountyNotFoundError"""
        result = await db.execute(select(Bounty).where(Bounty.id == str(bounty_id)))
        bounty = result.scalar_one_or_none()
        if not bounty:
            raise BountyNotFoundError(str(bounty_id))
        return bounty

    async def _get_owned(self, db: AsyncSession, user_id: str, bounty_id: str) -> Bounty:
        bounty = await self.get_bounty(db, bounty_id)
        if bounty.user_id != str(user_id):
            raise AuthorizationError("Only the poster can modify this bounty")
        return bounty

    async def list_bounties(
        self,
        db: AsyncSession,
        status: Optional[str] = BountyStatus.OPEN.value,
        user_id: Optional[str] = None,
        accepted_by: Optional[str] = None,
        work_type: Optional[str] = None,
        is_for_honor: Optional[bool] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Bounty], int]:
        """
        List bounties with pagination and filters

        Returns:
            Tuple of (bounties list, total count)
        """
        conditions = []
        if status:
            conditions.append(Bounty.status == BountyStatus(status))
        if user_id:
            conditions.append(Bounty.user_id == str(user_id))
        if accepted_by:
            conditions.append(Bounty.accepted_by == str(accepted_by))
        if work_type:
            conditions.append(Bounty.work_type == WorkType(work_type))
        if is_for_honor is not None:
            conditions.append(Bounty.is_for_honor == is_for_honor)
        if search:
            search_term = f"%{search}%"
            conditions.append(
                or_(
                    Bounty.title.ilike(search_term),
                    Bounty.description.ilike(search_term),
                )
            )

        query = select(Bounty)
        count_query = select(func.count(Bounty.id))
        if conditions:
            query = query.where(and_(*conditions))
            count_query = count_query.where(and_(*conditions))

        count_result = await db.execute(count_query)
        total = count_result.scalar() or 0

        sort_column = {
            "amount": Bounty.amount,
            "deadline": Bounty.deadline,
        }.get(sort_by, Bounty.created_at)
        query = query.order_by(sort_column.asc() if sort_order == "asc" else sort_column.desc())
        query = query.offset((page - 1) * page_size).limit(page_size)

        result = await db.execute(query)
        return list(result.scalars().all()), total

    async def list_archived(self, db: AsyncSession, user_id: str) -> List[Bounty]:
        """The poster's archived bounties, most recently changed first"""
        result = await db.execute(
            select(Bounty)
            .where(
                and_(
                    Bounty.user_id == str(user_id),
                    Bounty.status == BountyStatus.ARCHIVED,
                )
            )
            .order_by(Bounty.updated_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    def _changes_reward(bounty: Bounty, changes: Dict[str, Any]) -> bool:
        if "is_for_honor" in changes and changes["is_for_honor"] is not None:
            if bool(changes["is_for_honor"]) != bool(bounty.is_for_honor):
                return True
        if "amount" in changes and changes["amount"] is not None and not bounty.is_for_honor:
            return changes["amount"] != bounty.amount
        return False

    async def update_bounty(
        self,
        db: AsyncSession,
        user_id: str,
        bounty_id: str,
        patch: BountyUpdate,
    ) -> Bounty:
        """
        Apply the edit-posting dialog to a bounty.

        The merged title/description/amount are validated as a whole, so a
        patch that only flips is_for_honor still gets its amount checked.
        """
        bounty = await self._get_owned(db, user_id, bounty_id)
        if bounty.status in LOCKED_STATUSES:
            raise ConflictError(
                f"Cannot edit bounty with status: {bounty.status.value}",
                code="BOUNTY_LOCKED",
            )

        changes = patch.model_dump(exclude_unset=True)

        # The reward is fixed once a hunter is accepted; escrow holds that amount
        if bounty.status != BountyStatus.OPEN and self._changes_reward(bounty, changes):
            raise ConflictError(
                f"Cannot change reward of bounty with status: {bounty.status.value}",
                code="BOUNTY_LOCKED",
            )

        is_for_honor = changes.get("is_for_honor")
        if is_for_honor is None:
            is_for_honor = bounty.is_for_honor

        fields = validate_posting(
            changes.get("title", bounty.title),
            changes.get("description", bounty.description),
            changes.get("amount", bounty.amount),
            is_for_honor,
            changes.get("location", bounty.location),
            require_description="description" in changes or bool(bounty.description),
        )
        for key, value in fields.items():
            setattr(bounty, key, value)

        if changes.get("work_type") is not None:
            bounty.work_type = WorkType(patch.work_type.value)
        for key in ("timeline", "skills_required", "deadline"):
            if key in changes:
                setattr(bounty, key, changes[key])
        if changes.get("is_time_sensitive") is not None:
            bounty.is_time_sensitive = changes["is_time_sensitive"]

        bounty.updated_at = datetime.utcnow()
        await db.commit()
        await db.refresh(bounty)

        logger.info(f"Updated bounty {bounty.id}: {sorted(changes)}")
        return bounty

    async def delete_bounty(self, db: AsyncSession, user_id: str, bounty_id: str) -> None:
        """Delete an open bounty that nobody has been accepted on"""
        bounty = await self._get_owned(db, user_id, bounty_id)
        if bounty.status != BountyStatus.OPEN or bounty.accepted_by:
            raise ConflictError(
                f"Cannot delete bounty with status: {bounty.status.value}",
                code="BOUNTY_LOCKED",
            )

        await db.delete(bounty)
        await db.commit()
        logger.info(f"Deleted bounty {bounty_id}")

    # ==================== LIFECYCLE ====================

    async def archive_bounty(self, db: AsyncSession, user_id: str, bounty_id: str) -> Bounty:
        """Archive an open or in-progress bounty, refunding any held escrow"""
        bounty = await self._get_owned(db, user_id, bounty_id)
        bounty.status = transition(bounty.status, "archive")

        if await wallet_service.has_open_escrow(db, bounty.id):
            await wallet_service.refund_escrow(
                db, bounty, bounty.user_id, reason="bounty archived", commit=False
            )

        bounty.updated_at = datetime.utcnow()
        await db.commit()
        await db.refresh(bounty)

        logger.info(f"Archived bounty {bounty.id}")
        return bounty

    async def complete_bounty(self, db: AsyncSession, user_id: str, bounty_id: str) -> Bounty:
        """
        Mark an in-progress bounty completed and pay the hunter

        Either the poster or the assigned hunter may complete it.
        """
        bounty = await self.get_bounty(db, bounty_id)
        if str(user_id) not in (bounty.user_id, bounty.accepted_by):
            raise AuthorizationError("Only the poster or assigned hunter can complete this bounty")

        bounty.status = transition(bounty.status, "complete")

        if bounty.accepted_by and await wallet_service.has_open_escrow(db, bounty.id):
            await wallet_service.release_escrow(db, bounty, bounty.accepted_by, commit=False)

        bounty.updated_at = datetime.utcnow()
        await db.commit()
        await db.refresh(bounty)

        logger.info(f"Completed bounty {bounty.id} by {user_id}")
        return bounty

    # ==================== FEED ====================

    @staticmethod
    def _feed_conditions(category: Optional[str], exclude_ids: Iterable[str]) -> List[Any]:
        """
        SQL side of the feed filters, applied before any row cap.

        Keyword chips are matched in Python by feed.filter_feed over the
        whole result, since they search title and description together.
        """
        conditions = [Bounty.status == BountyStatus.OPEN]
        excluded = [str(i) for i in exclude_ids]
        if excluded:
            conditions.append(Bounty.id.notin_(excluded))

        category = feed.FeedCategory.normalize(category)
        if category == feed.FeedCategory.FOR_HONOR:
            conditions.append(Bounty.is_for_honor.is_(True))
        elif category == feed.FeedCategory.REMOTE:
            conditions.append(Bounty.work_type == WorkType.ONLINE)
        elif category == feed.FeedCategory.HIGH_PAYING:
            conditions.append(and_(Bounty.is_for_honor.is_(False), Bounty.amount > 0))
        return conditions

    async def get_feed(
        self,
        db: AsyncSession,
        category: Optional[str] = None,
        max_distance: Optional[float] = None,
        origin: Optional[feed.Coordinates] = None,
        exclude_ids: Iterable[str] = (),
    ) -> List[feed.FeedItem]:
        """
        Open bounties filtered and ordered for the browse screen

        Every filter runs over all open bounties; FEED_MAX_ITEMS only caps
        the ordered result.
        """
        result = await db.execute(
            select(Bounty)
            .where(and_(*self._feed_conditions(category, exclude_ids)))
            .order_by(Bounty.created_at.desc())
        )
        items = feed.build_feed(
            list(result.scalars().all()),
            category=category,
            max_distance=max_distance,
            origin=origin,
            exclude_ids=exclude_ids,
            max_miles=settings.MOCK_DISTANCE_MAX_MILES,
        )
        return items[:settings.FEED_MAX_ITEMS]

    async def get_map_groups(self, db: AsyncSession) -> Dict[str, List[Bounty]]:
        """All open bounties grouped by location for the map view"""
        result = await db.execute(
            select(Bounty)
            .where(Bounty.status == BountyStatus.OPEN)
            .order_by(Bounty.created_at.asc())
        )
        return feed.group_by_location(result.scalars().all())


# Singleton instance
bounty_service = BountyService()
