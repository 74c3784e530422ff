"""
Wallet Service - Business logic for the in-app wallet and bounty escrow

Handles:
- Lazy wallet creation
- Deposits and withdrawals (amounts in cents)
- Escrow hold / release / refund for bounty rewards
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_
from sqlalchemy.exc import IntegrityError
from typing import Optional, List, Tuple

from bountyexpo.core.config import settings
from bountyexpo.core.exceptions import (
    ValidationError,
    ConflictError,
    EscrowConflictError,
    EscrowNotFoundError,
    InsufficientFundsError,
)
from bountyexpo.core.logging_config import logger
from bountyexpo.models.bounty import Bounty
from bountyexpo.models.wallet import (
    Wallet,
    WalletTransaction,
    WalletTransactionType,
    WalletTransactionStatus,
)


class WalletService:
    """Service for wallet balances and escrow"""

    # ==================== WALLET ====================

    def _wallet_query(self, user_id: str, for_update: bool = False):
        query = select(Wallet).where(Wallet.user_id == str(user_id))
        if for_update:
            query = query.with_for_update()
        return query

    async def get_wallet(self, db: AsyncSession, user_id: str, for_update: bool = False) -> Wallet:
        """
        Get the user's wallet, creating an empty one on first use

        for_update=True locks the row until the caller commits; every balance
        change goes through a locked read.
        """
        result = await db.execute(self._wallet_query(user_id, for_update))
        wallet = result.scalar_one_or_none()

        if not wallet:
            wallet = Wallet(
                user_id=str(user_id),
                balance=0,
                total_deposited=0,
                total_withdrawn=0,
                total_escrowed=0,
                total_earned=0,
            )
            db.add(wallet)
            await db.flush()
            logger.info(f"Created wallet for user {user_id}")

        return wallet

    def _record(
        self,
        db: AsyncSession,
        wallet: Wallet,
        transaction_type: WalletTransactionType,
        amount: int,
        description: str,
        bounty_id: Optional[str] = None,
        reference: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> WalletTransaction:
        """Apply a signed amount to the wallet and add the ledger row"""
        wallet.balance += amount
        transaction = WalletTransaction(
            wallet_id=wallet.id,
            user_id=wallet.user_id,
            bounty_id=bounty_id,
            transaction_type=transaction_type,
            status=WalletTransactionStatus.COMPLETED,
            amount=amount,
            balance_after=wallet.balance,
            description=description,
            reference=reference,
            idempotency_key=idempotency_key,
        )
        db.add(transaction)
        return transaction

    async def _by_idempotency_key(
        self,
        db: AsyncSession,
        user_id: str,
        idempotency_key: Optional[str],
    ) -> Optional[WalletTransaction]:
        if not idempotency_key:
            return None
        result = await db.execute(
            select(WalletTransaction).where(WalletTransaction.idempotency_key == idempotency_key)
        )
        existing = result.scalar_one_or_none()
        if existing and existing.user_id != str(user_id):
            raise ConflictError("Idempotency key already used", code="IDEMPOTENCY_CONFLICT")
        return existing

    async def _replayed(
        self,
        db: AsyncSession,
        user_id: str,
        idempotency_key: Optional[str],
    ) -> WalletTransaction:
        """
        A concurrent request committed the same idempotency key first.

        Roll back our insert and answer with the winner's transaction.
        """
        await db.rollback()
        existing = await self._by_idempotency_key(db, user_id, idempotency_key)
        if not existing:
            raise ConflictError("Wallet transaction could not be recorded", code="WALLET_CONFLICT")
        logger.info(f"Idempotency key {idempotency_key} committed concurrently; returning original")
        return existing

    async def deposit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        reference: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> WalletTransaction:
        """
        Add funds to the wallet

        A repeated idempotency key returns the original transaction without
        crediting again.
        """
        if amount <= 0:
            raise ValidationError("Amount must be greater than 0", field="amount")
        if amount > settings.MAX_DEPOSIT_CENTS:
            raise ValidationError(
                f"Amount exceeds maximum deposit of {settings.MAX_DEPOSIT_CENTS}",
                field="amount",
            )

        wallet = await self.get_wallet(db, user_id, for_update=True)
        existing = await self._by_idempotency_key(db, user_id, idempotency_key)
        if existing:
            logger.info(f"Duplicate deposit ignored for key {idempotency_key}")
            return existing

        wallet.total_deposited += amount
        transaction = self._record(
            db,
            wallet,
            WalletTransactionType.DEPOSIT,
            amount,
            description="Wallet deposit",
            reference=reference,
            idempotency_key=idempotency_key,
        )

        try:
            await db.commit()
        except IntegrityError:
            return await self._replayed(db, user_id, idempotency_key)
        await db.refresh(transaction)

        logger.log_wallet_event("deposit", str(user_id), amount, wallet.balance)
        return transaction

    async def withdraw(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        destination: str,
        idempotency_key: Optional[str] = None,
    ) -> WalletTransaction:
        """Move funds out to a payout account"""
        if amount <= 0:
            raise ValidationError("Amount must be greater than 0", field="amount")
        if amount < settings.MIN_WITHDRAWAL_CENTS:
            raise ValidationError(
                f"Minimum withdrawal is {settings.MIN_WITHDRAWAL_CENTS}",
                field="amount",
            )

        wallet = await self.get_wallet(db, user_id, for_update=True)
        existing = await self._by_idempotency_key(db, user_id, idempotency_key)
        if existing:
            return existing

        if wallet.balance < amount:
            raise InsufficientFundsError(required=amount, available=wallet.balance)

        wallet.total_withdrawn += amount
        transaction = self._record(
            db,
            wallet,
            WalletTransactionType.WITHDRAWAL,
            -amount,
            description=f"Withdrawal to account ending in {destination[-4:]}",
            reference=destination,
            idempotency_key=idempotency_key,
        )

        try:
            await db.commit()
        except IntegrityError:
            return await self._replayed(db, user_id, idempotency_key)
        await db.refresh(transaction)

        logger.log_wallet_event("withdrawal", str(user_id), -amount, wallet.balance)
        return transaction

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        transaction_type: Optional[str] = None,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[WalletTransaction], int]:
        """Newest first. Returns (transactions, total count)"""
        conditions = [WalletTransaction.user_id == str(user_id)]
        if transaction_type:
            conditions.append(WalletTransaction.transaction_type == WalletTransactionType(transaction_type))
        if status:
            conditions.append(WalletTransaction.status == WalletTransactionStatus(status))

        count_result = await db.execute(
            select(func.count(WalletTransaction.id)).where(and_(*conditions))
        )
        total = count_result.scalar() or 0

        result = await db.execute(
            select(WalletTransaction)
            .where(and_(*conditions))
            .order_by(WalletTransaction.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    # ==================== ESCROW ====================

    async def _bounty_transaction(
        self,
        db: AsyncSession,
        bounty_id: str,
        transaction_type: WalletTransactionType,
    ) -> Optional[WalletTransaction]:
        result = await db.execute(
            select(WalletTransaction)
            .where(
                and_(
                    WalletTransaction.bounty_id == str(bounty_id),
                    WalletTransaction.transaction_type == transaction_type,
                    WalletTransaction.status == WalletTransactionStatus.COMPLETED,
                )
            )
            .order_by(WalletTransaction.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _settleable_escrow(self, db: AsyncSession, bounty_id: str) -> WalletTransaction:
        """The held escrow for a bounty, or raise if missing or already settled"""
        escrow = await self._bounty_transaction(db, bounty_id, WalletTransactionType.ESCROW)
        if not escrow:
            raise EscrowNotFoundError(str(bounty_id))
        if await self._bounty_transaction(db, bounty_id, WalletTransactionType.RELEASE):
            raise EscrowConflictError("Escrow already released for this bounty")
        if await self._bounty_transaction(db, bounty_id, WalletTransactionType.REFUND):
            raise EscrowConflictError("Escrow already refunded for this bounty")
        return escrow

    async def hold_escrow(
        self,
        db: AsyncSession,
        bounty: Bounty,
        poster_id: str,
        commit: bool = True,
    ) -> WalletTransaction:
        """
        Debit the bounty reward from the poster's wallet into escrow

        Pass commit=False to leave the hold in the caller's unit of work.
        """
        amount = bounty.amount or 0
        if amount <= 0:
            raise ValidationError("Escrow amount must be greater than 0", field="amount")

        if await self._bounty_transaction(db, bounty.id, WalletTransactionType.ESCROW):
            raise EscrowConflictError("Escrow already exists for this bounty")

        wallet = await self.get_wallet(db, poster_id, for_update=True)
        if wallet.balance < amount:
            raise InsufficientFundsError(required=amount, available=wallet.balance)

        wallet.total_escrowed += amount
        transaction = self._record(
            db,
            wallet,
            WalletTransactionType.ESCROW,
            -amount,
            description=f"Escrow for bounty: {bounty.title}",
            bounty_id=bounty.id,
        )

        if commit:
            await db.commit()
            await db.refresh(transaction)
        else:
            await db.flush()

        logger.log_wallet_event("escrow_hold", str(poster_id), -amount, wallet.balance, bounty_id=str(bounty.id))
        return transaction

    async def release_escrow(
        self,
        db: AsyncSession,
        bounty: Bounty,
        hunter_id: str,
        commit: bool = True,
    ) -> WalletTransaction:
        """Pay the held reward to the hunter"""
        escrow = await self._settleable_escrow(db, bounty.id)
        amount = abs(escrow.amount)

        wallet = await self.get_wallet(db, hunter_id, for_update=True)
        wallet.total_earned += amount
        transaction = self._record(
            db,
            wallet,
            WalletTransactionType.RELEASE,
            amount,
            description=f"Payment for bounty: {bounty.title}",
            bounty_id=bounty.id,
        )

        if commit:
            await db.commit()
            await db.refresh(transaction)
        else:
            await db.flush()

        logger.log_wallet_event("escrow_release", str(hunter_id), amount, wallet.balance, bounty_id=str(bounty.id))
        return transaction

    async def refund_escrow(
        self,
        db: AsyncSession,
        bounty: Bounty,
        poster_id: str,
        reason: Optional[str] = None,
        commit: bool = True,
    ) -> WalletTransaction:
        """Return the held reward to the poster"""
        escrow = await self._settleable_escrow(db, bounty.id)
        amount = abs(escrow.amount)

        wallet = await self.get_wallet(db, poster_id, for_update=True)
        wallet.total_escrowed -= amount
        description = f"Refund for bounty: {bounty.title}"
        if reason:
            description = f"{description} ({reason})"
        transaction = self._record(
            db,
            wallet,
            WalletTransactionType.REFUND,
            amount,
            description=description,
            bounty_id=bounty.id,
        )

        if commit:
            await db.commit()
            await db.refresh(transaction)
        else:
            await db.flush()

        logger.log_wallet_event("escrow_refund", str(poster_id), amount, wallet.balance, bounty_id=str(bounty.id))
        return transaction

    async def escrow_status(self, db: AsyncSession, bounty_id: str) -> Tuple[str, int]:
        """Returns (none|held|released|refunded, amount in cents)"""
        escrow = await self._bounty_transaction(db, bounty_id, WalletTransactionType.ESCROW)
        if not escrow:
            return "none", 0
        amount = abs(escrow.amount)
        if await self._bounty_transaction(db, bounty_id, WalletTransactionType.RELEASE):
            return "released", amount
        if await self._bounty_transaction(db, bounty_id, WalletTransactionType.REFUND):
            return "refunded", amount
        return "held", amount

    async def has_open_escrow(self, db: AsyncSession, bounty_id: str) -> bool:
        status, _ = await self.escrow_status(db, bounty_id)
        return status == "held"


# Singleton instance
wallet_service = WalletService()
