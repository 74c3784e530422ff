"""
Wallet Endpoints

Endpoints:
- GET /wallet - Balance and lifetime totals
- GET /wallet/transactions - Ledger history
- POST /wallet/deposit - Add funds
- POST /wallet/withdraw - Withdraw funds (rate limited: 5/min)
"""

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from bountyexpo.core.config import settings
from bountyexpo.core.database import get_db
from bountyexpo.core.rate_limiter import limiter
from bountyexpo.modules.auth.dependencies import get_current_user
from bountyexpo.models.user import User
from bountyexpo.models.wallet import WalletTransaction
from bountyexpo.services.wallet_service import wallet_service
from bountyexpo.schemas.wallet import (
    DepositRequest,
    WalletResponse,
    WalletTransactionListResponse,
    WalletTransactionResponse,
    WalletTransactionStatusEnum,
    WalletTransactionTypeEnum,
    WithdrawRequest,
)

router = APIRouter(prefix="/wallet", tags=["Wallet"])


def to_transaction_response(transaction: WalletTransaction) -> WalletTransactionResponse:
    return WalletTransactionResponse(
        id=transaction.id,
        wallet_id=transaction.wallet_id,
        user_id=transaction.user_id,
        bounty_id=transaction.bounty_id,
        transaction_type=transaction.transaction_type.value,
        status=transaction.status.value,
        amount=transaction.amount,
        amount_usd=transaction.amount_usd,
        balance_after=transaction.balance_after,
        description=transaction.description,
        reference=transaction.reference,
        created_at=transaction.created_at,
    )


@router.get("", response_model=WalletResponse)
async def get_wallet(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Wallet balance (created on first access)"""
    wallet = await wallet_service.get_wallet(db, current_user.id)
    await db.commit()

    return WalletResponse(
        id=wallet.id,
        user_id=wallet.user_id,
        balance=wallet.balance,
        balance_usd=wallet.balance_usd,
        total_deposited=wallet.total_deposited,
        total_withdrawn=wallet.total_withdrawn,
        total_escrowed=wallet.total_escrowed,
        total_earned=wallet.total_earned,
        currency=settings.CURRENCY,
        created_at=wallet.created_at,
        updated_at=wallet.updated_at,
    )


@router.get("/transactions", response_model=WalletTransactionListResponse)
async def get_transactions(
    transaction_type: Optional[WalletTransactionTypeEnum] = Query(None, alias="type"),
    status_filter: Optional[WalletTransactionStatusEnum] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Ledger history, newest first"""
    transactions, total = await wallet_service.list_transactions(
        db,
        current_user.id,
        transaction_type=transaction_type.value if transaction_type else None,
        status=status_filter.value if status_filter else None,
        page=page,
        page_size=page_size,
    )
    wallet = await wallet_service.get_wallet(db, current_user.id)

    return WalletTransactionListResponse(
        transactions=[to_transaction_response(t) for t in transactions],
        total=total,
        page=page,
        page_size=page_size,
        current_balance=wallet.balance,
    )


@router.post("/deposit", response_model=WalletTransactionResponse, status_code=status.HTTP_201_CREATED)
async def deposit(
    data: DepositRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Add funds; resending the same idempotency_key returns the original deposit"""
    transaction = await wallet_service.deposit(
        db,
        current_user.id,
        amount=data.amount,
        reference=data.reference,
        idempotency_key=data.idempotency_key,
    )
    return to_transaction_response(transaction)


@router.post("/withdraw", response_model=WalletTransactionResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
async def withdraw(
    request: Request,
    data: WithdrawRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Withdraw to a payout account (rate limited: 5/min)"""
    transaction = await wallet_service.withdraw(
        db,
        current_user.id,
        amount=data.amount,
        destination=data.destination,
        idempotency_key=data.idempotency_key,
    )
    return to_transaction_response(transaction)
