"""
Wallet Schemas - Request/Response models for the in-app wallet
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from enum import Enum


class WalletTransactionTypeEnum(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    ESCROW = "escrow"
    RELEASE = "release"
    REFUND = "refund"


class WalletTransactionStatusEnum(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class DepositRequest(BaseModel):
    amount: int = Field(..., gt=0, description="Amount in cents")
    reference: Optional[str] = Field(None, max_length=255, description="Payment provider reference")
    idempotency_key: Optional[str] = Field(None, max_length=255)


class WithdrawRequest(BaseModel):
    amount: int = Field(..., gt=0, description="Amount in cents")
    destination: str = Field(..., min_length=4, max_length=255, description="Payout account identifier")
    idempotency_key: Optional[str] = Field(None, max_length=255)


class WalletResponse(BaseModel):
    id: str
    user_id: str
    balance: int  # in cents
    balance_usd: float
    total_deposited: int
    total_withdrawn: int
    total_escrowed: int
    total_earned: int
    currency: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class WalletTransactionResponse(BaseModel):
    id: str
    wallet_id: str
    user_id: str
    bounty_id: Optional[str] = None
    transaction_type: WalletTransactionTypeEnum
    status: WalletTransactionStatusEnum
    amount: int  # signed, in cents
    amount_usd: float
    balance_after: int
    description: Optional[str] = None
    reference: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class WalletTransactionListResponse(BaseModel):
    transactions: List[WalletTransactionResponse]
    total: int
    page: int
    page_size: int
    current_balance: int
