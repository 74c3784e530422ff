from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Enum as SQLEnum, Index
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from bountyexpo.core.database import Base
from bountyexpo.core.types import GUID, generate_uuid


class WalletTransactionType(str, enum.Enum):
    """Ledger entry type"""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    ESCROW = "escrow"      # poster funds held for a bounty
    RELEASE = "release"    # held funds paid to the hunter
    REFUND = "refund"      # held funds returned to the poster


class WalletTransactionStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Wallet(Base):
    """
    In-app wallet

    Posters fund it to escrow bounty rewards; hunters receive released
    escrow into it and can withdraw.
    """
    __tablename__ = "wallets"

    id = Column(GUID, primary_key=True, default=generate_uuid)

    # One wallet per user
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)

    # Balance in cents (e.g., 10000 = $100)
    balance = Column(Integer, default=0, nullable=False)

    # Lifetime stats (all in cents)
    total_deposited = Column(Integer, default=0, nullable=False)
    total_withdrawn = Column(Integer, default=0, nullable=False)
    total_escrowed = Column(Integer, default=0, nullable=False)
    total_earned = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="wallet")
    transactions = relationship("WalletTransaction", back_populates="wallet", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Wallet {self.user_id}: ${self.balance / 100:.2f}>"

    @property
    def balance_usd(self) -> float:
        return self.balance / 100


class WalletTransaction(Base):
    """
    Individual ledger entry

    Amount is signed: negative for debits (withdrawal, escrow), positive for
    credits (deposit, release, refund).
    """
    __tablename__ = "wallet_transactions"

    __table_args__ = (
        Index('ix_wallet_transactions_wallet', 'wallet_id'),
        Index('ix_wallet_transactions_user', 'user_id'),
        Index('ix_wallet_transactions_bounty', 'bounty_id'),
        Index('ix_wallet_transactions_type', 'transaction_type'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)

    wallet_id = Column(GUID, ForeignKey("wallets.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    bounty_id = Column(GUID, ForeignKey("bounties.id", ondelete="SET NULL"), nullable=True)

    transaction_type = Column(SQLEnum(WalletTransactionType), nullable=False)
    status = Column(SQLEnum(WalletTransactionStatus), default=WalletTransactionStatus.COMPLETED, nullable=False)

    amount = Column(Integer, nullable=False)
    balance_after = Column(Integer, nullable=False)

    description = Column(String(500), nullable=True)
    reference = Column(String(255), nullable=True)  # payment reference or payout destination
    idempotency_key = Column(String(255), unique=True, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    wallet = relationship("Wallet", back_populates="transactions")

    def __repr__(self):
        return f"<WalletTransaction {self.transaction_type.value if self.transaction_type else None}: {self.amount}>"

    @property
    def amount_usd(self) -> float:
        return self.amount / 100
