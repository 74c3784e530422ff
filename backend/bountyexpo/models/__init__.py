# Re-export all models for convenient imports
from bountyexpo.models.user import User
from bountyexpo.models.bounty import Bounty, BountyStatus, WorkType, BountyRequest, RequestStatus
from bountyexpo.models.conversation import Conversation, ConversationParticipant, Message
from bountyexpo.models.wallet import (
    Wallet,
    WalletTransaction,
    WalletTransactionType,
    WalletTransactionStatus,
)

__all__ = [
    # User
    "User",
    # Bounties
    "Bounty",
    "BountyStatus",
    "WorkType",
    "BountyRequest",
    "RequestStatus",
    # Messaging
    "Conversation",
    "ConversationParticipant",
    "Message",
    # Wallet
    "Wallet",
    "WalletTransaction",
    "WalletTransactionType",
    "WalletTransactionStatus",
]
