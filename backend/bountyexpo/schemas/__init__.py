# Pydantic schemas
from bountyexpo.schemas.bounty import (
    BountyCreate,
    BountyUpdate,
    BountyResponse,
    BountyListResponse,
    FeedResponse,
    MapResponse,
    BountyRequestResponse,
    EscrowStatusResponse,
)
from bountyexpo.schemas.wallet import (
    DepositRequest,
    WithdrawRequest,
    WalletResponse,
    WalletTransactionResponse,
)
