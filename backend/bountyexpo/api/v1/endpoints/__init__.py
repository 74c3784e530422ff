# API endpoints
from . import auth, bounties, requests, conversations, wallet, health

__all__ = ["auth", "bounties", "requests", "conversations", "wallet", "health"]
