from fastapi import APIRouter
from bountyexpo.api.v1.endpoints import auth, bounties, requests, conversations, wallet, health

api_router = APIRouter()

api_router.include_router(health.router)


@api_router.get("/health", tags=["Health"])
async def health_check():
    """Simple health check endpoint for load balancer"""
    return {"status": "healthy", "service": "bountyexpo-api"}


api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(bounties.router)
api_router.include_router(requests.router)
api_router.include_router(conversations.router)
api_router.include_router(wallet.router)
