"""
Auth Endpoints

Endpoints:
- POST /auth/register - Create an account (rate limited: 3/min)
- POST /auth/login - Email/password login (rate limited: 5/min)
- POST /auth/refresh - New token pair from a refresh token
- GET /auth/me - Current profile
- PATCH /auth/me - Edit profile
"""

from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bountyexpo.core.database import get_db
from bountyexpo.core.security import create_access_token, create_refresh_token, decode_token
from bountyexpo.core.logging_config import logger, set_user_id
from bountyexpo.core.rate_limiter import limiter
from bountyexpo.models.user import User
from bountyexpo.modules.auth.dependencies import get_current_user
from bountyexpo.services.user_service import user_service
from bountyexpo.schemas.auth import (
    LoginResponse,
    ProfileUpdate,
    RefreshTokenRequest,
    Token,
    UserLogin,
    UserRegister,
    UserResponse,
)

router = APIRouter()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _token_pair(user: User) -> Token:
    claims = {"sub": str(user.id), "email": user.email}
    return Token(
        access_token=create_access_token(claims),
        refresh_token=create_refresh_token(claims),
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("3/minute")
async def register(
    request: Request,
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    """Create an account; usernames are stored without the leading @"""
    if await user_service.get_by_email(db, user_data.email):
        logger.log_auth_event(
            "register", False, user_data.email,
            reason="email already registered", client_ip=_client_ip(request),
        )
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    if user_data.username and await user_service.username_taken(db, user_data.username):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already taken")

    user = await user_service.create_user(
        db,
        email=user_data.email,
        password=user_data.password,
        username=user_data.username,
        full_name=user_data.full_name,
    )
    logger.log_auth_event("register", True, user.email, client_ip=_client_ip(request))
    return user


@router.post("/login", response_model=LoginResponse)
@limiter.limit("5/minute")
async def login(
    request: Request,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    user = await user_service.authenticate(db, credentials.email, credentials.password)
    if not user:
        logger.log_auth_event(
            "login", False, credentials.email,
            reason="bad credentials", client_ip=_client_ip(request),
        )
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect email or password")

    if not user.is_active:
        logger.log_auth_event(
            "login", False, credentials.email,
            reason="inactive", client_ip=_client_ip(request),
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is inactive")

    await user_service.record_login(db, user)
    set_user_id(user.id)
    logger.log_auth_event("login", True, user.email, client_ip=_client_ip(request))

    tokens = _token_pair(user)
    return LoginResponse(**tokens.model_dump(), user=UserResponse.model_validate(user))


@router.post("/refresh", response_model=Token)
async def refresh_token(
    body: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db)
):
    """Exchange a refresh token for a new token pair"""
    payload = decode_token(body.refresh_token)
    if payload.get("type") != "refresh":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token type")

    user = await user_service.get_by_id(db, payload.get("sub", ""))
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")

    logger.log_auth_event("refresh", True, user.email)
    return _token_pair(user)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.patch("/me", response_model=UserResponse)
async def update_me(
    profile: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Edit-profile screen fields"""
    changes = profile.model_dump(exclude_unset=True)

    username = changes.get("username")
    if username and await user_service.username_taken(db, username, exclude_id=current_user.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already taken")

    return await user_service.update_profile(db, current_user, changes)
