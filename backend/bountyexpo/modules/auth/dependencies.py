"""
Auth dependencies

Resolve the bearer token to a User and tag the request with the user id,
which the rate limiter keys on and the logs carry.
"""

import uuid
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from bountyexpo.core.database import get_db
from bountyexpo.core.logging_config import set_user_id
from bountyexpo.core.security import decode_token
from bountyexpo.models.user import User
from bountyexpo.services.user_service import user_service

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


async def _user_from_token(token: str, db: AsyncSession) -> User:
    claims = decode_token(token)
    if claims.get("type") != "access":
        raise _unauthorized("Invalid token type")

    subject = claims.get("sub")
    try:
        uuid.UUID(str(subject))
    except ValueError:
        raise _unauthorized("Invalid token subject")

    user = await user_service.get_by_id(db, subject)
    if not user:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive")
    return user


def _tag(request: Request, user: User) -> User:
    request.state.user_id = user.id
    set_user_id(user.id)
    return user


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    user = await _user_from_token(credentials.credentials, db)
    return _tag(request, user)


async def get_optional_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """The caller when a bearer token is sent, None for anonymous browsing"""
    if not credentials:
        return None
    user = await _user_from_token(credentials.credentials, db)
    return _tag(request, user)
