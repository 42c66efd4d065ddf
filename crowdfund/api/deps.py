"""
Request dependencies: shared app components and bearer authentication
"""
from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
import structlog

from crowdfund.core.errors import AuthenticationError, AuthorizationError
from crowdfund.core.security import PasswordHasher, TokenIssuer
from crowdfund.database import get_db
from crowdfund.middleware.logging import bind_user
from crowdfund.models import User
from crowdfund.services.base import guarded

logger = structlog.get_logger(__name__)
security = HTTPBearer(auto_error=False)


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


async def authenticate(
    db: Session,
    issuer: TokenIssuer,
    credentials: Optional[HTTPAuthorizationCredentials]
) -> User:
    """Resolve a bearer credential to the user it was issued for"""
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise AuthenticationError("No token provided. Access denied.")

    user_id = issuer.verify(credentials.credentials)

    user = await guarded(db, lambda: db.get(User, user_id), "Failed to load user", user_id=user_id)
    if user is None:
        logger.info("Token subject no longer exists", user_id=user_id)
        raise AuthenticationError("User not found. Token invalid.")
    return user


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer)
) -> User:
    user = await authenticate(db, issuer, credentials)
    bind_user(request, user.id)
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        logger.warning("Admin access denied", user_id=user.id)
        raise AuthorizationError("Access denied. Admin privileges required.")
    return user
