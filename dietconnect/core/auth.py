"""Staff authentication against the identity provider's JWTs."""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlalchemy.orm import Session

from dietconnect.core.config import settings
from dietconnect.core.database import get_db
from dietconnect.core.errors import AppError, forbidden, unauthorized
from dietconnect.models.models import User, UserRole

logger = logging.getLogger(__name__)

# HTTP Bearer token extractor
security = HTTPBearer(auto_error=False)


class IdentityClaims:
    """The identity-provider user behind a verified token."""
    def __init__(self, user_id: str, email: Optional[str] = None, name: Optional[str] = None):
        self.id = user_id
        self.email = email
        self.name = name


def verify_identity_token(token: str) -> dict:
    """
    Verify a JWT issued by the identity provider.

    Audience and issuer are only checked when configured.
    """
    if not settings.IDP_JWT_SECRET:
        raise AppError("Identity provider JWT secret not configured", 500, "AUTH_NOT_CONFIGURED")

    options = {"verify_aud": bool(settings.IDP_JWT_AUDIENCE)}
    kwargs = {}
    if settings.IDP_JWT_AUDIENCE:
        kwargs["audience"] = settings.IDP_JWT_AUDIENCE
    if settings.IDP_JWT_ISSUER:
        kwargs["issuer"] = settings.IDP_JWT_ISSUER

    try:
        return jwt.decode(
            token,
            settings.IDP_JWT_SECRET,
            algorithms=[settings.IDP_JWT_ALGORITHM],
            options=options,
            **kwargs,
        )
    except JWTError as e:
        raise unauthorized(f"Invalid token: {e}", "INVALID_TOKEN")


async def get_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> IdentityClaims:
    """Require a valid identity-provider token. The user may not be registered yet."""
    if credentials is None:
        raise unauthorized("Authentication required")

    payload = verify_identity_token(credentials.credentials)
    user_id = payload.get("sub")
    if not user_id:
        raise unauthorized("Invalid token: no user ID", "INVALID_TOKEN")

    return IdentityClaims(user_id=user_id, email=payload.get("email"), name=payload.get("name"))


async def get_current_staff(
    identity: IdentityClaims = Depends(get_identity),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the registered, active staff user for the token."""
    user = db.query(User).filter(User.idp_user_id == identity.id).first()
    if not user:
        raise unauthorized("User not registered", "USER_NOT_REGISTERED")
    if not user.is_active:
        raise forbidden("User account is inactive", "USER_INACTIVE")
    return user


def require_role(*roles: UserRole):
    """Dependency factory restricting an endpoint to the given staff roles."""
    allowed = {UserRole(r) for r in roles}

    async def checker(user: User = Depends(get_current_staff)) -> User:
        if user.role not in allowed:
            logger.info("User %s with role %s denied", user.id, user.role.value)
            raise forbidden("Insufficient permissions")
        return user

    return checker


require_admin = require_role(UserRole.OWNER, UserRole.ADMIN)
require_owner = require_role(UserRole.OWNER)
