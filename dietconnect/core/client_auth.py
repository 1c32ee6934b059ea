"""
Mobile client authentication primitives.

Clients sign in with a one-time password sent to their phone and receive a
short-lived access JWT plus an opaque refresh token. Only HMAC digests of
OTPs and refresh tokens are ever stored.
"""

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlalchemy.orm import Session

from dietconnect.core.auth import security
from dietconnect.core.config import settings
from dietconnect.core.database import get_db, utcnow
from dietconnect.core.errors import unauthorized
from dietconnect.models.models import Client

OTP_LENGTH = 6
ACCESS_TOKEN_TYPE = "client_access"
JWT_ALGORITHM = "HS256"


def generate_otp() -> str:
    """Six random digits from the OS CSPRNG, never starting with zero."""
    return str(100000 + secrets.randbelow(900000))


def hash_secret(value: str) -> str:
    return hmac.new(
        settings.CLIENT_JWT_SECRET.encode(), value.encode(), hashlib.sha256
    ).hexdigest()


def otp_matches(submitted: str, stored_hash: str) -> bool:
    """Constant-time comparison of a submitted code against its stored digest."""
    if len(submitted) != OTP_LENGTH:
        return False
    return hmac.compare_digest(hash_secret(submitted), stored_hash)


def create_access_token(client_id: str, now: Optional[datetime] = None) -> str:
    now = now or utcnow()
    claims = {
        "sub": client_id,
        "type": ACCESS_TOKEN_TYPE,
        "iat": now,
        "exp": now + timedelta(seconds=settings.CLIENT_ACCESS_TOKEN_TTL_SECONDS),
    }
    return jwt.encode(claims, settings.CLIENT_JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """Return the client id inside a valid access token."""
    try:
        payload = jwt.decode(token, settings.CLIENT_JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise unauthorized("Invalid token", "INVALID_TOKEN")
    if payload.get("type") != ACCESS_TOKEN_TYPE or not payload.get("sub"):
        raise unauthorized("Invalid token", "INVALID_TOKEN")
    return payload["sub"]


def new_refresh_token() -> str:
    return secrets.token_urlsafe(48)


async def require_client(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Client:
    """Authenticate a mobile-app request and load the active client."""
    if credentials is None:
        raise unauthorized("No token provided")

    client_id = decode_access_token(credentials.credentials)
    client = db.query(Client).filter(
        Client.id == client_id,
        Client.is_active.is_(True),
        Client.deleted_at.is_(None),
    ).first()
    if not client:
        raise unauthorized("Invalid or inactive client", "INVALID_CLIENT")
    return client
