"""OTP sign-in and refresh-token rotation for mobile clients."""

import logging
import uuid
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from dietconnect.core.client_auth import (
    create_access_token,
    generate_otp,
    hash_secret,
    new_refresh_token,
    otp_matches,
)
from dietconnect.core.config import settings
from dietconnect.core.database import utcnow
from dietconnect.core.errors import AppError, bad_request, not_found, unauthorized
from dietconnect.core.logging_config import mask_phone
from dietconnect.models.models import Client, ClientRefreshToken, OtpChallenge

logger = logging.getLogger(__name__)

MIN_PHONE_LENGTH = 10


def _active_clients_by_phone(db: Session, phone: str):
    return db.query(Client).filter(
        Client.phone == phone,
        Client.is_active.is_(True),
        Client.deleted_at.is_(None),
    )


def request_otp(db: Session, phone: str) -> str:
    """
    Create a fresh OTP challenge for the client owning ``phone``.

    Returns:
        The plain code, to be delivered to the client
    """
    phone = (phone or "").strip()
    if len(phone) < MIN_PHONE_LENGTH:
        raise bad_request("Valid phone number is required", "INVALID_PHONE")

    clients = _active_clients_by_phone(db, phone).limit(2).all()
    if len(clients) > 1:
        raise AppError(
            "Multiple accounts found for this phone number. Please contact your dietitian.",
            400,
            "AMBIGUOUS_ACCOUNT",
        )
    if not clients:
        raise not_found("Client with this phone number", "CLIENT_NOT_FOUND")

    code = generate_otp()
    expires_at = utcnow() + timedelta(seconds=settings.OTP_TTL_SECONDS)

    challenge = db.query(OtpChallenge).filter(OtpChallenge.phone == phone).first()
    if challenge:
        challenge.org_id = clients[0].org_id
        challenge.code_hash = hash_secret(code)
        challenge.expires_at = expires_at
    else:
        db.add(OtpChallenge(
            phone=phone,
            org_id=clients[0].org_id,
            code_hash=hash_secret(code),
            expires_at=expires_at,
        ))
    db.commit()

    logger.info("OTP issued for %s", mask_phone(phone))
    return code


def verify_otp(db: Session, phone: str, otp: str) -> Client:
    """Check a submitted code and consume the challenge. Returns the signed-in client."""
    phone = phone.strip()
    challenge = db.query(OtpChallenge).filter(OtpChallenge.phone == phone).first()

    if not challenge or challenge.expires_at < utcnow():
        if challenge:
            db.delete(challenge)
            db.commit()
        raise bad_request("OTP expired or not found. Please request a new one.", "OTP_EXPIRED")

    if not otp_matches(otp.strip(), challenge.code_hash):
        logger.info("Invalid OTP submitted for %s", mask_phone(phone))
        raise bad_request("Invalid OTP", "INVALID_OTP")

    org_id = challenge.org_id
    db.delete(challenge)
    db.commit()

    client = _active_clients_by_phone(db, phone).filter(Client.org_id == org_id).first()
    if not client:
        raise not_found("Client", "CLIENT_NOT_FOUND")

    logger.info("Client %s signed in", client.id)
    return client


def _store_refresh_token(db: Session, client_id: str, family_id: str) -> tuple[str, ClientRefreshToken]:
    raw = new_refresh_token()
    record = ClientRefreshToken(
        client_id=client_id,
        token_hash=hash_secret(raw),
        family_id=family_id,
        expires_at=utcnow() + timedelta(days=settings.CLIENT_REFRESH_TOKEN_TTL_DAYS),
    )
    db.add(record)
    db.flush()
    return raw, record


def issue_token_pair(db: Session, client: Client) -> dict:
    """Access JWT plus a refresh token starting a new rotation family."""
    raw, _ = _store_refresh_token(db, client.id, str(uuid.uuid4()))
    db.commit()
    access = create_access_token(client.id)
    return {
        "token": access,
        "access_token": access,
        "refresh_token": raw,
        "token_type": "bearer",
        "expires_in": settings.CLIENT_ACCESS_TOKEN_TTL_SECONDS,
    }


def revoke_family(db: Session, family_id: str) -> int:
    now = utcnow()
    count = db.query(ClientRefreshToken).filter(
        ClientRefreshToken.family_id == family_id,
        ClientRefreshToken.revoked_at.is_(None),
    ).update({ClientRefreshToken.revoked_at: now}, synchronize_session=False)
    db.commit()
    return count


def revoke_client_tokens(db: Session, client_id: str) -> int:
    """Revoke every live refresh token of a client (logout everywhere)."""
    now = utcnow()
    count = db.query(ClientRefreshToken).filter(
        ClientRefreshToken.client_id == client_id,
        ClientRefreshToken.revoked_at.is_(None),
    ).update({ClientRefreshToken.revoked_at: now}, synchronize_session=False)
    db.commit()
    logger.info("Revoked %s refresh tokens for client %s", count, client_id)
    return count


def rotate_refresh_token(db: Session, raw_token: str) -> dict:
    """
    Exchange a refresh token for a new pair.

    A token can be used once. Presenting an already-rotated token revokes
    the whole family, since either the client or an attacker holds a copy.
    """
    record: Optional[ClientRefreshToken] = db.query(ClientRefreshToken).filter(
        ClientRefreshToken.token_hash == hash_secret(raw_token)
    ).first()
    if not record:
        raise unauthorized("Invalid refresh token", "INVALID_REFRESH_TOKEN")

    if record.revoked_at is not None:
        revoked = revoke_family(db, record.family_id)
        logger.warning(
            "Refresh token reuse for client %s, revoked %s tokens", record.client_id, revoked
        )
        raise unauthorized("Invalid refresh token", "INVALID_REFRESH_TOKEN")

    if record.expires_at < utcnow():
        raise unauthorized("Refresh token expired", "INVALID_REFRESH_TOKEN")

    client = db.query(Client).filter(
        Client.id == record.client_id,
        Client.is_active.is_(True),
        Client.deleted_at.is_(None),
    ).first()
    if not client:
        raise unauthorized("Invalid or inactive client", "INVALID_CLIENT")

    raw, successor = _store_refresh_token(db, client.id, record.family_id)
    record.revoked_at = utcnow()
    record.replaced_by_id = successor.id
    db.commit()

    access = create_access_token(client.id)
    return {
        "token": access,
        "access_token": access,
        "refresh_token": raw,
        "token_type": "bearer",
        "expires_in": settings.CLIENT_ACCESS_TOKEN_TTL_SECONDS,
    }
