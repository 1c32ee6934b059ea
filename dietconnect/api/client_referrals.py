"""Referral code sharing for signed-in clients."""

from urllib.parse import quote

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dietconnect.core.client_auth import require_client
from dietconnect.core.database import get_db
from dietconnect.core.errors import bad_request
from dietconnect.models.models import Client
from dietconnect.schemas.schemas import ReferralCodeResponse, ReferralStats, ReferralValidation
from dietconnect.services.referral_service import (
    REFERRAL_CODE_LENGTH,
    ensure_referral_code,
    find_referrer,
    free_months_available,
    referrals_until_next_reward,
    share_message,
    sync_referral_count,
)

router = APIRouter(prefix="/client/referral", tags=["client-referrals"])


@router.get("/code", response_model=ReferralCodeResponse)
def get_referral_code(client: Client = Depends(require_client), db: Session = Depends(get_db)):
    """The client's referral code with a ready-to-send share message."""
    code = ensure_referral_code(db, client)
    message = share_message(client, client.organization.name)
    return ReferralCodeResponse(
        referral_code=code,
        share_message=message,
        whatsapp_link=f"https://wa.me/?text={quote(message)}",
    )


@router.get("/stats", response_model=ReferralStats)
def get_referral_stats(client: Client = Depends(require_client), db: Session = Depends(get_db)):
    benefit = sync_referral_count(db, client)
    referred = db.query(Client).filter(
        Client.referred_by_client_id == client.id,
        Client.deleted_at.is_(None),
    ).order_by(Client.created_at.desc()).limit(10).all()

    return ReferralStats(
        referral_code=client.referral_code,
        referral_count=benefit.referral_count,
        free_months_earned=benefit.free_months_earned,
        free_months_used=benefit.free_months_used or 0,
        free_months_available=free_months_available(benefit),
        referrals_until_next_reward=referrals_until_next_reward(benefit.referral_count),
        referred_clients=[
            {"id": c.id, "full_name": c.full_name, "joined_at": c.created_at} for c in referred
        ],
    )


@router.get("/validate/{code}", response_model=ReferralValidation)
def validate_referral_code(code: str, client: Client = Depends(require_client), db: Session = Depends(get_db)):
    if len(code.strip()) != REFERRAL_CODE_LENGTH:
        raise bad_request("Referral code must be 6 characters", "INVALID_CODE")

    referrer = find_referrer(db, client.org_id, code)
    if not referrer or referrer.id == client.id:
        return ReferralValidation(valid=False)
    return ReferralValidation(valid=True, referrer_name=referrer.full_name)
