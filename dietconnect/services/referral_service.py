"""
Client referral codes and rewards.

Every client gets a short shareable code. Each new client who signs up with
it counts towards the referrer's rewards: three referrals earn one free
month.
"""

import logging
import secrets
import time
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from dietconnect.models.models import Client, ReferralBenefit

logger = logging.getLogger(__name__)

# No 0/O, 1/I/L to keep codes readable over the phone
REFERRAL_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
REFERRAL_CODE_LENGTH = 6
REFERRALS_PER_FREE_MONTH = 3
MAX_CODE_ATTEMPTS = 10


def _random_code() -> str:
    return "".join(secrets.choice(REFERRAL_ALPHABET) for _ in range(REFERRAL_CODE_LENGTH))


def _base36(number: int) -> str:
    digits = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    out = ""
    while number:
        number, rem = divmod(number, 36)
        out = digits[rem] + out
    return out or "0"


def generate_unique_referral_code(db: Session) -> str:
    """A code not yet used by any client; falls back to a timestamp suffix."""
    code = _random_code()
    for _ in range(MAX_CODE_ATTEMPTS):
        if not db.query(Client.id).filter(Client.referral_code == code).first():
            return code
        code = _random_code()
    logger.warning("Referral code space crowded, appending suffix")
    return code[:4] + _base36(int(time.time() * 1000))[-4:]


def ensure_referral_code(db: Session, client: Client) -> str:
    if not client.referral_code:
        client.referral_code = generate_unique_referral_code(db)
        db.commit()
    return client.referral_code


def find_referrer(db: Session, org_id: str, code: Optional[str]) -> Optional[Client]:
    """Active client in the organization owning ``code`` (case-insensitive)."""
    if not code:
        return None
    return db.query(Client).filter(
        Client.org_id == org_id,
        Client.referral_code == code.strip().upper(),
        Client.is_active.is_(True),
        Client.deleted_at.is_(None),
    ).first()


def get_or_create_benefit(db: Session, client_id: str) -> ReferralBenefit:
    benefit = db.query(ReferralBenefit).filter(ReferralBenefit.client_id == client_id).first()
    if not benefit:
        benefit = ReferralBenefit(
            client_id=client_id, referral_count=0, free_months_earned=0, free_months_used=0
        )
        db.add(benefit)
        db.flush()
    return benefit


def process_referral_benefit(db: Session, referrer_id: str) -> ReferralBenefit:
    """Count one more referral and grant any free month it unlocks."""
    benefit = get_or_create_benefit(db, referrer_id)
    benefit.referral_count = (benefit.referral_count or 0) + 1
    earned = benefit.referral_count // REFERRALS_PER_FREE_MONTH
    if earned > (benefit.free_months_earned or 0):
        benefit.free_months_earned = earned
        logger.info("Client %s earned free month #%s", referrer_id, earned)
    db.commit()
    return benefit


def sync_referral_count(db: Session, client: Client) -> ReferralBenefit:
    """Recount active referred clients; earned months never decrease."""
    count = db.query(func.count(Client.id)).filter(
        Client.referred_by_client_id == client.id,
        Client.deleted_at.is_(None),
    ).scalar() or 0
    benefit = get_or_create_benefit(db, client.id)
    benefit.referral_count = count
    benefit.free_months_earned = max(
        benefit.free_months_earned or 0, count // REFERRALS_PER_FREE_MONTH
    )
    db.commit()
    return benefit


def referrals_until_next_reward(count: int) -> int:
    return REFERRALS_PER_FREE_MONTH - (count % REFERRALS_PER_FREE_MONTH)


def free_months_available(benefit: Optional[ReferralBenefit]) -> int:
    if benefit is None:
        return 0
    return max(0, (benefit.free_months_earned or 0) - (benefit.free_months_used or 0))


def share_message(client: Client, org_name: str) -> str:
    return (
        f"I've been following my diet plan with {org_name}! "
        f"Join using my referral code {client.referral_code} to get started."
    )
