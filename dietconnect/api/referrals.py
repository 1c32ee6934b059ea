"""Referral program administration."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session, aliased

from dietconnect.api.common import get_client_for_staff
from dietconnect.core.auth import require_admin
from dietconnect.core.database import get_db
from dietconnect.core.errors import bad_request
from dietconnect.core.pagination import PageParams, page_params, paginate
from dietconnect.models.models import Client, ReferralBenefit, ReferralSource, User
from dietconnect.schemas.schemas import (
    ClientReferralSummary,
    OrgReferralStats,
    Page,
    RedeemResponse,
    ReferredClient,
)
from dietconnect.services.referral_service import free_months_available, get_or_create_benefit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/referrals", tags=["referrals"])


def _summary(client: Client) -> ClientReferralSummary:
    benefit = client.referral_benefit
    return ClientReferralSummary(
        id=client.id,
        full_name=client.full_name,
        email=client.email,
        phone=client.phone,
        referral_code=client.referral_code,
        referral_source=client.referral_source,
        referred_by_name=client.referred_by.full_name if client.referred_by else None,
        referral_count=benefit.referral_count if benefit else 0,
        free_months_earned=benefit.free_months_earned if benefit else 0,
        free_months_used=benefit.free_months_used if benefit else 0,
        free_months_available=free_months_available(benefit),
    )


@router.get("/stats", response_model=OrgReferralStats)
def get_referral_stats(user: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Organization-wide referral totals, source breakdown and top referrers."""
    clients = db.query(Client).filter(Client.org_id == user.org_id, Client.deleted_at.is_(None))

    with_codes = clients.filter(Client.referral_code.isnot(None)).count()
    referred = clients.filter(Client.referred_by_client_id.isnot(None)).count()

    totals = db.query(
        func.coalesce(func.sum(ReferralBenefit.referral_count), 0),
        func.coalesce(func.sum(ReferralBenefit.free_months_earned), 0),
        func.coalesce(func.sum(ReferralBenefit.free_months_used), 0),
    ).select_from(ReferralBenefit).join(Client, Client.id == ReferralBenefit.client_id).filter(
        Client.org_id == user.org_id
    ).one()

    breakdown = {source.value: 0 for source in ReferralSource}
    for source, count in (
        db.query(Client.referral_source, func.count(Client.id))
        .filter(Client.org_id == user.org_id, Client.deleted_at.is_(None), Client.referral_source.isnot(None))
        .group_by(Client.referral_source)
        .all()
    ):
        breakdown[source.value] = count

    top = (
        db.query(Client, ReferralBenefit)
        .join(ReferralBenefit, ReferralBenefit.client_id == Client.id)
        .filter(Client.org_id == user.org_id, ReferralBenefit.referral_count > 0)
        .order_by(ReferralBenefit.referral_count.desc())
        .limit(10)
        .all()
    )

    return {
        "total_clients_with_codes": with_codes,
        "total_referred_clients": referred,
        "total_referrals": int(totals[0]),
        "total_free_months_earned": int(totals[1]),
        "total_free_months_used": int(totals[2]),
        "source_breakdown": breakdown,
        "top_referrers": [
            {
                "client_id": client.id,
                "full_name": client.full_name,
                "referral_code": client.referral_code,
                "referral_count": benefit.referral_count,
                "free_months_earned": benefit.free_months_earned,
            }
            for client, benefit in top
        ],
    }


@router.get("/clients", response_model=Page[ClientReferralSummary])
def list_referral_clients(
    source: Optional[ReferralSource] = None,
    has_referrals: Optional[bool] = None,
    params: PageParams = Depends(page_params),
    user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    query = db.query(Client).filter(Client.org_id == user.org_id, Client.deleted_at.is_(None))
    if source:
        query = query.filter(Client.referral_source == source)
    if has_referrals is not None:
        referrer = aliased(Client)
        has_any = db.query(referrer.id).filter(referrer.referred_by_client_id == Client.id).exists()
        query = query.filter(has_any if has_referrals else ~has_any)

    items, meta = paginate(query.order_by(Client.created_at.desc()), params)
    return {"items": [_summary(c) for c in items], "meta": meta}


@router.get("/clients/{client_id}/referrals", response_model=Page[ReferredClient])
def list_client_referrals(
    client_id: str,
    params: PageParams = Depends(page_params),
    user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    client = get_client_for_staff(db, user, client_id)
    query = db.query(Client).filter(
        Client.referred_by_client_id == client.id,
        Client.deleted_at.is_(None),
    )
    items, meta = paginate(query.order_by(Client.created_at.desc()), params)
    return {
        "items": [{"id": c.id, "full_name": c.full_name, "joined_at": c.created_at} for c in items],
        "meta": meta,
    }


@router.post("/clients/{client_id}/redeem", response_model=RedeemResponse)
def redeem_free_month(client_id: str, user: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Use one earned free month on the client's subscription."""
    client = get_client_for_staff(db, user, client_id)
    benefit = get_or_create_benefit(db, client.id)
    if free_months_available(benefit) <= 0:
        raise bad_request("No free months available to redeem", "NO_FREE_MONTHS")

    benefit.free_months_used = (benefit.free_months_used or 0) + 1
    db.commit()
    logger.info("Client %s redeemed a free month (by %s)", client.id, user.id)
    return RedeemResponse(
        client_id=client.id,
        free_months_used=benefit.free_months_used,
        free_months_available=free_months_available(benefit),
    )
