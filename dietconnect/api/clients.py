"""Client management and weight tracking for staff."""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from dietconnect.api.common import client_query, get_client_for_staff
from dietconnect.core.auth import get_current_staff, require_admin
from dietconnect.core.compliance import local_today
from dietconnect.core.database import get_db, utcnow
from dietconnect.core.errors import bad_request, conflict, forbidden
from dietconnect.core.pagination import PageParams, page_params, paginate
from dietconnect.models.models import Client, ReferralSource, User, WeightLog
from dietconnect.schemas.schemas import (
    ClientCreate,
    ClientResponse,
    ClientUpdate,
    MessageResponse,
    Page,
    WeightLogCreate,
    WeightLogPage,
    WeightLogResponse,
)
from dietconnect.services.referral_service import (
    find_referrer,
    generate_unique_referral_code,
    process_referral_benefit,
)
from dietconnect.services.weight_service import record_weight, weight_summary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["clients"])


def _check_dietitian(db: Session, org_id: str, dietitian_id: Optional[str]) -> None:
    if dietitian_id is None:
        return
    exists = db.query(User.id).filter(
        User.id == dietitian_id, User.org_id == org_id, User.is_active.is_(True)
    ).first()
    if not exists:
        raise bad_request("Primary dietitian not found in organization", "INVALID_DIETITIAN")


@router.post("", response_model=ClientResponse, status_code=201)
def create_client(
    data: ClientCreate,
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    """Create a client, optionally crediting the client who referred them."""
    org = user.organization

    if data.email:
        duplicate = db.query(Client.id).filter(
            Client.org_id == org.id,
            func.lower(Client.email) == data.email.lower(),
            Client.deleted_at.is_(None),
        ).first()
        if duplicate:
            raise conflict("A client with this email already exists", "CLIENT_EXISTS")

    active_count = db.query(func.count(Client.id)).filter(
        Client.org_id == org.id,
        Client.is_active.is_(True),
        Client.deleted_at.is_(None),
    ).scalar() or 0
    if org.max_clients is not None and active_count >= org.max_clients:
        raise forbidden(
            f"Client limit of {org.max_clients} reached for your plan", "CLIENT_LIMIT_REACHED"
        )

    primary_dietitian_id = data.primary_dietitian_id or user.id
    _check_dietitian(db, org.id, primary_dietitian_id)

    referrer = None
    if data.referral_code:
        referrer = find_referrer(db, org.id, data.referral_code)
        if not referrer:
            raise bad_request("Invalid referral code", "INVALID_REFERRAL_CODE")

    fields = data.model_dump(exclude={"referral_code", "referral_source", "primary_dietitian_id"})
    client = Client(
        **fields,
        org_id=org.id,
        created_by=user.id,
        primary_dietitian_id=primary_dietitian_id,
        referral_code=generate_unique_referral_code(db),
        referred_by_client_id=referrer.id if referrer else None,
        referral_source=ReferralSource.REFERRAL if referrer else data.referral_source,
    )
    if client.email:
        client.email = client.email.lower()
    db.add(client)
    db.commit()
    db.refresh(client)

    if referrer:
        process_referral_benefit(db, referrer.id)

    logger.info("Client %s created in organization %s", client.id, org.id)
    return client


@router.get("", response_model=Page[ClientResponse])
def list_clients(
    search: Optional[str] = Query(None, max_length=100),
    status: Optional[str] = Query(None, pattern="^(active|inactive)$"),
    primary_dietitian_id: Optional[str] = None,
    params: PageParams = Depends(page_params),
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    query = client_query(db, user)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            Client.full_name.ilike(pattern),
            Client.email.ilike(pattern),
            Client.phone.ilike(pattern),
        ))
    if status:
        query = query.filter(Client.is_active.is_(status == "active"))
    if primary_dietitian_id:
        query = query.filter(Client.primary_dietitian_id == primary_dietitian_id)

    items, meta = paginate(query.order_by(Client.created_at.desc()), params)
    return {"items": items, "meta": meta}


@router.get("/{client_id}", response_model=ClientResponse)
def get_client(client_id: str, user: User = Depends(get_current_staff), db: Session = Depends(get_db)):
    return get_client_for_staff(db, user, client_id)


@router.patch("/{client_id}", response_model=ClientResponse)
def update_client(
    client_id: str,
    update: ClientUpdate,
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    client = get_client_for_staff(db, user, client_id)
    update_data = update.model_dump(exclude_unset=True)

    if "primary_dietitian_id" in update_data:
        _check_dietitian(db, user.org_id, update_data["primary_dietitian_id"])
    if update_data.get("email"):
        update_data["email"] = update_data["email"].lower()
        duplicate = db.query(Client.id).filter(
            Client.org_id == user.org_id,
            func.lower(Client.email) == update_data["email"],
            Client.id != client.id,
            Client.deleted_at.is_(None),
        ).first()
        if duplicate:
            raise conflict("A client with this email already exists", "CLIENT_EXISTS")

    for field, value in update_data.items():
        setattr(client, field, value)
    db.commit()
    db.refresh(client)
    return client


@router.delete("/{client_id}", response_model=MessageResponse)
def delete_client(client_id: str, user: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Soft-delete a client; logs and plans are kept."""
    client = get_client_for_staff(db, user, client_id)
    client.is_active = False
    client.deleted_at = utcnow()
    db.commit()
    logger.info("Client %s deleted by %s", client.id, user.id)
    return MessageResponse(message="Client deleted")


@router.post("/{client_id}/weight-logs", response_model=WeightLogResponse, status_code=201)
def create_weight_log(
    client_id: str,
    data: WeightLogCreate,
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    client = get_client_for_staff(db, user, client_id)
    return record_weight(
        db,
        client,
        data.weight_kg,
        data.log_date or local_today(client.organization.timezone),
        notes=data.notes,
        progress_photo_url=data.progress_photo_url,
    )


@router.get("/{client_id}/weight-logs", response_model=WeightLogPage)
def list_weight_logs(
    client_id: str,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    params: PageParams = Depends(page_params),
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    """Weight logs newest first, with a summary over the whole filtered range."""
    client = get_client_for_staff(db, user, client_id)
    query = db.query(WeightLog).filter(WeightLog.client_id == client.id)
    if date_from:
        query = query.filter(WeightLog.log_date >= date_from)
    if date_to:
        query = query.filter(WeightLog.log_date <= date_to)

    items, meta = paginate(query.order_by(WeightLog.log_date.desc()), params)
    summary = weight_summary(query.order_by(WeightLog.log_date).all())
    return {"items": items, "meta": meta, "summary": summary}
