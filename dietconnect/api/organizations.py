"""Organization endpoints."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from dietconnect.core.auth import IdentityClaims, get_current_staff, get_identity, require_admin
from dietconnect.core.database import get_db
from dietconnect.core.errors import bad_request, conflict
from dietconnect.models.models import Client, Organization, User, UserRole
from dietconnect.schemas.schemas import (
    OrganizationCreate,
    OrganizationCreated,
    OrganizationDetail,
    OrganizationResponse,
    OrganizationUpdate,
)
from dietconnect.services.identity_service import identity_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/organizations", tags=["organizations"])


@router.post("", response_model=OrganizationCreated, status_code=201)
async def create_organization(
    data: OrganizationCreate,
    identity: IdentityClaims = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """Create an organization with the caller as its owner."""
    if db.query(User).filter(User.idp_user_id == identity.id).first():
        raise conflict("User is already registered", "USER_EXISTS")
    if db.query(Organization).filter(func.lower(Organization.name) == data.name.lower()).first():
        raise conflict("An organization with this name already exists", "ORG_EXISTS")
    if not await identity_service.user_exists(identity.id):
        raise bad_request("Identity provider user not found", "INVALID_IDP_USER")

    owner_email = data.owner_email or identity.email
    if not owner_email:
        raise bad_request("Owner email is required", "EMAIL_REQUIRED")

    org_fields = data.model_dump(exclude={"owner_full_name", "owner_email", "owner_phone"})
    org = Organization(**org_fields)
    db.add(org)
    db.flush()

    owner = User(
        org_id=org.id,
        idp_user_id=identity.id,
        role=UserRole.OWNER,
        email=owner_email.lower(),
        full_name=data.owner_full_name,
        phone=data.owner_phone,
    )
    db.add(owner)
    db.commit()
    db.refresh(org)
    db.refresh(owner)

    logger.info("Organization %s created by %s", org.id, owner.id)
    return {"organization": org, "user": owner}


@router.get("/current", response_model=OrganizationDetail)
def get_current_organization(user: User = Depends(get_current_staff), db: Session = Depends(get_db)):
    """The caller's organization with client and team counts."""
    org = user.organization
    client_count = db.query(func.count(Client.id)).filter(
        Client.org_id == org.id, Client.deleted_at.is_(None)
    ).scalar()
    user_count = db.query(func.count(User.id)).filter(
        User.org_id == org.id, User.is_active.is_(True)
    ).scalar()

    detail = OrganizationDetail.model_validate(org)
    detail.client_count = client_count or 0
    detail.user_count = user_count or 0
    return detail


@router.patch("/current", response_model=OrganizationResponse)
def update_current_organization(
    update: OrganizationUpdate,
    user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    org = user.organization
    update_data = update.model_dump(exclude_unset=True)

    new_name = update_data.get("name")
    if new_name and new_name.lower() != org.name.lower():
        existing = db.query(Organization).filter(
            func.lower(Organization.name) == new_name.lower(),
            Organization.id != org.id,
        ).first()
        if existing:
            raise conflict("An organization with this name already exists", "ORG_EXISTS")

    for field, value in update_data.items():
        setattr(org, field, value)
    db.commit()
    db.refresh(org)
    return org
