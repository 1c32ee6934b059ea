"""Team management: members, invitations and roles."""

import logging
import secrets
from datetime import timedelta

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from dietconnect.api.common import initials
from dietconnect.core.auth import (
    IdentityClaims,
    get_current_staff,
    get_identity,
    require_admin,
    require_owner,
)
from dietconnect.core.config import settings
from dietconnect.core.database import get_db, utcnow
from dietconnect.core.errors import bad_request, conflict, forbidden, not_found
from dietconnect.models.models import (
    Client,
    Invitation,
    InvitationStatus,
    User,
    UserRole,
)
from dietconnect.schemas.schemas import (
    InvitationCreate,
    InvitationDetail,
    InvitationResponse,
    JoinRequest,
    MessageResponse,
    RoleUpdate,
    TeamMember,
    UserResponse,
)
from dietconnect.services.identity_service import identity_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/team", tags=["team"])

INVITATION_TTL_DAYS = 7


def _invite_url(token: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/join?token={token}"


def _pending_invitation(db: Session, token: str) -> Invitation:
    invitation = db.query(Invitation).filter(Invitation.token == token).first()
    if not invitation or invitation.status != InvitationStatus.PENDING:
        raise bad_request("Invitation is invalid or has already been used", "INVALID_INVITE")
    if invitation.expires_at < utcnow():
        invitation.status = InvitationStatus.EXPIRED
        db.commit()
        raise bad_request("Invitation has expired", "INVALID_INVITE")
    return invitation


@router.get("", response_model=list[TeamMember])
def list_team(user: User = Depends(get_current_staff), db: Session = Depends(get_db)):
    """Active members of the caller's organization with their client counts."""
    counts = dict(
        db.query(Client.primary_dietitian_id, func.count(Client.id))
        .filter(Client.org_id == user.org_id, Client.deleted_at.is_(None))
        .group_by(Client.primary_dietitian_id)
        .all()
    )
    members = db.query(User).filter(
        User.org_id == user.org_id, User.is_active.is_(True)
    ).order_by(User.created_at).all()

    result = []
    for member in members:
        item = TeamMember.model_validate(member)
        item.client_count = counts.get(member.id, 0)
        item.initials = initials(member.full_name)
        result.append(item)
    return result


@router.post("/invite", response_model=InvitationResponse, status_code=201)
def invite_member(
    data: InvitationCreate,
    user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if db.query(User).filter(func.lower(User.email) == data.email).first():
        raise conflict("A user with this email already exists", "USER_EXISTS")

    # Re-inviting replaces any outstanding invitation for the address
    db.query(Invitation).filter(
        Invitation.org_id == user.org_id,
        Invitation.email == data.email,
        Invitation.status == InvitationStatus.PENDING,
    ).update({Invitation.status: InvitationStatus.EXPIRED}, synchronize_session=False)

    invitation = Invitation(
        org_id=user.org_id,
        invited_by=user.id,
        email=data.email,
        role=data.role,
        token=secrets.token_urlsafe(32),
        expires_at=utcnow() + timedelta(days=INVITATION_TTL_DAYS),
    )
    db.add(invitation)
    db.commit()
    db.refresh(invitation)

    logger.info("User %s invited %s as %s", user.id, data.email, data.role.value)
    return InvitationResponse(
        id=invitation.id,
        email=invitation.email,
        role=invitation.role,
        status=invitation.status,
        expires_at=invitation.expires_at,
        invite_url=_invite_url(invitation.token),
    )


@router.get("/invitations/{token}", response_model=InvitationDetail)
def get_invitation(token: str, db: Session = Depends(get_db)):
    """Public lookup used by the join page."""
    invitation = _pending_invitation(db, token)
    return InvitationDetail(
        organization_name=invitation.organization.name,
        email=invitation.email,
        role=invitation.role,
        expires_at=invitation.expires_at,
    )


@router.post("/join", response_model=UserResponse, status_code=201)
async def join_team(
    data: JoinRequest,
    identity: IdentityClaims = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """Accept an invitation as the identity-provider user behind the token."""
    invitation = _pending_invitation(db, data.token)

    if db.query(User).filter(User.idp_user_id == identity.id).first():
        raise conflict("User is already registered", "USER_EXISTS")
    if db.query(User).filter(func.lower(User.email) == invitation.email).first():
        raise conflict("A user with this email already exists", "USER_EXISTS")
    if not await identity_service.user_exists(identity.id):
        raise bad_request("Identity provider user not found", "INVALID_IDP_USER")

    member = User(
        org_id=invitation.org_id,
        idp_user_id=identity.id,
        role=invitation.role,
        email=invitation.email,
        full_name=data.full_name,
        phone=data.phone,
    )
    db.add(member)
    invitation.status = InvitationStatus.ACCEPTED
    db.commit()
    db.refresh(member)

    logger.info("User %s joined organization %s", member.id, member.org_id)
    return member


@router.patch("/{user_id}/role", response_model=UserResponse)
def change_role(
    user_id: str,
    data: RoleUpdate,
    user: User = Depends(require_owner),
    db: Session = Depends(get_db),
):
    if user_id == user.id:
        raise bad_request("You cannot change your own role", "CANNOT_CHANGE_OWN_ROLE")
    member = db.query(User).filter(User.id == user_id, User.org_id == user.org_id).first()
    if not member:
        raise not_found("User")

    member.role = data.role
    db.commit()
    db.refresh(member)
    return member


@router.delete("/{user_id}", response_model=MessageResponse)
def remove_member(
    user_id: str,
    user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Deactivate a team member. Their clients keep their history."""
    if user_id == user.id:
        raise bad_request("You cannot remove yourself", "CANNOT_REMOVE_SELF")
    member = db.query(User).filter(User.id == user_id, User.org_id == user.org_id).first()
    if not member:
        raise not_found("User")
    if member.role == UserRole.OWNER:
        raise forbidden("The organization owner cannot be removed")

    member.is_active = False
    db.commit()
    return MessageResponse(message="Team member removed")
