"""Mobile client sign-in: OTP, token refresh and logout."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from dietconnect.core.client_auth import require_client
from dietconnect.core.config import settings
from dietconnect.core.database import get_db
from dietconnect.core.rate_limit import otp_key, otp_request_limit, otp_verify_limit
from dietconnect.models.models import Client
from dietconnect.schemas.schemas import (
    ClientProfile,
    ClientProfileUpdate,
    MessageResponse,
    OtpRequest,
    OtpRequestResponse,
    OtpVerifyRequest,
    RefreshRequest,
    RefreshResponse,
    TokenResponse,
)
from dietconnect.services.client_auth_service import (
    issue_token_pair,
    request_otp,
    revoke_client_tokens,
    rotate_refresh_token,
    verify_otp,
)

router = APIRouter(prefix="/client-auth", tags=["client-auth"])


@router.post("/request-otp", response_model=OtpRequestResponse)
def request_otp_code(data: OtpRequest, request: Request, db: Session = Depends(get_db)):
    """Send a sign-in code to a registered client's phone."""
    otp_request_limit.check(otp_key(request, data.phone))
    code = request_otp(db, data.phone)
    return OtpRequestResponse(
        message="OTP sent successfully",
        expires_in=settings.OTP_TTL_SECONDS,
        dev_otp=code if settings.ENVIRONMENT == "development" else None,
    )


@router.post("/verify-otp", response_model=TokenResponse)
def verify_otp_code(data: OtpVerifyRequest, request: Request, db: Session = Depends(get_db)):
    otp_verify_limit.check(otp_key(request, data.phone))
    client = verify_otp(db, data.phone, data.otp)
    tokens = issue_token_pair(db, client)
    return {**tokens, "client": ClientProfile.model_validate(client)}


@router.post("/refresh", response_model=RefreshResponse)
def refresh_tokens(data: RefreshRequest, db: Session = Depends(get_db)):
    return rotate_refresh_token(db, data.refresh_token)


@router.post("/logout", response_model=MessageResponse)
def logout(client: Client = Depends(require_client), db: Session = Depends(get_db)):
    """Sign out on every device by revoking all refresh tokens."""
    revoke_client_tokens(db, client.id)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=ClientProfile)
def get_profile(client: Client = Depends(require_client)):
    return client


@router.patch("/me", response_model=ClientProfile)
def update_profile(
    update: ClientProfileUpdate,
    client: Client = Depends(require_client),
    db: Session = Depends(get_db),
):
    for field, value in update.model_dump(exclude_unset=True).items():
        setattr(client, field, value)
    db.commit()
    db.refresh(client)
    return client
