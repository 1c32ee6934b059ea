"""Staff account endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dietconnect.core.auth import get_current_staff
from dietconnect.core.database import get_db, utcnow
from dietconnect.models.models import User
from dietconnect.schemas.schemas import MeResponse, UserResponse, UserUpdate

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=MeResponse)
def get_me(user: User = Depends(get_current_staff)):
    """The signed-in staff user with their organization."""
    return user


@router.patch("/me", response_model=UserResponse)
def update_me(
    update: UserUpdate,
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    for field, value in update.model_dump(exclude_unset=True).items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return user


@router.post("/sync", response_model=UserResponse)
def sync_login(user: User = Depends(get_current_staff), db: Session = Depends(get_db)):
    """Record a sign-in from the dashboard."""
    user.last_login_at = utcnow()
    db.commit()
    db.refresh(user)
    return user
