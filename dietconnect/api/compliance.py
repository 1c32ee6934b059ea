"""Client compliance reports for staff."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from dietconnect.api.common import get_client_for_staff
from dietconnect.core.auth import get_current_staff
from dietconnect.core.compliance import local_today
from dietconnect.core.database import get_db
from dietconnect.models.models import User
from dietconnect.schemas.schemas import ComplianceHistory, DailyAdherence, WeeklyAdherence
from dietconnect.services.compliance_service import (
    compliance_history,
    daily_adherence,
    weekly_adherence,
)

router = APIRouter(prefix="/clients/{client_id}/compliance", tags=["compliance"])


@router.get("/daily", response_model=DailyAdherence)
def get_daily_compliance(
    client_id: str,
    day: Optional[date] = Query(None, alias="date"),
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    client = get_client_for_staff(db, user, client_id)
    return daily_adherence(db, client.id, day or local_today(client.organization.timezone))


@router.get("/weekly", response_model=WeeklyAdherence)
def get_weekly_compliance(
    client_id: str,
    week_start: Optional[date] = None,
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    client = get_client_for_staff(db, user, client_id)
    return weekly_adherence(db, client, week_start)


@router.get("/history", response_model=ComplianceHistory)
def get_compliance_history(
    client_id: str,
    days: int = Query(30, ge=1, le=365),
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    client = get_client_for_staff(db, user, client_id)
    return compliance_history(db, client, days)
