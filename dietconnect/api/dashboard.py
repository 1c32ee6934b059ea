"""Dashboard summary for staff."""

from datetime import timedelta

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from dietconnect.api.common import client_query, visible_client_ids
from dietconnect.core.auth import get_current_staff
from dietconnect.core.compliance import local_today
from dietconnect.core.database import get_db
from dietconnect.core.nutrition import round_half_up
from dietconnect.models.models import (
    Client,
    DietPlan,
    MealLog,
    MealLogStatus,
    PlanStatus,
    User,
)
from dietconnect.schemas.schemas import DashboardStats

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def _eaten_percentage(eaten: int, total: int) -> int:
    if not total:
        return 0
    return int(round_half_up(eaten / total * 100))


@router.get("/stats", response_model=DashboardStats)
def get_dashboard_stats(user: User = Depends(get_current_staff), db: Session = Depends(get_db)):
    visible = visible_client_ids(user)
    today = local_today(user.organization.timezone)

    total_clients = client_query(db, user).filter(Client.is_active.is_(True)).count()

    awaiting_review = db.query(MealLog).filter(
        MealLog.client_id.in_(visible),
        MealLog.status != MealLogStatus.PENDING,
        MealLog.reviewed_by.is_(None),
    )
    pending_reviews = awaiting_review.count()

    active_plans = db.query(func.count(DietPlan.id)).filter(
        DietPlan.org_id == user.org_id,
        DietPlan.client_id.in_(visible),
        DietPlan.status == PlanStatus.ACTIVE,
        DietPlan.is_active.is_(True),
    ).scalar() or 0

    rows = db.query(MealLog.scheduled_date, MealLog.status).filter(
        MealLog.client_id.in_(visible),
        MealLog.scheduled_date > today - timedelta(days=30),
        MealLog.scheduled_date <= today,
    ).all()
    eaten_30d = sum(1 for _, status in rows if status == MealLogStatus.EATEN)

    weekly = []
    for offset in range(6, -1, -1):
        day = today - timedelta(days=offset)
        day_rows = [status for d, status in rows if d == day]
        eaten = sum(1 for status in day_rows if status == MealLogStatus.EATEN)
        weekly.append({
            "day": day.strftime("%a"),
            "date": day,
            "adherence": _eaten_percentage(eaten, len(day_rows)),
            "total": len(day_rows),
        })

    recent_clients = client_query(db, user).order_by(Client.updated_at.desc()).limit(5).all()
    latest_pending = awaiting_review.order_by(MealLog.logged_at.desc()).limit(5).all()

    return {
        "total_clients": total_clients,
        "pending_reviews": pending_reviews,
        "active_plans": active_plans,
        "adherence_rate_30d": _eaten_percentage(eaten_30d, len(rows)),
        "weekly_adherence": weekly,
        "recent_clients": [
            {"id": c.id, "full_name": c.full_name, "updated_at": c.updated_at}
            for c in recent_clients
        ],
        "pending_meal_logs": [
            {
                "id": log.id,
                "client_id": log.client_id,
                "client_name": log.client.full_name,
                "meal_type": log.meal.meal_type if log.meal else None,
                "scheduled_date": log.scheduled_date,
                "status": log.status,
            }
            for log in latest_pending
        ],
    }
