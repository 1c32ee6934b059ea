"""Meal log endpoints for staff: logging, review and compliance."""

import logging
from datetime import date
from itertools import groupby
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from dietconnect.api.common import get_client_for_staff, visible_client_ids
from dietconnect.core.auth import get_current_staff
from dietconnect.core.database import get_db, utcnow
from dietconnect.core.errors import bad_request, conflict, not_found
from dietconnect.core.nutrition import sum_nutrition, NutritionTotals
from dietconnect.core.pagination import PageParams, page_params, paginate
from dietconnect.models.models import (
    DietPlan,
    Meal,
    MealLog,
    MealLogStatus,
    PlanStatus,
    RecipientType,
    User,
)
from dietconnect.schemas.schemas import (
    MealComplianceResponse,
    MealFoodItemResponse,
    MealLogCreate,
    MealLogDetail,
    MealLogResponse,
    MealLogReview,
    MealLogUpdate,
    MealOption,
    Page,
)
from dietconnect.services.compliance_service import calculate_meal_compliance
from dietconnect.services.meal_log_service import apply_log_changes, save_meal_photo
from dietconnect.services.notification_service import notification_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/meal-logs", tags=["meal-logs"])


def get_log_for_staff(db: Session, user: User, log_id: str) -> MealLog:
    visible = visible_client_ids(user)
    log = db.query(MealLog).filter(
        MealLog.id == log_id,
        MealLog.org_id == user.org_id,
        MealLog.client_id.in_(visible),
    ).first()
    if not log:
        raise not_found("Meal log", "MEAL_LOG_NOT_FOUND")
    return log


def _meal_options(meal: Meal) -> list[MealOption]:
    """Group a meal's food items into its alternative options."""
    options = []
    for group, items in groupby(meal.food_items, key=lambda i: i.option_group or 0):
        items = list(items)
        totals = sum_nutrition(
            NutritionTotals(i.calories or 0, i.protein_g, i.carbs_g, i.fats_g) for i in items
        )
        options.append(MealOption(
            option_group=group,
            label=next((i.option_label for i in items if i.option_label), None),
            calories=totals.calories,
            protein_g=totals.protein_g,
            carbs_g=totals.carbs_g,
            fats_g=totals.fats_g,
            items=[MealFoodItemResponse.model_validate(i) for i in items],
        ))
    return options


def _log_to_detail(log: MealLog) -> MealLogDetail:
    detail = MealLogDetail.model_validate(log)
    detail.client_name = log.client.full_name if log.client else None
    if log.meal:
        detail.meal_type = log.meal.meal_type
        detail.meal_name = log.meal.name
        detail.time_of_day = log.meal.time_of_day
        detail.options = _meal_options(log.meal)
    return detail


@router.post("", response_model=MealLogResponse, status_code=201)
def create_meal_log(data: MealLogCreate, user: User = Depends(get_current_staff), db: Session = Depends(get_db)):
    """Schedule a meal log for a client from a meal of their active plan."""
    client = get_client_for_staff(db, user, data.client_id)
    meal = db.query(Meal).join(DietPlan).filter(
        Meal.id == data.meal_id,
        DietPlan.client_id == client.id,
        DietPlan.status == PlanStatus.ACTIVE,
        DietPlan.is_active.is_(True),
    ).first()
    if not meal:
        raise bad_request("Meal is not part of the client's active plan", "MEAL_NOT_IN_ACTIVE_PLAN")

    existing = db.query(MealLog.id).filter(
        MealLog.client_id == client.id,
        MealLog.meal_id == meal.id,
        MealLog.scheduled_date == data.scheduled_date,
    ).first()
    if existing:
        raise conflict("Meal is already logged for this date", "MEAL_LOG_EXISTS")

    log = MealLog(
        org_id=user.org_id,
        client_id=client.id,
        meal_id=meal.id,
        scheduled_date=data.scheduled_date,
        scheduled_time=data.scheduled_time or meal.time_of_day,
        status=MealLogStatus.PENDING,
    )
    db.add(log)
    db.commit()
    db.refresh(log)
    return log


@router.get("", response_model=Page[MealLogResponse])
def list_meal_logs(
    client_id: Optional[str] = None,
    status: Optional[MealLogStatus] = None,
    review_status: Optional[str] = Query(None, pattern="^(pending|reviewed)$"),
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    params: PageParams = Depends(page_params),
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    """
    Meal logs of visible clients, newest first.

    ``review_status=pending`` lists logs the client acted on that no one has
    reviewed; ``reviewed`` lists logs with a reviewer.
    """
    visible = visible_client_ids(user)
    query = db.query(MealLog).filter(
        MealLog.org_id == user.org_id,
        MealLog.client_id.in_(visible),
    )
    if client_id:
        query = query.filter(MealLog.client_id == client_id)
    if status:
        query = query.filter(MealLog.status == status)
    if review_status == "pending":
        query = query.filter(
            MealLog.status != MealLogStatus.PENDING,
            MealLog.reviewed_by.is_(None),
        )
    elif review_status == "reviewed":
        query = query.filter(MealLog.reviewed_by.isnot(None))
    if date_from:
        query = query.filter(MealLog.scheduled_date >= date_from)
    if date_to:
        query = query.filter(MealLog.scheduled_date <= date_to)

    items, meta = paginate(
        query.order_by(MealLog.scheduled_date.desc(), MealLog.scheduled_time.desc()), params
    )
    return {"items": items, "meta": meta}


@router.get("/{log_id}", response_model=MealLogDetail)
def get_meal_log(log_id: str, user: User = Depends(get_current_staff), db: Session = Depends(get_db)):
    return _log_to_detail(get_log_for_staff(db, user, log_id))


@router.patch("/{log_id}", response_model=MealLogResponse)
def update_meal_log(
    log_id: str,
    update: MealLogUpdate,
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    log = get_log_for_staff(db, user, log_id)
    apply_log_changes(db, log, update.model_dump(exclude_unset=True))
    db.refresh(log)
    return log


@router.patch("/{log_id}/review", response_model=MealLogResponse)
async def review_meal_log(
    log_id: str,
    review: MealLogReview,
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    """Leave dietitian feedback, optionally correcting status or calories, and rescore."""
    log = get_log_for_staff(db, user, log_id)

    log.dietitian_feedback = review.dietitian_feedback
    log.dietitian_feedback_at = utcnow()
    log.reviewed_by = user.id
    if review.status is not None:
        if review.status != MealLogStatus.PENDING and log.logged_at is None:
            log.logged_at = utcnow()
        log.status = review.status
    if review.override_calories is not None:
        log.substitute_calories_est = review.override_calories
    db.commit()

    if log.status != MealLogStatus.PENDING:
        calculate_meal_compliance(db, log.id)
    db.refresh(log)

    await notification_service.notify(
        db,
        org_id=log.org_id,
        recipient_id=log.client_id,
        recipient_type=RecipientType.CLIENT,
        category="meal_review",
        title="Your dietitian reviewed your meal",
        message=review.dietitian_feedback[:200],
        related_entity_type="meal_log",
        related_entity_id=log.id,
    )
    logger.info("Meal log %s reviewed by %s", log.id, user.id)
    return log


@router.post("/{log_id}/photo", response_model=MealLogResponse)
async def upload_meal_log_photo(
    log_id: str,
    file: UploadFile = File(...),
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    log = get_log_for_staff(db, user, log_id)
    return await save_meal_photo(db, log, file)


@router.post("/{log_id}/compliance", response_model=MealComplianceResponse)
def recalculate_compliance(log_id: str, user: User = Depends(get_current_staff), db: Session = Depends(get_db)):
    log = get_log_for_staff(db, user, log_id)
    result = calculate_meal_compliance(db, log.id)
    return MealComplianceResponse(
        meal_log_id=log.id, score=result.score, color=result.color, issues=result.issues
    )
