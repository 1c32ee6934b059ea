"""Mobile app endpoints for signed-in clients."""

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from dietconnect.core.client_auth import require_client
from dietconnect.core.compliance import local_today
from dietconnect.core.config import settings
from dietconnect.core.database import get_db, utcnow
from dietconnect.core.errors import bad_request, forbidden, not_found
from dietconnect.core.nutrition import calculate_weight_trend, meal_option_nutrition, round_half_up
from dietconnect.core.rate_limit import write_limit
from dietconnect.models.models import (
    Client,
    ClientReport,
    Meal,
    MealLog,
    MealLogStatus,
    Notification,
    RecipientType,
    WeightLog,
)
from dietconnect.schemas.schemas import (
    ClientMealLogRequest,
    ClientStats,
    DailyAdherence,
    DeviceTokenRequest,
    MealLogResponse,
    MessageResponse,
    NotificationResponse,
    ReportCreate,
    ReportDownloadUrlResponse,
    ReportResponse,
    ReportUploadUrlRequest,
    ReportUploadUrlResponse,
    TodayMealsResponse,
    WeeklyAdherence,
    WeightLogCreate,
    WeightLogResponse,
)
from dietconnect.services.compliance_service import daily_adherence, weekly_adherence
from dietconnect.services.meal_log_service import apply_log_changes, save_meal_photo
from dietconnect.services.notification_service import add_push_token
from dietconnect.services.plan_service import get_active_plan, meals_for_date
from dietconnect.services.storage_service import REPORT_CONTENT_TYPES, report_key, storage_service
from dietconnect.services.weight_service import record_weight

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/client", tags=["client-app"])

PLACEHOLDER_PREFIX = "pending-"


async def limit_client_writes(client: Client = Depends(require_client)) -> Client:
    write_limit.check(client.id)
    return client


def _today(client: Client):
    return local_today(client.organization.timezone)


def _meal_totals(meal: Meal) -> dict:
    if meal.total_calories is not None:
        return {
            "total_calories": meal.total_calories,
            "total_protein_g": meal.total_protein_g,
            "total_carbs_g": meal.total_carbs_g,
            "total_fats_g": meal.total_fats_g,
        }
    totals = meal_option_nutrition(meal.food_items, 0)
    return {
        "total_calories": totals.calories,
        "total_protein_g": totals.protein_g,
        "total_carbs_g": totals.carbs_g,
        "total_fats_g": totals.fats_g,
    }


def _resolve_log(db: Session, client: Client, meal_log_id: str) -> MealLog:
    """
    Find the log a mobile action refers to.

    ``pending-<meal_id>`` placeholders from today's meal list become a real
    log for today on first use.
    """
    if meal_log_id.startswith(PLACEHOLDER_PREFIX):
        meal_id = meal_log_id[len(PLACEHOLDER_PREFIX):]
        today = _today(client)
        plan = get_active_plan(db, client.id)
        meal = next((m for m in meals_for_date(plan, today) if m.id == meal_id), None)
        if meal is None:
            raise not_found("Meal", "MEAL_NOT_FOUND")

        log = db.query(MealLog).filter(
            MealLog.client_id == client.id,
            MealLog.meal_id == meal.id,
            MealLog.scheduled_date == today,
        ).first()
        if log is None:
            log = MealLog(
                org_id=client.org_id,
                client_id=client.id,
                meal_id=meal.id,
                scheduled_date=today,
                scheduled_time=meal.time_of_day,
                status=MealLogStatus.PENDING,
            )
            db.add(log)
            db.commit()
            db.refresh(log)
        return log

    log = db.query(MealLog).filter(MealLog.id == meal_log_id).first()
    if not log:
        raise not_found("Meal log", "MEAL_LOG_NOT_FOUND")
    if log.client_id != client.id:
        raise forbidden("This meal log belongs to another client")
    return log


@router.get("/meals/today", response_model=TodayMealsResponse)
def get_today_meals(client: Client = Depends(require_client), db: Session = Depends(get_db)):
    """Today's meals from the active plan, merged with what the client has logged."""
    today = _today(client)
    plan = get_active_plan(db, client.id)
    meals = meals_for_date(plan, today)

    logs = {
        log.meal_id: log
        for log in db.query(MealLog).filter(
            MealLog.client_id == client.id,
            MealLog.scheduled_date == today,
        ).all()
    }

    result = []
    for meal in meals:
        log = logs.get(meal.id)
        entry = {
            "meal_log_id": log.id if log else f"{PLACEHOLDER_PREFIX}{meal.id}",
            "meal_id": meal.id,
            "meal_type": meal.meal_type,
            "time_of_day": meal.time_of_day,
            "name": meal.name,
            "description": meal.description,
            "instructions": meal.instructions,
            "status": log.status if log else MealLogStatus.PENDING,
            "food_items": [
                {
                    "id": item.id,
                    "food_id": item.food_id,
                    "name": item.food_item.name if item.food_item else "",
                    "quantity_g": item.quantity_g,
                    "option_group": item.option_group or 0,
                    "option_label": item.option_label,
                    "calories": item.calories,
                }
                for item in meal.food_items
            ],
            **_meal_totals(meal),
        }
        if log:
            entry.update({
                "chosen_option_group": log.chosen_option_group or 0,
                "meal_photo_url": log.meal_photo_url,
                "logged_at": log.logged_at,
                "compliance_score": log.compliance_score,
                "compliance_color": log.compliance_color,
                "dietitian_feedback": log.dietitian_feedback,
            })
        result.append(entry)

    return {
        "date": today,
        "plan_id": plan.id if plan else None,
        "plan_name": plan.name if plan else None,
        "meals": result,
    }


@router.patch("/meals/{meal_log_id}/log", response_model=MealLogResponse)
def log_meal(
    meal_log_id: str,
    data: ClientMealLogRequest,
    client: Client = Depends(limit_client_writes),
    db: Session = Depends(get_db),
):
    """Mark a meal eaten, skipped or substituted."""
    log = _resolve_log(db, client, meal_log_id)

    changes = {"status": data.status}
    if data.photo_url is not None:
        changes["meal_photo_url"] = data.photo_url
    if data.notes is not None:
        changes["client_notes"] = data.notes
    if data.chosen_option_group is not None:
        changes["chosen_option_group"] = data.chosen_option_group
    if data.substitute_description is not None:
        changes["substitute_description"] = data.substitute_description
    if data.substitute_calories_est is not None:
        changes["substitute_calories_est"] = data.substitute_calories_est

    apply_log_changes(db, log, changes)
    db.refresh(log)
    logger.info("Client %s logged meal %s as %s", client.id, log.id, log.status.value)
    return log


@router.post("/meals/{meal_log_id}/photo", response_model=MealLogResponse)
async def upload_meal_photo(
    meal_log_id: str,
    file: UploadFile = File(...),
    client: Client = Depends(limit_client_writes),
    db: Session = Depends(get_db),
):
    log = _resolve_log(db, client, meal_log_id)
    return await save_meal_photo(db, log, file)


@router.get("/weight-logs", response_model=list[WeightLogResponse])
def list_weight_logs(
    limit: int = Query(30, ge=1, le=365),
    client: Client = Depends(require_client),
    db: Session = Depends(get_db),
):
    return db.query(WeightLog).filter(
        WeightLog.client_id == client.id
    ).order_by(WeightLog.log_date.desc()).limit(limit).all()


@router.post("/weight-logs", response_model=WeightLogResponse, status_code=201)
def log_weight(
    data: WeightLogCreate,
    client: Client = Depends(limit_client_writes),
    db: Session = Depends(get_db),
):
    """Record today's (or a given day's) weight, replacing any entry for that day."""
    return record_weight(
        db,
        client,
        data.weight_kg,
        data.log_date or _today(client),
        notes=data.notes,
        progress_photo_url=data.progress_photo_url,
    )


def _current_streak(db: Session, client: Client, today) -> int:
    logged_days = {
        row[0]
        for row in db.query(MealLog.scheduled_date).filter(
            MealLog.client_id == client.id,
            MealLog.status != MealLogStatus.PENDING,
            MealLog.scheduled_date <= today,
        ).distinct().all()
    }
    # An unlogged today does not break the streak yet
    day = today if today in logged_days else today - timedelta(days=1)
    streak = 0
    while day in logged_days:
        streak += 1
        day -= timedelta(days=1)
    return streak


@router.get("/stats", response_model=ClientStats)
def get_stats(client: Client = Depends(require_client), db: Session = Depends(get_db)):
    today = _today(client)
    week_logs = db.query(MealLog.status).filter(
        MealLog.client_id == client.id,
        MealLog.scheduled_date > today - timedelta(days=7),
        MealLog.scheduled_date <= today,
    ).all()
    eaten = sum(1 for (status,) in week_logs if status == MealLogStatus.EATEN)
    adherence = int(round_half_up(eaten / len(week_logs) * 100)) if week_logs else 0

    weights = [
        w for (w,) in db.query(WeightLog.weight_kg).filter(
            WeightLog.client_id == client.id
        ).order_by(WeightLog.log_date.desc()).limit(10).all()
    ]

    return ClientStats(
        weekly_adherence=adherence,
        weight_trend=calculate_weight_trend(weights),
        latest_weight_kg=weights[0] if weights else client.current_weight_kg,
        target_weight_kg=client.target_weight_kg,
        current_streak=_current_streak(db, client, today),
    )


@router.get("/compliance/daily", response_model=DailyAdherence)
def get_daily_compliance(client: Client = Depends(require_client), db: Session = Depends(get_db)):
    return daily_adherence(db, client.id, _today(client))


@router.get("/compliance/weekly", response_model=WeeklyAdherence)
def get_weekly_compliance(client: Client = Depends(require_client), db: Session = Depends(get_db)):
    return weekly_adherence(db, client)


@router.post("/notifications/device-token", response_model=MessageResponse)
def register_device_token(
    data: DeviceTokenRequest,
    client: Client = Depends(require_client),
    db: Session = Depends(get_db),
):
    if add_push_token(client, data.token):
        db.commit()
    return MessageResponse(message="Device token registered")


@router.get("/notifications", response_model=list[NotificationResponse])
def list_notifications(
    limit: int = Query(50, ge=1, le=100),
    client: Client = Depends(require_client),
    db: Session = Depends(get_db),
):
    return db.query(Notification).filter(
        Notification.recipient_id == client.id,
        Notification.recipient_type == RecipientType.CLIENT,
    ).order_by(Notification.sent_at.desc()).limit(limit).all()


@router.patch("/notifications/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_read(
    notification_id: str,
    client: Client = Depends(require_client),
    db: Session = Depends(get_db),
):
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.recipient_id == client.id,
        Notification.recipient_type == RecipientType.CLIENT,
    ).first()
    if not notification:
        raise not_found("Notification")
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        db.commit()
        db.refresh(notification)
    return notification


@router.get("/reports", response_model=list[ReportResponse])
def list_reports(client: Client = Depends(require_client), db: Session = Depends(get_db)):
    return db.query(ClientReport).filter(
        ClientReport.client_id == client.id
    ).order_by(ClientReport.uploaded_at.desc()).all()


@router.post("/reports/upload-url", response_model=ReportUploadUrlResponse)
def create_report_upload_url(
    data: ReportUploadUrlRequest,
    client: Client = Depends(limit_client_writes),
):
    """Presigned PUT URL for uploading a lab report straight to storage."""
    file_type = data.file_type.lower().lstrip(".")
    if file_type not in REPORT_CONTENT_TYPES:
        raise bad_request("Only PDF, JPEG, PNG or WEBP files are allowed", "INVALID_FILE_TYPE")

    key = report_key(client.org_id, client.id, file_type)
    upload_url = storage_service.presigned_put_url(key, REPORT_CONTENT_TYPES[file_type])
    return ReportUploadUrlResponse(
        upload_url=upload_url,
        object_key=key,
        file_url=storage_service.public_url(key),
        expires_in=settings.PRESIGNED_URL_EXPIRY_SECONDS,
    )


@router.post("/reports", response_model=ReportResponse, status_code=201)
def create_report(
    data: ReportCreate,
    client: Client = Depends(limit_client_writes),
    db: Session = Depends(get_db),
):
    if not data.object_key.startswith(f"reports/{client.org_id}/{client.id}/"):
        raise bad_request("Object key does not belong to this client", "INVALID_OBJECT_KEY")
    file_type = data.file_type.lower().lstrip(".")
    if file_type not in REPORT_CONTENT_TYPES:
        raise bad_request("Only PDF, JPEG, PNG or WEBP files are allowed", "INVALID_FILE_TYPE")

    report = ClientReport(
        org_id=client.org_id,
        client_id=client.id,
        file_name=data.file_name,
        object_key=data.object_key,
        file_url=storage_service.public_url(data.object_key),
        file_type=file_type,
        report_type=data.report_type,
        notes=data.notes,
    )
    db.add(report)
    db.commit()
    db.refresh(report)
    return report


def _get_report(db: Session, client: Client, report_id: str) -> ClientReport:
    report = db.query(ClientReport).filter(
        ClientReport.id == report_id,
        ClientReport.client_id == client.id,
    ).first()
    if not report:
        raise not_found("Report")
    return report


@router.get("/reports/{report_id}/download-url", response_model=ReportDownloadUrlResponse)
def get_report_download_url(
    report_id: str,
    client: Client = Depends(require_client),
    db: Session = Depends(get_db),
):
    """Short-lived signed link for reading a report from a private bucket."""
    report = _get_report(db, client, report_id)
    return ReportDownloadUrlResponse(
        download_url=storage_service.presigned_get_url(report.object_key),
        expires_in=settings.PRESIGNED_URL_EXPIRY_SECONDS,
    )


@router.delete("/reports/{report_id}", response_model=MessageResponse)
def delete_report(
    report_id: str,
    client: Client = Depends(limit_client_writes),
    db: Session = Depends(get_db),
):
    report = _get_report(db, client, report_id)
    storage_service.delete_object(report.object_key)
    db.delete(report)
    db.commit()
    return MessageResponse(message="Report deleted")
