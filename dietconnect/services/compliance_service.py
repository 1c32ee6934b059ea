"""Compliance scoring and adherence aggregation over stored meal logs."""

import logging
from collections import OrderedDict
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from dietconnect.core.compliance import (
    ComplianceConfig,
    ComplianceResult,
    MealComplianceInput,
    average_score,
    compliance_color,
    local_today,
    score_from_status,
    score_meal,
    trend_direction,
    week_start,
)
from dietconnect.core.nutrition import meal_option_nutrition
from dietconnect.models.models import Client, MealLog, MealLogStatus
from dietconnect.services.plan_service import get_active_plan, meals_for_date

logger = logging.getLogger(__name__)


def planned_calories(log: MealLog) -> float:
    """Calories of the option group the client chose for this meal."""
    if log.meal is None:
        return 0
    group = log.chosen_option_group or 0
    return meal_option_nutrition(log.meal.food_items, group).calories


def _timezone_for(log: MealLog) -> str:
    if log.client and log.client.organization and log.client.organization.timezone:
        return log.client.organization.timezone
    return "UTC"


def calculate_meal_compliance(db: Session, meal_log_id: str) -> ComplianceResult:
    """Score a meal log and persist the result on it."""
    log = db.query(MealLog).filter(MealLog.id == meal_log_id).first()
    if not log:
        return ComplianceResult(0, "RED", ["Meal log not found"])

    result = score_meal(
        MealComplianceInput(
            status=log.status.value,
            scheduled_date=log.scheduled_date,
            scheduled_time=log.scheduled_time,
            logged_at=log.logged_at,
            has_photo=bool(log.meal_photo_url),
            substitute_calories_est=log.substitute_calories_est,
            planned_calories=planned_calories(log),
            has_dietitian_feedback=bool(log.dietitian_feedback),
            timezone_name=_timezone_for(log),
        )
    )

    log.compliance_score = result.score
    log.compliance_color = result.color
    log.compliance_issues = result.issues
    db.commit()

    logger.info("Meal log %s scored %s (%s)", log.id, result.score, result.color)
    return result


def daily_adherence(db: Session, client_id: str, day: date) -> dict:
    """Adherence for one client on one day, with a per-meal breakdown."""
    logs = db.query(MealLog).filter(
        MealLog.client_id == client_id,
        MealLog.scheduled_date == day,
    ).order_by(MealLog.scheduled_time).all()

    breakdown = []
    scores = []
    for log in logs:
        score = score_from_status(log.status.value, log.compliance_score)
        scores.append(score)
        breakdown.append({
            "meal_log_id": log.id,
            "meal_name": log.meal.name if log.meal else None,
            "meal_type": log.meal.meal_type if log.meal else None,
            "status": log.status,
            "score": score,
            "color": compliance_color(score) if score is not None else None,
            "issues": log.compliance_issues or [],
        })

    planned = len(meals_for_date(get_active_plan(db, client_id), day)) or len(logs)
    logged = sum(1 for log in logs if log.status != MealLogStatus.PENDING)
    day_score = average_score(scores)

    return {
        "date": day,
        "score": day_score,
        "color": compliance_color(day_score),
        "meals_planned": planned,
        "meals_logged": logged,
        "meal_breakdown": breakdown,
    }


def _mean_stored_score(db: Session, client_id: str, start: date, end: date) -> Optional[int]:
    logs = db.query(MealLog.compliance_score).filter(
        MealLog.client_id == client_id,
        MealLog.scheduled_date >= start,
        MealLog.scheduled_date <= end,
        MealLog.compliance_score.isnot(None),
    ).all()
    if not logs:
        return None
    return average_score(row[0] for row in logs)


def weekly_adherence(db: Session, client: Client, start: Optional[date] = None) -> dict:
    """Seven daily entries from Monday, the week average and the trend against last week."""
    config = ComplianceConfig.from_settings()
    start = week_start(start or local_today(client.organization.timezone))
    end = start + timedelta(days=6)

    days = [daily_adherence(db, client.id, start + timedelta(days=i)) for i in range(7)]
    logged_days = [d for d in days if d["meals_logged"] > 0]
    avg = average_score(d["score"] for d in logged_days)

    previous = _mean_stored_score(db, client.id, start - timedelta(days=7), start - timedelta(days=1))
    if previous is None or not logged_days:
        trend = "stable"
    else:
        trend = trend_direction(avg, previous, config)

    return {
        "week_start": start,
        "week_end": end,
        "average_score": avg,
        "color": compliance_color(avg, config),
        "trend": trend,
        "previous_week_average": previous,
        "days": days,
    }


def compliance_history(db: Session, client: Client, days: int = 30) -> dict:
    """Per-day mean of stored scores over the last ``days`` days."""
    since = local_today(client.organization.timezone) - timedelta(days=days)
    logs = db.query(MealLog).filter(
        MealLog.client_id == client.id,
        MealLog.scheduled_date >= since,
        MealLog.compliance_score.isnot(None),
    ).order_by(MealLog.scheduled_date).all()

    by_day: "OrderedDict[date, list[int]]" = OrderedDict()
    for log in logs:
        by_day.setdefault(log.scheduled_date, []).append(log.compliance_score)

    history = []
    for day, scores in by_day.items():
        score = average_score(scores)
        history.append({
            "date": day,
            "score": score,
            "color": compliance_color(score),
            "meals_scored": len(scores),
        })

    best = worst = None
    for entry in history:
        if best is None or entry["score"] > best["score"]:
            best = entry
        if worst is None or entry["score"] < worst["score"]:
            worst = entry

    return {
        "days": days,
        "average_score": average_score(h["score"] for h in history),
        "best_day": best,
        "worst_day": worst,
        "history": history,
    }
