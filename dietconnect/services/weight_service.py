"""Weight logging shared by the staff and client-app endpoints."""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from dietconnect.core.nutrition import (
    calculate_bmi,
    is_weight_outlier,
    round_half_up,
    weight_change,
)
from dietconnect.models.models import Client, WeightLog


def record_weight(
    db: Session,
    client: Client,
    weight_kg: float,
    log_date: date,
    notes: Optional[str] = None,
    progress_photo_url: Optional[str] = None,
) -> WeightLog:
    """
    Create or replace the client's weigh-in for ``log_date``.

    BMI, change from the previous weigh-in and the outlier flag are derived
    here. The client's current weight follows the latest log.
    """
    previous = db.query(WeightLog).filter(
        WeightLog.client_id == client.id,
        WeightLog.log_date < log_date,
    ).order_by(WeightLog.log_date.desc()).first()
    change = weight_change(weight_kg, previous.weight_kg if previous else None)

    log = db.query(WeightLog).filter(
        WeightLog.client_id == client.id,
        WeightLog.log_date == log_date,
    ).first()
    if log is None:
        log = WeightLog(org_id=client.org_id, client_id=client.id, log_date=log_date)
        db.add(log)

    log.weight_kg = weight_kg
    log.notes = notes
    if progress_photo_url is not None:
        log.progress_photo_url = progress_photo_url
    log.bmi = calculate_bmi(weight_kg, client.height_cm)
    log.weight_change_from_previous = change
    log.is_outlier = is_weight_outlier(change)

    later = db.query(WeightLog.id).filter(
        WeightLog.client_id == client.id,
        WeightLog.log_date > log_date,
    ).first()
    if later is None:
        client.current_weight_kg = weight_kg

    db.commit()
    db.refresh(log)
    return log


def weight_summary(logs_oldest_first: list[WeightLog]) -> dict:
    """Start/end weight, total loss and average weekly loss over a set of logs."""
    if not logs_oldest_first:
        return {}
    first, last = logs_oldest_first[0], logs_oldest_first[-1]
    total_loss = round_half_up(first.weight_kg - last.weight_kg, 2)
    weeks = max(1, (last.log_date - first.log_date).days / 7)
    return {
        "start_weight_kg": first.weight_kg,
        "end_weight_kg": last.weight_kg,
        "total_weight_loss_kg": total_loss,
        "average_loss_per_week_kg": round_half_up(total_loss / weeks, 2),
    }
