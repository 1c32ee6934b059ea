"""Meal log updates shared by staff and client endpoints."""

import logging
from typing import Optional

from fastapi import UploadFile
from sqlalchemy.orm import Session

from dietconnect.core.compliance import ComplianceResult
from dietconnect.core.config import settings
from dietconnect.core.database import utcnow
from dietconnect.core.errors import AppError, bad_request
from dietconnect.models.models import MealLog, MealLogStatus
from dietconnect.services.compliance_service import calculate_meal_compliance
from dietconnect.services.storage_service import (
    IMAGE_CONTENT_TYPES,
    meal_photo_key,
    storage_service,
)

logger = logging.getLogger(__name__)


def apply_log_changes(db: Session, log: MealLog, changes: dict) -> Optional[ComplianceResult]:
    """
    Apply field changes to a meal log.

    Changing to a non-pending status stamps ``logged_at``; any status change
    or a new photo on a logged meal rescores compliance.

    Returns:
        The new compliance result when the log was rescored
    """
    previous_status = log.status
    previous_photo = log.meal_photo_url

    for field, value in changes.items():
        setattr(log, field, value)

    if "meal_photo_url" in changes and changes["meal_photo_url"] != previous_photo:
        log.photo_uploaded_at = utcnow() if changes["meal_photo_url"] else None

    status = changes.get("status")
    status_changed = status is not None and status != previous_status
    if status_changed and status != MealLogStatus.PENDING:
        log.logged_at = utcnow()
    db.commit()

    photo_changed = log.meal_photo_url != previous_photo and log.status != MealLogStatus.PENDING
    if status_changed or photo_changed:
        if log.status == MealLogStatus.PENDING:
            log.compliance_score = None
            log.compliance_color = None
            log.compliance_issues = []
            db.commit()
            return None
        return calculate_meal_compliance(db, log.id)
    return None


async def save_meal_photo(db: Session, log: MealLog, file: UploadFile) -> MealLog:
    """Upload a meal photo to object storage and attach it to the log."""
    content_type = file.content_type or ""
    if content_type not in IMAGE_CONTENT_TYPES:
        raise bad_request("Only JPEG, PNG, WEBP or HEIC images are allowed", "INVALID_FILE_TYPE")

    data = await file.read()
    if not data:
        raise bad_request("Uploaded file is empty", "EMPTY_FILE")
    if len(data) > settings.MAX_UPLOAD_MB * 1024 * 1024:
        raise AppError(f"File exceeds {settings.MAX_UPLOAD_MB} MB", 413, "FILE_TOO_LARGE")

    key = meal_photo_key(log.org_id, log.id, content_type)
    url = storage_service.upload_bytes(data, key, content_type)
    apply_log_changes(db, log, {"meal_photo_url": url})
    db.refresh(log)
    return log
