"""Staff notification inbox and device registration."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from dietconnect.core.auth import get_current_staff
from dietconnect.core.database import get_db, utcnow
from dietconnect.core.errors import not_found
from dietconnect.models.models import Notification, RecipientType, User
from dietconnect.schemas.schemas import DeviceTokenRequest, MessageResponse, NotificationResponse
from dietconnect.services.notification_service import add_push_token

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.post("/device-token", response_model=MessageResponse)
def register_device_token(
    data: DeviceTokenRequest,
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    if add_push_token(user, data.token):
        db.commit()
    return MessageResponse(message="Device token registered")


@router.get("", response_model=list[NotificationResponse])
def list_notifications(
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=100),
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    query = db.query(Notification).filter(
        Notification.recipient_id == user.id,
        Notification.recipient_type == RecipientType.USER,
    )
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.sent_at.desc()).limit(limit).all()


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_read(
    notification_id: str,
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.recipient_id == user.id,
        Notification.recipient_type == RecipientType.USER,
    ).first()
    if not notification:
        raise not_found("Notification")
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        db.commit()
        db.refresh(notification)
    return notification
