"""In-app notifications with Expo push delivery."""

import logging
from typing import Optional

import httpx
from sqlalchemy.orm import Session

from dietconnect.core.config import settings
from dietconnect.models.models import (
    Client,
    DeliveryStatus,
    Notification,
    RecipientType,
    User,
)

logger = logging.getLogger(__name__)

EXPO_TOKEN_PREFIXES = ("ExponentPushToken[", "ExpoPushToken[")


def is_expo_token(token: str) -> bool:
    return token.startswith(EXPO_TOKEN_PREFIXES)


def add_push_token(owner, token: str) -> bool:
    """Remember a device token on a client or staff user. Returns False if already known."""
    tokens = list(owner.push_tokens or [])
    if token in tokens:
        return False
    tokens.append(token)
    # Reassign so the JSON column is flagged dirty
    owner.push_tokens = tokens
    return True


class NotificationService:
    """Stores notifications and pushes them to registered devices."""

    def __init__(self):
        self.push_url = settings.EXPO_PUSH_URL

    async def send_push(self, tokens: list[str], title: str, body: str, data: dict) -> dict:
        messages = [
            {"to": token, "title": title, "body": body, "data": data, "sound": "default"}
            for token in tokens
        ]
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(
                self.push_url,
                json=messages,
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            return response.json()

    def _recipient_tokens(self, db: Session, recipient_id: str, recipient_type: RecipientType) -> list[str]:
        model = Client if recipient_type == RecipientType.CLIENT else User
        recipient = db.query(model).filter(model.id == recipient_id).first()
        if not recipient:
            return []
        return [t for t in (recipient.push_tokens or []) if is_expo_token(t)]

    async def notify(
        self,
        db: Session,
        *,
        org_id: str,
        recipient_id: str,
        recipient_type: RecipientType,
        category: str,
        title: str,
        message: str,
        related_entity_type: Optional[str] = None,
        related_entity_id: Optional[str] = None,
        action_url: Optional[str] = None,
    ) -> Notification:
        """
        Save a notification and push it to the recipient's devices.

        Push failures are logged and recorded on the notification; they never
        fail the caller's request.
        """
        notification = Notification(
            org_id=org_id,
            recipient_id=recipient_id,
            recipient_type=recipient_type,
            category=category,
            title=title,
            message=message,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id,
            action_url=action_url,
            delivery_status=DeliveryStatus.PENDING,
        )
        db.add(notification)
        db.commit()

        tokens = self._recipient_tokens(db, recipient_id, recipient_type)
        if not tokens:
            return notification

        data = {
            "notification_id": notification.id,
            "category": category,
            "entity_type": related_entity_type,
            "entity_id": related_entity_id,
        }
        try:
            await self.send_push(tokens, title, message, data)
            notification.delivery_status = DeliveryStatus.DELIVERED
        except httpx.HTTPError as e:
            logger.error("Push delivery failed for notification %s: %s", notification.id, e)
            notification.delivery_status = DeliveryStatus.FAILED
        db.commit()
        return notification


notification_service = NotificationService()
