"""
Identity-provider REST integration.

Used to confirm that a token's subject is a real, current user before
creating a staff account for it.
"""

import logging
from typing import Optional

import httpx

from dietconnect.core.config import settings

logger = logging.getLogger(__name__)


class IdentityService:
    """Service for the identity provider's user API."""

    def __init__(self):
        self.base_url = settings.IDP_API_URL.rstrip("/")
        self.secret_key = settings.IDP_SECRET_KEY

    @property
    def enabled(self) -> bool:
        return bool(self.base_url and self.secret_key)

    async def get_user(self, idp_user_id: str) -> Optional[dict]:
        """
        Fetch a user by identity-provider id.

        Args:
            idp_user_id: The ``sub`` claim of the staff token

        Returns:
            The user record, or None when the provider does not know the id
        """
        url = f"{self.base_url}/users/{idp_user_id}"
        headers = {"Authorization": f"Bearer {self.secret_key}"}

        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(url, headers=headers)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()

    async def user_exists(self, idp_user_id: str) -> bool:
        """True when the provider confirms the user. Always True when unconfigured."""
        if not self.enabled:
            return True
        try:
            return await self.get_user(idp_user_id) is not None
        except httpx.HTTPError as e:
            logger.error("Identity provider lookup failed for %s: %s", idp_user_id, e)
            raise


identity_service = IdentityService()
