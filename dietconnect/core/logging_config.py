"""Logging setup shared by the API process and scripts."""

import logging

from dietconnect.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
    )
    # Access logs are emitted by the request-id middleware instead
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def mask_phone(phone: str | None) -> str:
    """Hide all but the last four digits of a phone number."""
    if not phone:
        return ""
    if len(phone) <= 4:
        return "*" * len(phone)
    return "*" * (len(phone) - 4) + phone[-4:]
