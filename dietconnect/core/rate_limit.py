"""Fixed-window rate limits backed by the ``limits`` library."""

import logging
from typing import Optional

from fastapi import Request
from limits import parse, storage, strategies

from dietconnect.core.config import settings
from dietconnect.core.errors import too_many_requests

logger = logging.getLogger(__name__)

# In-process storage; every worker keeps its own counters
memory_storage = storage.MemoryStorage()
limiter = strategies.FixedWindowRateLimiter(memory_storage)


class RateLimit:
    """A named limit such as "3 per 5 minutes" applied per key."""

    def __init__(self, name: str, rate: str, message: str):
        self.name = name
        self.item = parse(rate)
        self.message = message

    def check(self, key: str) -> None:
        """Record a hit for ``key`` and raise 429 once the window is used up."""
        if not limiter.hit(self.item, self.name, key):
            logger.warning("Rate limit %s exceeded for %s", self.name, key)
            raise too_many_requests(self.message)


def reset_rate_limits() -> None:
    memory_storage.reset()


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


otp_request_limit = RateLimit(
    "otp_request",
    settings.RATE_LIMIT_OTP_REQUEST,
    "Too many OTP requests. Please try again in 5 minutes.",
)
otp_verify_limit = RateLimit(
    "otp_verify",
    settings.RATE_LIMIT_OTP_VERIFY,
    "Too many verification attempts. Please request a new OTP.",
)
api_limit = RateLimit(
    "api",
    settings.RATE_LIMIT_API,
    "Too many requests. Please slow down.",
)
write_limit = RateLimit(
    "write",
    settings.RATE_LIMIT_WRITE,
    "Too many write requests. Please slow down.",
)


def otp_key(request: Request, phone: Optional[str]) -> str:
    """OTP limits follow the phone number, falling back to the caller's IP."""
    return phone or client_ip(request)


async def limit_api(request: Request) -> None:
    """App-wide dependency: general request budget per client IP."""
    api_limit.check(client_ip(request))
