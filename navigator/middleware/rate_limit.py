# This project was developed with assistance from AI tools.
"""Rate limit dependency for assistant routes.

Callers are identified by network address plus a hash of their
User-Agent, so several browsers behind one NAT get separate quotas.
``enforce_rate_limit`` counts the request and either sets the
``X-RateLimit-*`` headers or raises ``RateLimitExceeded``, which the app
turns into a 429 (see ``main.py``).
"""

import hashlib
import logging
import math
from datetime import UTC, datetime

from fastapi import Depends, Request, Response

from ..core.config import settings
from ..services.rate_limit import RateDecision, RateLimiter, get_rate_limiter

logger = logging.getLogger(__name__)

UNKNOWN_USER_AGENT = "unknown"

MSG_RATE_LIMITED = (
    "Sizning so'rovlaringiz cheklovi tugadi. "
    "{hours} soatdan keyin qaytadan urinib ko'ring."
)


class RateLimitExceeded(Exception):
    """Raised when a caller has used up its quota for the current window."""

    def __init__(self, identifier: str, decision: RateDecision):
        super().__init__(f"Rate limit exceeded for {identifier}")
        self.identifier = identifier
        self.decision = decision


def hash_user_agent(user_agent: str) -> str:
    """Stable short digest of a client-supplied string."""
    return hashlib.sha256(user_agent.encode("utf-8")).hexdigest()[:12]


def client_identifier(address: str, user_agent: str | None) -> str:
    """Build the throttling key ``{address}_{hash(user_agent)}``."""
    return f"{address}_{hash_user_agent(user_agent or UNKNOWN_USER_AGENT)}"


def client_address(request: Request, trust_forwarded_for: bool = False) -> str:
    """Return the caller's IP, optionally taken from X-Forwarded-For."""
    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client is not None:
        return request.client.host
    return "unknown"


def request_identifier(request: Request) -> str:
    address = client_address(request, settings.RATE_LIMIT_TRUST_FORWARDED_FOR)
    return client_identifier(address, request.headers.get("user-agent"))


def rate_limit_headers(decision: RateDecision) -> dict[str, str]:
    """Build the X-RateLimit-* headers for a decision."""
    headers = {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
    }
    if decision.reset_at is not None:
        headers["X-RateLimit-Reset"] = decision.reset_at.isoformat()
    return headers


def seconds_until(reset_at: datetime, now: datetime | None = None) -> int:
    """Whole seconds (rounded up) until ``reset_at``; never negative."""
    now = now or datetime.now(UTC)
    return max(0, math.ceil((reset_at - now).total_seconds()))


def hours_until(reset_at: datetime, now: datetime | None = None) -> int:
    """Whole hours (rounded up) until ``reset_at``; never below 1."""
    return max(1, math.ceil(seconds_until(reset_at, now) / 3600))


def rate_limited_message(reset_at: datetime, now: datetime | None = None) -> str:
    return MSG_RATE_LIMITED.format(hours=hours_until(reset_at, now))


async def enforce_rate_limit(
    request: Request,
    response: Response,
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> str:
    """Count this request against the caller's quota; return the identifier."""
    identifier = request_identifier(request)
    decision = await limiter.check_and_record_async(identifier)
    if not decision.allowed:
        logger.warning("Rate limit exceeded for %s", identifier)
        raise RateLimitExceeded(identifier, decision)

    headers = rate_limit_headers(decision)
    # Kept on the request so error responses raised later still carry them
    request.state.rate_limit_headers = headers
    response.headers.update(headers)
    return identifier
