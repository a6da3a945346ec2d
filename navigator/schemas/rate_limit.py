# This project was developed with assistance from AI tools.
"""Rate limit schemas (persisted records and wire payloads)."""

from datetime import datetime

from pydantic import ConfigDict, Field

from . import CamelModel


class ClientRecord(CamelModel):
    """Request counter for one client; timestamps are epoch milliseconds.

    Persisted as ``{"count", "firstRequest", "lastRequest"}``.
    """

    model_config = ConfigDict(frozen=True)

    count: int = Field(ge=1)
    first_request: int
    last_request: int


class RateLimitInfo(CamelModel):
    """Quota snapshot attached to every assistant response."""

    remaining: int
    reset_at: datetime | None = None
