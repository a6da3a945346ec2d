# This project was developed with assistance from AI tools.
"""Assistant request/response schemas."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict

from . import CamelModel
from .rate_limit import RateLimitInfo


class QueryRequest(BaseModel):
    """Body of every assistant POST.

    ``query`` is deliberately untyped so a missing or non-string value
    reaches the route and is rejected with a 400, not a schema 422.
    """

    model_config = ConfigDict(extra="ignore")

    query: Any = None


class ReplyType(StrEnum):
    FAQ = "FAQ"
    NAVIGATION = "NAVIGATION"
    CHAT = "CHAT"


class NavigateType(StrEnum):
    NAVIGATE = "NAVIGATE"
    NOT_FOUND = "NOT_FOUND"


class FaqSummary(CamelModel):
    id: int | str
    question: str
    category: str


class NavigationTarget(CamelModel):
    url: str
    intent: str


class AssistantReply(CamelModel):
    """Response of /classify (and /chat) and /talk."""

    message: str
    type: ReplyType
    faq: FaqSummary | None = None
    navigation: NavigationTarget | None = None
    rate_limit: RateLimitInfo


class NavigateReply(CamelModel):
    """Response of /navigate."""

    type: NavigateType
    url: str | None = None
    intent: str | None = None
    rate_limit: RateLimitInfo
