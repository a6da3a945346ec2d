# This project was developed with assistance from AI tools.
"""RFC 7807 Problem Details error response schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """RFC 7807 Problem Details for HTTP APIs.

    See https://datatracker.ietf.org/doc/html/rfc7807
    """

    type: str = Field(
        default="about:blank",
        description="URI reference identifying the problem type.",
    )
    title: str = Field(description="Short human-readable summary of the problem.")
    status: int = Field(description="HTTP status code.")
    detail: str = Field(
        default="",
        description="Human-readable explanation specific to this occurrence.",
    )
    request_id: str = Field(
        default="",
        description="Correlation ID for tracing this request in logs.",
    )
    instance: str = Field(
        default="",
        description="URI reference identifying the specific occurrence of the problem.",
    )


class RateLimitErrorResponse(ErrorResponse):
    """429 body; keeps the fields the website widget reads for its countdown."""

    model_config = ConfigDict(populate_by_name=True)

    error: str = "RATE_LIMIT_EXCEEDED"
    message: str = Field(description="Localized wait hint.")
    reset_at: datetime = Field(alias="resetAt")
    remaining: int = 0
