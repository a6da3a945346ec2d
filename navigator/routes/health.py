# This project was developed with assistance from AI tools.
"""Liveness endpoint -- never rate limited."""

from datetime import UTC, datetime

from fastapi import APIRouter

from .. import __version__
from ..core.config import settings

router = APIRouter()


@router.get("/health")
@router.get("/api/assistant/health", include_in_schema=False)
async def health() -> dict[str, str]:
    """Report that the process is up."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": settings.SERVICE_NAME,
        "version": __version__,
    }
