# This project was developed with assistance from AI tools.
"""FastAPI application entry point."""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .core.config import settings
from .inference import get_model_tiers
from .middleware.rate_limit import (
    RateLimitExceeded,
    rate_limit_headers,
    rate_limited_message,
    seconds_until,
)
from .routes import assistant, health
from .schemas.error import ErrorResponse, RateLimitErrorResponse
from .services.catalog import init_catalog
from .services.classification import init_pipeline
from .services.rate_limit import init_rate_limiter

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

MSG_INTERNAL_ERROR = "Kechirasiz, xatolik yuz berdi. Qaytadan urinib ko'ring."


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Application startup/shutdown lifecycle."""
    logger.info("Model tiers configured: %s", get_model_tiers())
    init_catalog(settings)
    init_pipeline(settings)
    limiter = init_rate_limiter(settings)
    limiter.start()
    logger.info("%s v%s started", settings.APP_NAME, __version__)
    yield
    await limiter.stop()


app = FastAPI(
    title="Site Navigator Assistant API",
    description="FAQ, navigation and chat assistant for the Kuprik Qurilish website",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
    expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
)

_HTTP_STATUS_TITLES: dict[int, str] = {
    400: "Bad Request",
    404: "Not Found",
    405: "Method Not Allowed",
    422: "Unprocessable Entity",
    429: "Too Many Requests",
    500: "Internal Server Error",
}


def _request_id(request: Request) -> str:
    return request.headers.get("x-request-id", str(uuid.uuid4()))


def _counted_headers(request: Request) -> dict[str, str]:
    """X-RateLimit-* headers of a request that already passed the rate limit."""
    return dict(getattr(request.state, "rate_limit_headers", {}))


def _build_error(status_code: int, detail: str, request_id: str) -> ErrorResponse:
    return ErrorResponse(
        type="about:blank",
        title=_HTTP_STATUS_TITLES.get(status_code, "Error"),
        status=status_code,
        detail=detail,
        request_id=request_id,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Convert HTTPException to RFC 7807 Problem Details."""
    body = _build_error(exc.status_code, str(exc.detail), _request_id(request))
    headers = _counted_headers(request)
    headers.update(getattr(exc, "headers", None) or {})
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(),
        headers=headers or None,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Convert Pydantic validation errors to RFC 7807 Problem Details."""
    body = _build_error(422, str(exc.errors()), _request_id(request))
    return JSONResponse(status_code=422, content=body.model_dump())


@app.exception_handler(RateLimitExceeded)
async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded):
    """429 with the reset time, a localized wait hint and rate-limit headers."""
    decision = exc.decision
    message = rate_limited_message(decision.reset_at)
    body = RateLimitErrorResponse(
        title=_HTTP_STATUS_TITLES[429],
        status=429,
        detail=message,
        request_id=_request_id(request),
        message=message,
        reset_at=decision.reset_at,
        remaining=0,
    )
    headers = rate_limit_headers(decision)
    headers["Retry-After"] = str(seconds_until(decision.reset_at))
    return JSONResponse(
        status_code=429,
        content=body.model_dump(mode="json", by_alias=True),
        headers=headers,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all for unhandled exceptions -- log and return 500."""
    request_id = _request_id(request)
    logger.exception("Unhandled exception (request_id=%s)", request_id)
    body = _build_error(500, MSG_INTERNAL_ERROR, request_id)
    return JSONResponse(
        status_code=500,
        content=body.model_dump(),
        headers=_counted_headers(request) or None,
    )


# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(assistant.router, prefix="/api/assistant", tags=["assistant"])
