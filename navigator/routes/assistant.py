# This project was developed with assistance from AI tools.
"""Assistant routes -- rate limited, no authentication.

Response types of /classify:
  - FAQ: answer from the FAQ dataset
  - NAVIGATION: redirect to a site section
  - CHAT: conversational reply (nothing matched)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ..core.config import settings
from ..middleware.rate_limit import enforce_rate_limit
from ..schemas.assistant import (
    AssistantReply,
    FaqSummary,
    NavigateReply,
    NavigateType,
    NavigationTarget,
    QueryRequest,
    ReplyType,
)
from ..schemas.rate_limit import RateLimitInfo
from ..services.classification import ClassificationPipeline, DecisionType, get_pipeline
from ..services.rate_limit import RateLimiter, get_rate_limiter
from ..services.responder import generate_chat_response, generate_general_chat
from ..services.validation import QueryValidationError, validate_query

logger = logging.getLogger(__name__)

router = APIRouter()


def _query_or_400(req: QueryRequest | None) -> str:
    try:
        return validate_query(req.query if req else None, settings.MAX_QUERY_LENGTH)
    except QueryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def _rate_limit_info(limiter: RateLimiter, identifier: str) -> RateLimitInfo:
    current = limiter.get_status(identifier)
    return RateLimitInfo(remaining=current.remaining, reset_at=current.reset_at)


@router.post(
    "/classify",
    response_model=AssistantReply,
    response_model_exclude_none=True,
)
@router.post(
    "/chat",
    response_model=AssistantReply,
    response_model_exclude_none=True,
    include_in_schema=False,
)
async def classify(
    req: QueryRequest | None = None,
    identifier: str = Depends(enforce_rate_limit),
    limiter: RateLimiter = Depends(get_rate_limiter),
    pipeline: ClassificationPipeline = Depends(get_pipeline),
) -> AssistantReply:
    """Classify a query and reply with an FAQ answer, a redirect, or chat."""
    query = _query_or_400(req)
    logger.info('New query from %s: "%s"', identifier, query)

    decision = await pipeline.classify(query)
    message = await generate_chat_response(query, decision)
    rate_limit = _rate_limit_info(limiter, identifier)

    if decision.type is DecisionType.FAQ and decision.faq is not None:
        return AssistantReply(
            message=message,
            type=ReplyType.FAQ,
            faq=FaqSummary(
                id=decision.faq.id,
                question=decision.faq.question,
                category=decision.faq.category,
            ),
            rate_limit=rate_limit,
        )

    if decision.is_navigation:
        return AssistantReply(
            message=message,
            type=ReplyType.NAVIGATION,
            navigation=NavigationTarget(url=decision.url, intent=decision.intent),
            rate_limit=rate_limit,
        )

    return AssistantReply(message=message, type=ReplyType.CHAT, rate_limit=rate_limit)


@router.post(
    "/navigate",
    response_model=NavigateReply,
    response_model_exclude_none=True,
)
async def navigate(
    req: QueryRequest | None = None,
    identifier: str = Depends(enforce_rate_limit),
    limiter: RateLimiter = Depends(get_rate_limiter),
    pipeline: ClassificationPipeline = Depends(get_pipeline),
) -> NavigateReply:
    """Return a navigation target only; FAQ outcomes count as not found."""
    query = _query_or_400(req)
    logger.info('Navigation query from %s: "%s"', identifier, query)

    decision = await pipeline.classify(query)
    rate_limit = _rate_limit_info(limiter, identifier)

    if not decision.is_navigation:
        return NavigateReply(type=NavigateType.NOT_FOUND, rate_limit=rate_limit)

    return NavigateReply(
        type=NavigateType.NAVIGATE,
        url=decision.url,
        intent=decision.intent,
        rate_limit=rate_limit,
    )


@router.post(
    "/talk",
    response_model=AssistantReply,
    response_model_exclude_none=True,
)
async def talk(
    req: QueryRequest | None = None,
    identifier: str = Depends(enforce_rate_limit),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> AssistantReply:
    """Conversational reply only -- no FAQ or navigation detection."""
    query = _query_or_400(req)
    logger.info('Talk query from %s: "%s"', identifier, query)

    message = await generate_general_chat(query)
    return AssistantReply(
        message=message,
        type=ReplyType.CHAT,
        rate_limit=_rate_limit_info(limiter, identifier),
    )
