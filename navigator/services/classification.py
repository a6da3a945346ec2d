# This project was developed with assistance from AI tools.
"""Query classification pipeline.

A query is resolved to exactly one decision by an ordered list of stages:

  1. FAQ keyword match          -> FAQ
  2. Navigation keyword match   -> NAVIGATION
  3. AI navigation classifier   -> NAVIGATION

Each stage returns a decision or None ("no match, continue"). The first
decision wins and later stages never run. When every stage passes the
result is NOT_FOUND.

The AI stage degrades gracefully. Any classifier failure is logged and
treated as not found, so classification always produces a decision.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

from openai import OpenAIError

from ..core.config import Settings
from ..inference.client import get_completion
from ..schemas.catalog import FaqEntry, NavigationEntry
from .catalog import Catalog, get_catalog
from .matching import FAQ_STOP_WORDS, NAVIGATION_STOP_WORDS, best_match

logger = logging.getLogger(__name__)

NOT_FOUND_SENTINEL = "NOT_FOUND"

NAVIGATION_PROMPT_TEMPLATE = """\
You are a navigation assistant for the Kuprik Qurilish website.

User query: "{query}"

Available sections:
{sections}

TASK:
1. Analyze the user's intent
2. Match it to ONE of the sections above
3. Return ONLY the exact URL from the list (e.g., "/corporativ/monitoring")
4. If no good match exists, return exactly: {sentinel}

IMPORTANT:
- Return ONLY the URL path or {sentinel}
- No explanations, no extra text
- Match based on meaning, not just keywords
- Be precise with URL paths

Your response:"""


class ClassifierTransportError(Exception):
    """Raised when the AI classifier cannot be reached or fails mid-call."""


class DecisionType(StrEnum):
    FAQ = "FAQ"
    NAVIGATION = "NAVIGATION"
    NOT_FOUND = "NOT_FOUND"


@dataclass(frozen=True)
class ClassificationDecision:
    """Terminal state of the pipeline for one query."""

    type: DecisionType
    faq: FaqEntry | None = None
    url: str | None = None
    intent: str | None = None
    score: int = 0
    matched_keywords: list[str] = field(default_factory=list)
    stage: str | None = None

    @classmethod
    def not_found(cls) -> "ClassificationDecision":
        return cls(type=DecisionType.NOT_FOUND)

    @property
    def is_navigation(self) -> bool:
        return self.type is DecisionType.NAVIGATION and bool(self.url)


class ClassificationStage(Protocol):
    name: str

    async def run(self, query: str) -> ClassificationDecision | None: ...


class NavigationClassifier(Protocol):
    async def classify(self, query: str, sections: Sequence[NavigationEntry]) -> str: ...


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


class FaqStage:
    """Keyword match over FAQ entries."""

    name = "faq"

    def __init__(self, faqs: Sequence[FaqEntry], min_score: int):
        self._faqs = faqs
        self._min_score = min_score

    async def run(self, query: str) -> ClassificationDecision | None:
        match = best_match(query, self._faqs, self._min_score, FAQ_STOP_WORDS)
        if match is None:
            return None
        logger.info("FAQ match: %s (score: %d)", match.item.question, match.score)
        logger.debug("Matched keywords: %s", ", ".join(match.matched_keywords))
        return ClassificationDecision(
            type=DecisionType.FAQ,
            faq=match.item,
            score=match.score,
            matched_keywords=match.matched_keywords,
            stage=self.name,
        )


class NavigationKeywordStage:
    """Keyword match over site sections."""

    name = "keywords"

    def __init__(self, sections: Sequence[NavigationEntry], min_score: int):
        self._sections = sections
        self._min_score = min_score

    async def run(self, query: str) -> ClassificationDecision | None:
        match = best_match(query, self._sections, self._min_score, NAVIGATION_STOP_WORDS)
        if match is None:
            return None
        logger.info("Navigation match: %s (score: %d)", match.item.intent, match.score)
        logger.debug("Matched keywords: %s", ", ".join(match.matched_keywords))
        return ClassificationDecision(
            type=DecisionType.NAVIGATION,
            url=match.item.url,
            intent=match.item.intent,
            score=match.score,
            matched_keywords=match.matched_keywords,
            stage=self.name,
        )


class AiNavigationStage:
    """Last-resort navigation lookup through the AI classifier.

    The classifier's answer is only trusted when it names a url from the
    catalog; anything else, including errors, is a miss.
    """

    name = "ai"

    def __init__(self, catalog: Catalog, classifier: NavigationClassifier):
        self._catalog = catalog
        self._classifier = classifier

    async def run(self, query: str) -> ClassificationDecision | None:
        if not self._catalog.navigation:
            return None
        try:
            answer = await self._classifier.classify(query, self._catalog.navigation)
        except Exception:
            logger.warning("AI navigation classifier failed, treating as not found", exc_info=True)
            return None

        answer = answer.strip()
        if not answer or answer == NOT_FOUND_SENTINEL:
            return None

        entry = self._catalog.find_navigation(answer)
        if entry is None:
            logger.warning("AI returned unknown url: %s", answer)
            return None

        logger.info("AI navigation match: %s", entry.intent)
        return ClassificationDecision(
            type=DecisionType.NAVIGATION,
            url=entry.url,
            intent=entry.intent,
            stage=self.name,
        )


# ---------------------------------------------------------------------------
# AI classifier
# ---------------------------------------------------------------------------


def build_sections_text(sections: Sequence[NavigationEntry], keyword_preview: int = 5) -> str:
    """Render the numbered section list shown to the classifier."""
    return "\n\n".join(
        f'{idx}. "{entry.intent}" → {entry.url}\n'
        f"   Keywords: {', '.join(entry.keywords[:keyword_preview])}"
        for idx, entry in enumerate(sections, start=1)
    )


class LLMNavigationClassifier:
    """Asks the ``classifier`` model tier to pick a url for a query."""

    def __init__(self, *, tier: str = "classifier", keyword_preview: int = 5) -> None:
        self._tier = tier
        self._keyword_preview = keyword_preview

    def build_prompt(self, query: str, sections: Sequence[NavigationEntry]) -> str:
        return NAVIGATION_PROMPT_TEMPLATE.format(
            query=query,
            sections=build_sections_text(sections, self._keyword_preview),
            sentinel=NOT_FOUND_SENTINEL,
        )

    async def classify(self, query: str, sections: Sequence[NavigationEntry]) -> str:
        """Return a url from ``sections`` or NOT_FOUND_SENTINEL (unvalidated)."""
        prompt = self.build_prompt(query, sections)
        try:
            text = await get_completion(
                [{"role": "user", "content": prompt}],
                tier=self._tier,
                temperature=0,
                max_tokens=50,
            )
        except OpenAIError as exc:
            raise ClassifierTransportError(str(exc)) from exc
        logger.info('AI classifier response: "%s"', text)
        return text


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class ClassificationPipeline:
    """Runs stages in priority order and returns the first decision."""

    def __init__(self, stages: Sequence[ClassificationStage]):
        self._stages = tuple(stages)

    @property
    def stage_names(self) -> list[str]:
        return [stage.name for stage in self._stages]

    async def classify(self, query: str) -> ClassificationDecision:
        logger.info('Processing query: "%s"', query)
        for stage in self._stages:
            decision = await stage.run(query)
            if decision is not None:
                logger.info("Resolved by %s stage: %s", stage.name, decision.type)
                return decision
        logger.info("No stage matched, NOT_FOUND")
        return ClassificationDecision.not_found()


def build_pipeline(
    catalog: Catalog,
    cfg: Settings,
    classifier: NavigationClassifier | None = None,
) -> ClassificationPipeline:
    """Assemble the standard FAQ -> keywords -> AI cascade."""
    classifier = classifier or LLMNavigationClassifier(keyword_preview=cfg.AI_KEYWORD_PREVIEW)
    return ClassificationPipeline(
        [
            FaqStage(catalog.faqs, cfg.FAQ_MIN_SCORE),
            NavigationKeywordStage(catalog.navigation, cfg.NAVIGATION_MIN_SCORE),
            AiNavigationStage(catalog, classifier),
        ]
    )


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_pipeline: ClassificationPipeline | None = None


def init_pipeline(cfg: Settings) -> ClassificationPipeline:
    """Initialise the singleton over the loaded catalog (called once from app lifespan)."""
    global _pipeline  # noqa: PLW0603
    _pipeline = build_pipeline(get_catalog(), cfg)
    logger.info("Classification pipeline ready (stages=%s)", _pipeline.stage_names)
    return _pipeline


def get_pipeline() -> ClassificationPipeline:
    """Return the initialised ClassificationPipeline singleton."""
    if _pipeline is None:
        raise RuntimeError("ClassificationPipeline not initialised -- call init_pipeline() first")
    return _pipeline
