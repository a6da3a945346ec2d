# This project was developed with assistance from AI tools.
"""FAQ and navigation dataset schemas."""

from pydantic import BaseModel, ConfigDict, Field


class FaqEntry(BaseModel):
    """A pre-authored question/answer pair."""

    model_config = ConfigDict(frozen=True)

    id: int | str
    question: str
    answer: str
    category: str = ""
    keywords: tuple[str, ...] = Field(default_factory=tuple)


class NavigationEntry(BaseModel):
    """A site section the assistant can redirect to."""

    model_config = ConfigDict(frozen=True)

    url: str
    intent: str
    keywords: tuple[str, ...] = Field(default_factory=tuple)


class FaqFile(BaseModel):
    """Top-level layout of faq.json."""

    faqs: list[FaqEntry]
