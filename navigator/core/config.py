# This project was developed with assistance from AI tools.
"""
Application configuration.

All settings read from environment variables with sensible local dev defaults.
Relative data paths resolve against the project root, not the CWD.
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve project root .env regardless of CWD (matches inference/config.py approach)
PROJECT_ROOT = Path(__file__).resolve().parents[2]
_ENV_FILE = PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Application settings -- single source of truth for env-driven config."""

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -- App --
    APP_NAME: str = "site-navigator"
    SERVICE_NAME: str = "Kuprik Qurilish AI Assistant"
    LOG_LEVEL: str = "INFO"

    # -- CORS --
    ALLOWED_HOSTS: list[str] = ["*"]

    # -- LLM --
    LLM_API_KEY: str = Field(
        default="not-needed",
        description="API key for OpenAI-compatible LLM endpoint.",
    )
    LLM_BASE_URL: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL for OpenAI-compatible LLM endpoint.",
    )
    LLM_MODEL: str = Field(
        default="gpt-4o-mini",
        description="Model name used by both the classifier and conversational tiers.",
    )

    # -- Catalog --
    FAQ_PATH: Path = Field(
        default=Path("data/faq.json"),
        description="FAQ dataset ({'faqs': [...]}).",
    )
    SITE_MAP_PATH: Path = Field(
        default=Path("data/site_map.json"),
        description="Navigation dataset (list of {url, intent, keywords}).",
    )

    # -- Classification --
    FAQ_MIN_SCORE: int = Field(default=10, ge=0)
    NAVIGATION_MIN_SCORE: int = Field(default=10, ge=0)
    AI_KEYWORD_PREVIEW: int = Field(
        default=5,
        ge=0,
        description="Keywords per navigation entry shown to the AI classifier.",
    )
    MAX_QUERY_LENGTH: int = Field(default=500, ge=1)

    # -- Rate limiting --
    RATE_LIMIT_MAX_REQUESTS: int = Field(default=30, ge=1)
    RATE_LIMIT_WINDOW_HOURS: float = Field(default=12, gt=0)
    RATE_LIMIT_PERSIST_EVERY: int = Field(
        default=5,
        ge=1,
        description="Persist state on every Nth increment within a window.",
    )
    RATE_LIMIT_SWEEP_INTERVAL_SECONDS: float = Field(default=3600, gt=0)
    RATE_LIMIT_STATE_PATH: Path = Field(
        default=Path("data/rate_limits.json"),
        description="JSON file holding the identifier -> record mapping.",
    )
    RATE_LIMIT_TRUST_FORWARDED_FOR: bool = Field(
        default=False,
        description="Use the first X-Forwarded-For hop as the client address.",
    )

    @field_validator("FAQ_PATH", "SITE_MAP_PATH", "RATE_LIMIT_STATE_PATH")
    @classmethod
    def _resolve_relative(cls, value: Path) -> Path:
        return value if value.is_absolute() else PROJECT_ROOT / value

    @property
    def rate_limit_window_ms(self) -> int:
        return int(self.RATE_LIMIT_WINDOW_HOURS * 60 * 60 * 1000)


settings = Settings()
