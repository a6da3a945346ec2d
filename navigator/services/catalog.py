# This project was developed with assistance from AI tools.
"""Read-only FAQ and navigation catalog.

Both datasets are JSON files loaded once at startup. The module exposes a
singleton initialised from the app lifespan via ``init_catalog()``.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from pydantic import TypeAdapter

from ..core.config import Settings
from ..schemas.catalog import FaqEntry, FaqFile, NavigationEntry

logger = logging.getLogger(__name__)

_NAVIGATION_ADAPTER = TypeAdapter(list[NavigationEntry])


@dataclass(frozen=True)
class Catalog:
    """FAQ entries and navigation entries, in file order."""

    faqs: tuple[FaqEntry, ...]
    navigation: tuple[NavigationEntry, ...]

    def find_navigation(self, url: str) -> NavigationEntry | None:
        """Return the navigation entry whose url equals ``url`` exactly."""
        for entry in self.navigation:
            if entry.url == url:
                return entry
        return None


def _ensure_unique(values: list, label: str) -> None:
    seen = set()
    duplicates = set()
    for value in values:
        if value in seen:
            duplicates.add(value)
        seen.add(value)
    if duplicates:
        raise ValueError(f"Duplicate {label} in catalog: {sorted(map(str, duplicates))}")


def load_faqs(path: Path) -> tuple[FaqEntry, ...]:
    """Load and validate faq.json."""
    raw = json.loads(path.read_text(encoding="utf-8"))
    faqs = FaqFile.model_validate(raw).faqs
    _ensure_unique([faq.id for faq in faqs], "FAQ ids")
    return tuple(faqs)


def load_navigation(path: Path) -> tuple[NavigationEntry, ...]:
    """Load and validate the site map."""
    raw = json.loads(path.read_text(encoding="utf-8"))
    entries = _NAVIGATION_ADAPTER.validate_python(raw)
    _ensure_unique([entry.url for entry in entries], "navigation urls")
    return tuple(entries)


def load_catalog(faq_path: Path, site_map_path: Path) -> Catalog:
    """Load both datasets from disk."""
    return Catalog(faqs=load_faqs(faq_path), navigation=load_navigation(site_map_path))


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_catalog: Catalog | None = None


def init_catalog(cfg: Settings) -> Catalog:
    """Initialise the singleton (called once from app lifespan)."""
    global _catalog  # noqa: PLW0603
    _catalog = load_catalog(cfg.FAQ_PATH, cfg.SITE_MAP_PATH)
    logger.info(
        "Catalog loaded (faqs=%d, navigation=%d)",
        len(_catalog.faqs),
        len(_catalog.navigation),
    )
    return _catalog


def get_catalog() -> Catalog:
    """Return the initialised Catalog singleton."""
    if _catalog is None:
        raise RuntimeError("Catalog not initialised -- call init_catalog() first")
    return _catalog
