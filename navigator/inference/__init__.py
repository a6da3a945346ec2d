# This project was developed with assistance from AI tools.
"""Inference module -- LLM client and model tier config loading."""

from .client import get_completion
from .config import get_model_config, get_model_tiers

__all__ = [
    "get_completion",
    "get_model_config",
    "get_model_tiers",
]
