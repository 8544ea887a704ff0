"""Service configuration loaded from the environment."""

import logging
import os
from typing import Optional

from pydantic import BaseModel

from ..domain.services.image_acquisition import MAX_IMAGE_BYTES
from ..domain.services.textual_matcher import DEFAULT_TOP_K
from ..domain.services.time_budget import BudgetLimits

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"⚠️ Invalid value for {name}: {value!r}, using {default}")
        return default


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


class Settings(BaseModel):
    """Configuration for the label verification service."""

    openai_api_key: str = ""
    model: str = "gpt-4o"
    ai_timeout: float = 40.0
    ai_max_retries: int = 2
    max_image_bytes: int = MAX_IMAGE_BYTES
    fetch_timeout: float = 15.0
    top_k: int = DEFAULT_TOP_K
    text_concurrency: Optional[int] = None
    reference_cache_ttl: int = 3600
    reference_cache_maxsize: int = 128
    reference_labels_file: Optional[str] = None
    budget: BudgetLimits = BudgetLimits()

    @classmethod
    def from_env(cls) -> "Settings":
        """Create configuration from environment variables."""
        openai_api_key = os.getenv("OPENAI_API_KEY", "")
        if not openai_api_key:
            logger.warning("⚠️ OPENAI_API_KEY not found in environment variables")

        text_concurrency = _env_int("LABEL_CHECKER_TEXT_CONCURRENCY", 0)
        reference_labels_file = os.getenv("LABEL_CHECKER_REFERENCE_LABELS_FILE") or None
        if reference_labels_file:
            logger.info(f"📚 Reference labels will be loaded from {reference_labels_file}")

        return cls(
            openai_api_key=openai_api_key,
            model=os.getenv("LABEL_CHECKER_MODEL", "gpt-4o"),
            ai_timeout=_env_float("LABEL_CHECKER_AI_TIMEOUT", 40.0),
            ai_max_retries=_env_int("LABEL_CHECKER_AI_MAX_RETRIES", 2),
            max_image_bytes=_env_int("LABEL_CHECKER_MAX_IMAGE_BYTES", MAX_IMAGE_BYTES),
            fetch_timeout=_env_float("LABEL_CHECKER_FETCH_TIMEOUT", 15.0),
            top_k=_env_int("LABEL_CHECKER_TOP_K", DEFAULT_TOP_K),
            text_concurrency=text_concurrency or None,
            reference_cache_ttl=_env_int("LABEL_CHECKER_REFERENCE_CACHE_TTL", 3600),
            reference_cache_maxsize=_env_int("LABEL_CHECKER_REFERENCE_CACHE_MAXSIZE", 128),
            reference_labels_file=reference_labels_file,
            budget=BudgetLimits(
                ceiling=_env_float("LABEL_CHECKER_BUDGET_CEILING", 300.0),
                extraction=_env_float("LABEL_CHECKER_BUDGET_EXTRACTION", 240.0),
                matching=_env_float("LABEL_CHECKER_BUDGET_MATCHING", 250.0),
                visual=_env_float("LABEL_CHECKER_BUDGET_VISUAL", 260.0),
                visual_loop=_env_float("LABEL_CHECKER_BUDGET_VISUAL_LOOP", 280.0),
            ),
        )
