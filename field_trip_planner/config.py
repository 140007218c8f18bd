"""Configuration helpers for provider credentials and runtime limits."""
from __future__ import annotations

import os
import random
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


def _split_keys(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(slots=True)
class Settings:
    """Credentials and limits handed to the provider objects at construction."""

    geonames_user: Optional[str] = None
    ors_api_key: Optional[str] = None
    opentripmap_api_key: Optional[str] = None
    openai_api_keys: List[str] = field(default_factory=list)
    llm_model: str = "gpt-4o-mini"
    http_timeout: float = 8.0
    request_timeout: float = 60.0
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables (and ``.env``)."""

        keys = _split_keys(os.getenv("OPENAI_API_KEYS")) or _split_keys(os.getenv("OPENAI_API_KEY"))
        origins = _split_keys(os.getenv("PLANNER_ALLOWED_ORIGINS")) or ["*"]
        return cls(
            geonames_user=os.getenv("GEONAMES_USER") or None,
            ors_api_key=os.getenv("ORS_API_KEY") or None,
            opentripmap_api_key=os.getenv("OPENTRIPMAP_API_KEY") or None,
            openai_api_keys=keys,
            llm_model=os.getenv("PLANNER_LLM_MODEL") or "gpt-4o-mini",
            http_timeout=_float_env("PLANNER_HTTP_TIMEOUT", 8.0),
            request_timeout=_float_env("PLANNER_REQUEST_TIMEOUT", 60.0),
            allowed_origins=origins,
        )

    def pick_openai_key(self) -> Optional[str]:
        """Return one of the configured OpenAI keys, spreading load across them."""

        if not self.openai_api_keys:
            return None
        return random.choice(self.openai_api_keys)
