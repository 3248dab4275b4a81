"""Environment-driven settings for the studio."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

LOGGER = logging.getLogger(__name__)

PLACEHOLDER_CREDENTIAL = "placeholder"
PROVIDERS = ("gemini", "openai")


@dataclass(frozen=True)
class Settings:
    provider: str = "gemini"
    api_key: Optional[str] = None
    text_model: str = "gemini-2.5-flash"
    image_model: str = "gemini-3-pro-image-preview"
    mock_delay_scale: float = 1.0
    require_credential: bool = False
    default_margin: float = 150.0
    langsmith_project: str = "dropship-studio"
    session_ttl_seconds: float = 3600.0
    max_sessions: int = 100


def is_usable_credential(api_key: Optional[str]) -> bool:
    return bool(api_key) and api_key != PLACEHOLDER_CREDENTIAL


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_settings() -> Settings:
    """Read settings from the process environment (and a ``.env`` file, if any)."""
    load_dotenv()

    provider = os.getenv("STUDIO_PROVIDER", "gemini").strip().lower()
    if provider not in PROVIDERS:
        raise ValueError(f"STUDIO_PROVIDER must be one of {', '.join(PROVIDERS)}, got {provider!r}")

    if provider == "openai":
        api_key = os.getenv("OPENAI_API_KEY")
        text_model = os.getenv("STUDIO_TEXT_MODEL", "gpt-4o-mini")
        image_model = os.getenv("STUDIO_IMAGE_MODEL", "gpt-image-1")
    else:
        api_key = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
        text_model = os.getenv("STUDIO_TEXT_MODEL", "gemini-2.5-flash")
        image_model = os.getenv("STUDIO_IMAGE_MODEL", "gemini-3-pro-image-preview")

    return Settings(
        provider=provider,
        api_key=api_key,
        text_model=text_model,
        image_model=image_model,
        mock_delay_scale=float(os.getenv("STUDIO_MOCK_DELAY_SCALE", "1.0")),
        require_credential=_env_flag("STUDIO_REQUIRE_CREDENTIAL"),
        default_margin=float(os.getenv("STUDIO_DEFAULT_MARGIN", "150")),
        langsmith_project=os.getenv("LANGCHAIN_PROJECT", "dropship-studio"),
        session_ttl_seconds=float(os.getenv("STUDIO_SESSION_TTL", "3600")),
        max_sessions=int(os.getenv("STUDIO_MAX_SESSIONS", "100")),
    )


def configure_langsmith(settings: Settings) -> bool:
    """Turn on LangSmith tracing when an API key is available."""
    api_key = os.getenv("LANGSMITH_API_KEY")
    if not api_key:
        LOGGER.info("LANGSMITH_API_KEY not set - tracing disabled")
        return False

    os.environ["LANGCHAIN_TRACING_V2"] = "true"
    os.environ["LANGCHAIN_PROJECT"] = settings.langsmith_project
    os.environ.setdefault("LANGCHAIN_ENDPOINT", "https://api.smith.langchain.com")

    LOGGER.info(f"LangSmith configured for project: {settings.langsmith_project}")
    return True
