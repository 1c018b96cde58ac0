"""Environment driven settings for the chat service."""

import os
from functools import lru_cache
from typing import List, Optional

DEFAULT_GREETING = (
    "Hello Solver! I can assist you with any questions about Google Workspace. "
    "Ask me anything!"
)


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    if not value:
        return None
    return float(value)


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self) -> None:
        self.api_key: Optional[str] = os.getenv("GEMINI_API_KEY")
        self.model: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
        self.api_base: str = os.getenv(
            "GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta"
        ).rstrip("/")
        self.fetcher_backend: str = os.getenv("PILOT_FETCHER_BACKEND", "rest").lower()
        # None keeps the transport's own timeout
        self.http_timeout: Optional[float] = _env_float("PILOT_HTTP_TIMEOUT")
        self.speech_input_enabled: bool = _env_flag("PILOT_SPEECH_INPUT", True)
        self.greeting: str = os.getenv("PILOT_GREETING", DEFAULT_GREETING)
        self.cors_origins: List[str] = [
            origin.strip()
            for origin in os.getenv("PILOT_CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
