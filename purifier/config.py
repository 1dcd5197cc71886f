"""Configuration constants for the transcript purifier."""

from dataclasses import dataclass
import os
from typing import Optional


@dataclass(frozen=True)
class ProviderSettings:
    provider: str
    gemini_api_key: Optional[str]
    openai_api_key: Optional[str]
    openai_base_url: Optional[str]

    @staticmethod
    def from_env() -> "ProviderSettings":
        return ProviderSettings(
            provider=os.getenv("PURIFIER_PROVIDER", DEFAULT_PROVIDER).strip().lower(),
            gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY"),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_base_url=os.getenv("OPENAI_BASE_URL"),
        )


ALLOWED_EXTENSIONS = ("txt", "md", "docx", "pdf")

DEFAULT_PROVIDER = "gemini"
GEMINI_MODEL = os.getenv("PURIFIER_GEMINI_MODEL", "gemini-2.5-flash")
OPENAI_MODEL = os.getenv("PURIFIER_OPENAI_MODEL", "gpt-4.1")

TEMPERATURE = 0.3
REQUEST_TIMEOUT = int(os.getenv("PURIFIER_REQUEST_TIMEOUT", "300"))

MAX_RETRIES = 2
RETRY_BASE_DELAY = 2.0

RATE_LIMIT_COOLDOWN = 20
RESET_CONFIRM_WINDOW = 3.0
SESSION_IDLE_TTL = int(os.getenv("PURIFIER_SESSION_IDLE_TTL", "7200"))  # seconds

DOWNLOAD_PREFIX = "purified_"
DEFAULT_DOWNLOAD_NAME = "transcript.txt"
MAX_CONTENT_LENGTH = 50 * 1024 * 1024  # 50MB

EXPORT_HEADERS = ["Original", "Corrected", "Reason"]
