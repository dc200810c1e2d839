"""
Configuration module for Pastebin Lite.
Loads environment variables and provides config objects.
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

STORAGE_BACKENDS = ("auto", "redis", "memory")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self):
        self.REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")
        self.STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "auto").lower()
        self.DEBUG: bool = _env_flag("DEBUG", "False")
        self.APP_DOMAIN: str = os.getenv("APP_DOMAIN", "")
        self.TEST_MODE: bool = _env_flag("TEST_MODE", "0")
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

        if self.STORAGE_BACKEND not in STORAGE_BACKENDS:
            raise ValueError(
                f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}, "
                f"got {self.STORAGE_BACKEND!r}"
            )


settings = Settings()
