import os
from typing import List

from dotenv import load_dotenv

from .errors import ConfigurationError
from .models import OptimizationConfig
from .utils.transforms import parse_bool

load_dotenv()

DEFAULT_MAX_DOWNLOAD_BYTES = 50 * 1024 * 1024


def _csv(value: str) -> List[str]:
    return [x.strip() for x in (value or "").split(",") if x.strip()]


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError([f"{name} must be an integer, got {raw!r}"])


class Settings:
    """Environment-backed settings. Read at construction so tests can build their own."""

    def __init__(self):
        self.APP_NAME: str = os.getenv("APP_NAME", "Trackart Media API")

        self.MONGO_URL: str = os.getenv("MONGO_URL", "mongodb://localhost:27017")
        self.MONGO_DB: str = os.getenv("MONGO_DB", "trackart")

        self.API_ENABLED: bool = parse_bool(os.getenv("API_ENABLED"), default=True)
        self.API_KEYS: List[str] = _csv(os.getenv("API_KEYS", ""))
        self.CORS_ALLOWED_ORIGINS: str = os.getenv("CORS_ALLOWED_ORIGINS", "*").strip()

        # Image pipeline
        self.IMAGE_TARGET_WIDTH: int = _int("IMAGE_TARGET_WIDTH", 640)
        self.IMAGE_TARGET_HEIGHT: int = _int("IMAGE_TARGET_HEIGHT", 640)
        self.IMAGE_QUALITY: int = _int("IMAGE_QUALITY", 90)
        self.IMAGE_REJECT_SMALLER: bool = parse_bool(os.getenv("IMAGE_REJECT_SMALLER"))
        self.IMAGE_MAX_DOWNLOAD_BYTES: int = _int("IMAGE_MAX_DOWNLOAD_BYTES", DEFAULT_MAX_DOWNLOAD_BYTES)
        self.IMAGE_DOWNLOAD_TIMEOUT: int = _int("IMAGE_DOWNLOAD_TIMEOUT", 30)
        self.IMAGE_BLOCK_PRIVATE_NETWORKS: bool = parse_bool(
            os.getenv("IMAGE_BLOCK_PRIVATE_NETWORKS"), default=True
        )

        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info")
        self.LOG_FORMAT: str = os.getenv("LOG_FORMAT", "text")

    def validate(self) -> "Settings":
        problems: List[str] = []
        if not self.MONGO_URL:
            problems.append("MONGO_URL is required")
        if not self.MONGO_DB:
            problems.append("MONGO_DB is required")
        if self.IMAGE_TARGET_WIDTH <= 0:
            problems.append("IMAGE_TARGET_WIDTH must be greater than 0")
        if self.IMAGE_TARGET_HEIGHT <= 0:
            problems.append("IMAGE_TARGET_HEIGHT must be greater than 0")
        if not 1 <= self.IMAGE_QUALITY <= 100:
            problems.append("IMAGE_QUALITY must be between 1 and 100")
        if self.IMAGE_MAX_DOWNLOAD_BYTES <= 0:
            problems.append("IMAGE_MAX_DOWNLOAD_BYTES must be greater than 0")
        if self.IMAGE_DOWNLOAD_TIMEOUT <= 0:
            problems.append("IMAGE_DOWNLOAD_TIMEOUT must be greater than 0")
        if self.API_ENABLED and not self.API_KEYS:
            problems.append("API_KEYS is required when API_ENABLED is true")
        if problems:
            raise ConfigurationError(problems)
        return self

    def image_config(self) -> OptimizationConfig:
        return OptimizationConfig(
            target_width=self.IMAGE_TARGET_WIDTH,
            target_height=self.IMAGE_TARGET_HEIGHT,
            quality=self.IMAGE_QUALITY,
            reject_smaller=self.IMAGE_REJECT_SMALLER,
            max_download_bytes=self.IMAGE_MAX_DOWNLOAD_BYTES,
        )


settings = Settings()


def get_settings() -> Settings:
    return settings
