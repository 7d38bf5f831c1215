"""Configuration settings for the trainer."""
import base64
import binascii
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Define data directories from environment variables
DATA_DIR = Path(os.getenv("DATA_DIR", BASE_DIR / "data"))

# Learning settings
REPETITION_INTERVALS = [1, 3, 7, 16, 35, 90]  # days between reviews
LEARN_BATCH_SIZE = 7  # words offered per learning session

# Content settings
GEMINI_MODEL = "gemini-2.0-flash"
GEMINI_MODELS = [GEMINI_MODEL, "gemini-2.5-flash", "gemini-2.5-pro"]
SUPPORTED_LANGUAGES = ("en", "zh")


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)


def decode_api_key(raw_key: str) -> str:
    """Return the API key, decoding it first if it was stored base64-encoded.

    Raw Google keys start with ``AIza``; anything else is tried as base64 and
    used verbatim when it does not decode.
    """
    raw_key = raw_key.strip()
    if not raw_key or raw_key.startswith("AIza"):
        return raw_key
    try:
        return base64.b64decode(raw_key, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return raw_key


def _get_int_list(name: str, default: list[int]) -> list[int]:
    """Get a comma separated list of integers from environment variable."""
    value = os.getenv(name, "")
    if not value:
        return list(default)
    return [int(item) for item in value.split(",") if item.strip()]


def _get_str_list(name: str, default: list[str]) -> list[str]:
    """Get a comma separated list of strings from environment variable."""
    value = os.getenv(name, "")
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR / 'vocabtrainer.db'}")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class ContentSettings:
    """Content generation settings."""
    api_key: str = field(default_factory=lambda: decode_api_key(os.getenv("GEMINI_API_KEY", "")))
    model: str = os.getenv("GEMINI_MODEL", GEMINI_MODEL)
    available_models: list[str] = field(default_factory=lambda: _get_str_list("GEMINI_MODELS", GEMINI_MODELS))
    default_language: str = os.getenv("CONTENT_LANGUAGE", "en")
    request_timeout: float = float(os.getenv("CONTENT_REQUEST_TIMEOUT", "60"))
    details_temperature: float = 0.5
    batch_temperature: float = 0.4
    evaluation_temperature: float = 0.6

    @property
    def has_api_key(self) -> bool:
        """Whether dynamic fetch and evaluation can be attempted at all."""
        return bool(self.api_key)


@dataclass
class LearningSettings:
    """Learning process settings."""
    learn_batch_size: int = int(os.getenv("LEARN_BATCH_SIZE", str(LEARN_BATCH_SIZE)))
    repetition_intervals: list[int] = field(
        default_factory=lambda: _get_int_list("REPETITION_INTERVALS", REPETITION_INTERVALS)
    )
    word_list_file: Optional[str] = os.getenv("WORD_LIST_FILE", None)


@dataclass
class MonitoringSettings:
    """Prometheus exporter settings."""
    enabled: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("METRICS_PORT", "9090"))


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_content_settings() -> ContentSettings:
    """Get content settings."""
    return ContentSettings()


def get_learning_settings() -> LearningSettings:
    """Get learning settings."""
    return LearningSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    content: ContentSettings = field(default_factory=get_content_settings)
    learning: LearningSettings = field(default_factory=get_learning_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if not self.learning.repetition_intervals:
            raise ValueError("REPETITION_INTERVALS must not be empty")

        if any(days <= 0 for days in self.learning.repetition_intervals):
            raise ValueError("REPETITION_INTERVALS must contain positive day counts")

        if self.learning.learn_batch_size < 1:
            raise ValueError("LEARN_BATCH_SIZE must be positive")

        if self.content.default_language not in SUPPORTED_LANGUAGES:
            raise ValueError(f"CONTENT_LANGUAGE must be one of {', '.join(SUPPORTED_LANGUAGES)}")

        if self.content.model not in self.content.available_models:
            raise ValueError("GEMINI_MODEL must be listed in GEMINI_MODELS")

        if self.content.request_timeout <= 0:
            raise ValueError("CONTENT_REQUEST_TIMEOUT must be positive")


# Create global settings instance
settings = Settings()
settings.validate()
