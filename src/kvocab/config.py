"""Configuration settings for the quiz engine."""
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
DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))
MEDIA_DIR = DATA_DIR / "media"
PRONUNCIATIONS_DIR = MEDIA_DIR / "pronunciations"

# Quiz modes understood by the session state machine
QUIZ_MODES = (
    "english-to-korean",
    "korean-to-english",
    "audio-to-english",
    "bulk-korean-to-english",
)


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    directories = [
        DATA_DIR,
        MEDIA_DIR,
        PRONUNCIATIONS_DIR,
    ]

    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


@dataclass
class PathSettings:
    """Path configuration settings."""
    base_dir: Path = BASE_DIR
    data_dir: Path = DATA_DIR
    media_dir: Path = MEDIA_DIR
    pronunciations_dir: Path = PRONUNCIATIONS_DIR


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///kvocab.db")
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
class QuizSettings:
    """Default tuning for new quiz sessions."""
    active_window_size: int = int(os.getenv("ACTIVE_WINDOW_SIZE", "5"))
    consecutive_successes_required: int = int(os.getenv("CONSECUTIVE_SUCCESSES_REQUIRED", "5"))
    graduated_word_recurrence_rate: float = float(os.getenv("GRADUATED_WORD_RECURRENCE_RATE", "0.2"))
    temperature: float = float(os.getenv("SOFTMAX_TEMPERATURE", "0.75"))
    session_weight: float = float(os.getenv("SESSION_WEIGHT", "0.4"))
    success_weight: float = float(os.getenv("SUCCESS_WEIGHT", "0.6"))
    success_rate_ceiling: float = float(os.getenv("SUCCESS_RATE_CEILING", "0.95"))
    mode: str = os.getenv("DEFAULT_QUIZ_MODE", "english-to-korean")


@dataclass
class RetrySettings:
    """Retry settings for calls leaving the process."""
    max_attempts: int = int(os.getenv("RETRY_MAX_ATTEMPTS", "3"))
    backoff_seconds: float = float(os.getenv("RETRY_BACKOFF_SECONDS", "1.0"))


@dataclass
class AudioSettings:
    """Text-to-speech settings."""
    language: str = os.getenv("TTS_LANGUAGE", "ko")
    slow: bool = os.getenv("TTS_SLOW", "false").lower() == "true"


@dataclass
class MonitoringSettings:
    """Prometheus exporter settings."""
    port: int = int(os.getenv("METRICS_PORT", "9090"))
    enabled: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"


def get_path_settings() -> PathSettings:
    """Get path settings."""
    return PathSettings()


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_quiz_settings() -> QuizSettings:
    """Get quiz settings."""
    return QuizSettings()


def get_retry_settings() -> RetrySettings:
    """Get retry settings."""
    return RetrySettings()


def get_audio_settings() -> AudioSettings:
    """Get audio settings."""
    return AudioSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    paths: PathSettings = field(default_factory=get_path_settings)
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    quiz: QuizSettings = field(default_factory=get_quiz_settings)
    retry: RetrySettings = field(default_factory=get_retry_settings)
    audio: AudioSettings = field(default_factory=get_audio_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid.

        Quiz tuning values are not checked here: sessions clamp them into
        range when they are built.
        """
        if self.quiz.mode not in QUIZ_MODES:
            raise ValueError(f"DEFAULT_QUIZ_MODE must be one of {', '.join(QUIZ_MODES)}")

        if self.quiz.temperature <= 0:
            raise ValueError("SOFTMAX_TEMPERATURE must be positive")

        if self.retry.max_attempts < 1:
            raise ValueError("RETRY_MAX_ATTEMPTS must be positive")

        if self.retry.backoff_seconds < 0:
            raise ValueError("RETRY_BACKOFF_SECONDS cannot be negative")


# Create global settings instance
settings = Settings()
settings.validate()
