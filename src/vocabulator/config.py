"""Configuration settings for the application."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Repository root (src/vocabulator/config.py -> root)
BASE_DIR = Path(__file__).parent.parent.parent

# Tests run against .env.test
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Default home of the SQLite store
DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))
LOG_DIR = os.getenv("LOG_DIR") or None

# Seed settings
SEED_FORMATS = ("grouped", "tsv")
DEFAULT_SEED_CHUNK_SIZE = 20  # words per group for chunked formats


def ensure_directories() -> None:
    """Create the data directory and, when file logging is on, the log directory."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    if LOG_DIR:
        Path(LOG_DIR).mkdir(parents=True, exist_ok=True)


def _optional_float(name: str) -> Optional[float]:
    value = os.getenv(name, "").strip()
    return float(value) if value else None


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name, "").strip()
    return int(value) if value else None


@dataclass
class PathSettings:
    """Path configuration settings."""
    base_dir: Path = BASE_DIR
    data_dir: Path = DATA_DIR


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR / 'vocab.db'}")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = LOG_DIR
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class LearningSettings:
    """Learning process settings."""
    # None means "last grade was wrong" is the only weak-word rule
    weak_accuracy_threshold: Optional[float] = field(
        default_factory=lambda: _optional_float("WEAK_ACCURACY_THRESHOLD")
    )
    seed_format: str = os.getenv("SEED_FORMAT", "grouped")
    seed_chunk_size: int = int(os.getenv("SEED_CHUNK_SIZE", str(DEFAULT_SEED_CHUNK_SIZE)))


@dataclass
class InterfaceSettings:
    """Terminal front end settings."""
    sound_enabled: bool = os.getenv("SOUND_ENABLED", "false").lower() == "true"
    metrics_port: Optional[int] = field(default_factory=lambda: _optional_int("METRICS_PORT"))


def get_path_settings() -> PathSettings:
    """Get path settings."""
    return PathSettings()


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_learning_settings() -> LearningSettings:
    """Get learning settings."""
    return LearningSettings()


def get_interface_settings() -> InterfaceSettings:
    """Get interface settings."""
    return InterfaceSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    paths: PathSettings = field(default_factory=get_path_settings)
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    learning: LearningSettings = field(default_factory=get_learning_settings)
    interface: InterfaceSettings = field(default_factory=get_interface_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        threshold = self.learning.weak_accuracy_threshold
        if threshold is not None and not 0 < threshold <= 1:
            raise ValueError("WEAK_ACCURACY_THRESHOLD must be in (0, 1]")

        if self.learning.seed_format not in SEED_FORMATS:
            raise ValueError(f"SEED_FORMAT must be one of {', '.join(SEED_FORMATS)}")

        if self.learning.seed_chunk_size < 1:
            raise ValueError("SEED_CHUNK_SIZE must be positive")

        if self.interface.metrics_port is not None and not 0 < self.interface.metrics_port < 65536:
            raise ValueError("METRICS_PORT must be a valid TCP port")


# Create global settings instance
settings = Settings()
settings.validate()
