"""Application configuration"""
import os
from typing import List
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()


def get_project_root() -> Path:
    """Return the repository root (the parent of backend/)"""
    # backend/app/config.py -> backend/app -> backend -> project root
    config_path = Path(__file__).resolve()
    return config_path.parent.parent.parent


def get_default_log_dir() -> str:
    """Default directory for rotating log files"""
    return str(get_project_root() / 'logs')


class Config:
    """Application configuration"""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./resale_tracker.db")

    # Logging
    LOG_DIR: str = os.getenv("LOG_DIR", get_default_log_dir())
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FILE_MAX_BYTES: int = int(os.getenv("LOG_FILE_MAX_BYTES", str(10 * 1024 * 1024)))
    LOG_FILE_BACKUP_COUNT: int = int(os.getenv("LOG_FILE_BACKUP_COUNT", "5"))

    # API server
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8888"))
    CORS_ALLOW_ORIGINS: List[str] = os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")

    # First-run settings row. Once the row exists these are never re-applied;
    # items keep the rates they were created with.
    DEFAULT_CNY_TO_PHP_RATE: float = float(os.getenv("DEFAULT_CNY_TO_PHP_RATE", "7.8"))
    DEFAULT_FORWARDER_RATE: float = float(os.getenv("DEFAULT_FORWARDER_RATE", "480"))
    DEFAULT_FORWARDER_BUY_SERVICE_RATE: float = float(os.getenv("DEFAULT_FORWARDER_BUY_SERVICE_RATE", "8.6"))
    DEFAULT_MARKUP_MIN: float = float(os.getenv("DEFAULT_MARKUP_MIN", "700"))
    DEFAULT_MARKUP_MAX: float = float(os.getenv("DEFAULT_MARKUP_MAX", "850"))

    # Dashboard
    RECENT_ITEMS_LIMIT: int = int(os.getenv("RECENT_ITEMS_LIMIT", "8"))


config = Config()
