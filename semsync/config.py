"""Configuration module - loads and validates environment variables."""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file from project root
load_dotenv()

# Base paths
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"


class Config:
    """Application configuration loaded from environment variables."""

    # Gemini AI
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")

    # Ordered model candidates for timetable extraction (comma-separated)
    TIMETABLE_MODELS: list[str] = [
        name.strip()
        for name in os.getenv("TIMETABLE_MODELS", "gemini-2.0-flash-exp").split(",")
        if name.strip()
    ]

    # Candidates whose name contains this marker get one retry after a 429
    EXPERIMENTAL_MODEL_MARKER: str = os.getenv("EXPERIMENTAL_MODEL_MARKER", "exp")
    RATE_LIMIT_RETRY_DELAY: float = float(os.getenv("RATE_LIMIT_RETRY_DELAY", "30"))

    # Model behind the study-assistant chat
    CHAT_MODEL: str = os.getenv("CHAT_MODEL", "gemini-flash-latest")
    CHAT_MAX_MESSAGE_LENGTH: int = int(os.getenv("CHAT_MAX_MESSAGE_LENGTH", "4000"))

    # Hosting limits
    FUNCTION_TIMEOUT_SECONDS: float = float(os.getenv("FUNCTION_TIMEOUT_SECONDS", "60"))

    # Storage
    DATABASE_PATH: str = os.getenv("DATABASE_PATH", str(DATA_DIR / "semsync.db"))
    BLOB_STORAGE_DIR: str = os.getenv("BLOB_STORAGE_DIR", str(DATA_DIR / "blobs"))

    # Firebase service account JSON; empty means application default credentials
    FIREBASE_CREDENTIALS: str = os.getenv("FIREBASE_CREDENTIALS", "")

    # HTTP server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> list[str]:
        """Validate required configuration. Returns list of missing keys."""
        missing = []

        if not cls.GEMINI_API_KEY:
            missing.append("GEMINI_API_KEY")

        if not cls.TIMETABLE_MODELS:
            missing.append("TIMETABLE_MODELS")

        return missing

    @classmethod
    def is_valid(cls) -> bool:
        """Check if all required configuration is present."""
        return len(cls.validate()) == 0


# Convenience access
config = Config()
