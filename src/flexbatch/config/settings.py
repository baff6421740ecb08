import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load .env file from the project root
# This file: src/flexbatch/config/settings.py
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent.parent
ENV_PATH = PROJECT_ROOT / ".env"

if ENV_PATH.exists():
    load_dotenv(ENV_PATH)
else:
    # Fallback to simple load_dotenv which looks in cwd
    load_dotenv()

ENV_PREFIX = "FLEXBATCH_"


class Settings(BaseModel):
    """Environment-driven defaults for batch runs and retries."""

    LOG_LEVEL: str = Field(default="INFO", description="Log level")

    # Batch scheduling
    BATCH_SIZE: int = Field(default=10, ge=1, description="Items per batch")
    DELAY: float = Field(default=0.0, ge=0, description="Seconds between batch launches")
    CONCURRENCY: int = Field(default=1, ge=1, description="Max in-flight batches")
    STOP_ON_ERROR: bool = Field(default=False, description="Abort the run on the first item failure")

    # Retry helper
    RETRY_MAX_ATTEMPTS: int = Field(default=3, ge=1, description="Attempts including the first")
    RETRY_BASE_DELAY: float = Field(default=1.0, ge=0, description="First backoff delay in seconds")

    model_config = {
        "frozen": True,
    }


def load_settings() -> Settings:
    """Load settings from ``FLEXBATCH_*`` environment variables."""
    values = {}
    for name in Settings.model_fields:
        raw = os.getenv(ENV_PREFIX + name)
        if raw is not None:
            values[name] = raw
    return Settings(**values)


# Global settings instance
settings = load_settings()
