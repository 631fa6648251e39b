"""
Service Settings

Central configuration for the back-office service. Everything that varies
between environments (database, hosted storage, third-party API keys) is read
from environment variables, optionally loaded from a local .env file.

API keys are server-side secrets. Nothing in here is ever returned to a client.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load .env once on import
load_dotenv()

PROJECT_ROOT = Path(__file__).parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class Settings(BaseModel):
    """Runtime configuration."""

    database_url: Optional[str] = Field(None, description="SQLAlchemy URL of the hosted Postgres database")

    supabase_url: Optional[str] = Field(None, description="Base URL of the hosted backend project")
    supabase_anon_key: Optional[str] = Field(None, description="Public API key sent with auth requests")

    storage_bucket: str = Field("fly-images", description="Object storage bucket for fly images")
    storage_access_key_id: Optional[str] = Field(None, description="S3 access key for the storage endpoint")
    storage_secret_access_key: Optional[str] = Field(None, description="S3 secret key for the storage endpoint")
    storage_region: str = Field("us-east-1", description="Region reported to the S3 endpoint")

    openai_api_key: Optional[str] = Field(None, description="Text completion API key")
    completion_model: str = Field("gpt-3.5-turbo", description="Completion model name")
    completion_temperature: float = Field(0.7, ge=0, le=2)
    completion_max_tokens: int = Field(500, gt=0)

    google_api_key: Optional[str] = Field(None, description="Custom Search API key")
    google_search_engine_id: Optional[str] = Field(None, description="Custom Search engine id (cx)")

    batch_size: int = Field(3, gt=0, description="Flies processed concurrently per group")
    batch_delay_seconds: float = Field(1.0, ge=0, description="Pause between batch groups")

    log_level: str = Field("INFO")

    @property
    def storage_endpoint_url(self) -> Optional[str]:
        """S3-compatible endpoint exposed by the hosted storage service."""
        if not self.supabase_url:
            return None
        return f"{self.supabase_url.rstrip('/')}/storage/v1/s3"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        values = {
            'database_url': os.getenv('DATABASE_URL'),
            'supabase_url': os.getenv('SUPABASE_URL'),
            'supabase_anon_key': os.getenv('SUPABASE_ANON_KEY'),
            'storage_access_key_id': os.getenv('STORAGE_ACCESS_KEY_ID'),
            'storage_secret_access_key': os.getenv('STORAGE_SECRET_ACCESS_KEY'),
            'openai_api_key': os.getenv('OPENAI_API_KEY'),
            'google_api_key': os.getenv('GOOGLE_API_KEY'),
            'google_search_engine_id': os.getenv('GOOGLE_SEARCH_ENGINE_ID'),
        }

        # Only pass optional overrides that are actually set so defaults apply
        overrides = {
            'storage_bucket': os.getenv('STORAGE_BUCKET'),
            'storage_region': os.getenv('STORAGE_REGION'),
            'completion_model': os.getenv('COMPLETION_MODEL'),
            'completion_temperature': os.getenv('COMPLETION_TEMPERATURE'),
            'completion_max_tokens': os.getenv('COMPLETION_MAX_TOKENS'),
            'batch_size': os.getenv('BATCH_SIZE'),
            'batch_delay_seconds': os.getenv('BATCH_DELAY_SECONDS'),
            'log_level': os.getenv('LOG_LEVEL'),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, read once."""
    return Settings.from_env()


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for the service and scripts."""
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format=LOG_FORMAT
    )
