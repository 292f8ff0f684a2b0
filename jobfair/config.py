"""
Configuration and settings for the applications backend.
"""

from __future__ import annotations

import base64
import binascii
import json
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from jobfair.errors import ConfigError


class Settings(BaseSettings):
    """Environment-backed settings, read once per process."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", frozen=True
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Which storage/recorder pair to deploy with. Never mixed at runtime.
    jobfair_backend: Literal["google", "firebase", "memory"] = Field(
        default="google"
    )

    # Google service account (Drive + Sheets)
    google_cloud_credentials_base64: Optional[str] = Field(default=None)
    google_sheets_id: Optional[str] = Field(default=None)
    google_sheets_range: str = Field(default="A:Z")
    google_drive_folder_id: Optional[str] = Field(default=None)
    # Account whose quota absorbs Drive usage (domain-wide delegation subject).
    google_quota_user: Optional[str] = Field(default=None)

    # Firebase (Storage + Firestore)
    firebase_project_id: Optional[str] = Field(default=None)
    firebase_storage_bucket: Optional[str] = Field(default=None)
    firebase_applications_collection: str = Field(default="applications")

    # Shared secret for the CSV export.
    export_key: Optional[str] = Field(default=None)

    @property
    def backend(self) -> str:
        return self.jobfair_backend

    def require(self, name: str) -> str:
        """Return a setting value or raise ConfigError naming its env var."""
        value = getattr(self, name)
        if not value:
            raise ConfigError(f"Missing {name.upper()}")
        return value

    def service_account_info(self) -> dict:
        """Decode the base64 service-account JSON blob."""
        blob = self.require("google_cloud_credentials_base64")
        try:
            info = json.loads(base64.b64decode(blob, validate=True).decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, ValueError) as e:
            raise ConfigError(
                f"GOOGLE_CLOUD_CREDENTIALS_BASE64 is not valid base64 JSON: {e}"
            ) from e
        if not isinstance(info, dict) or not info.get("client_email"):
            raise ConfigError(
                "GOOGLE_CLOUD_CREDENTIALS_BASE64 is not a service account key"
            )
        return info


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
