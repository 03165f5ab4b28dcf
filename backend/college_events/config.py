"""
Configuration and settings for the events API.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Session tokens
    jwt_secret: str = Field(default="secret")
    jwt_algorithm: str = Field(default="HS256")
    jwt_expires_hours: int = Field(default=24, ge=1)

    # CORS
    frontend_url: str = Field(default="http://localhost:3000")

    # Firebase (Firestore + Auth)
    firebase_project_id: Optional[str] = Field(default=None)
    firebase_client_email: Optional[str] = Field(default=None)
    firebase_private_key: Optional[str] = Field(default=None)
    firebase_storage_bucket: Optional[str] = Field(default=None)
    # Web API key, needed for the password sign-in REST call.
    firebase_api_key: Optional[str] = Field(default=None)

    # Mail transport
    smtp_host: Optional[str] = Field(default=None)
    smtp_port: int = Field(default=587)
    smtp_user: Optional[str] = Field(default=None)
    smtp_pass: Optional[str] = Field(default=None)
    mail_from: str = Field(default='"College Events" <noreply@collegeevents.com>')

    # Event timing
    event_timezone: str = Field(default="UTC")
    registration_cutoff_hours: int = Field(default=4, ge=0)
    reminder_lead_hours: int = Field(default=24, ge=1)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    log_level: str = Field(default="INFO")

    @property
    def firebase_configured(self) -> bool:
        return bool(
            self.firebase_project_id
            and self.firebase_client_email
            and self.firebase_private_key
        )

    @property
    def firebase_private_key_pem(self) -> Optional[str]:
        """Private key with escaped newlines restored (as stored in .env files)."""
        if not self.firebase_private_key:
            return None
        return self.firebase_private_key.replace("\\n", "\n")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
