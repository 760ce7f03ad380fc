"""Configuration management for DaySense using Pydantic Settings."""

from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class FirebaseSettings(BaseSettings):
    """Firebase Authentication and Firestore settings."""

    model_config = SettingsConfigDict(env_prefix="FIREBASE_", env_file=".env", extra="ignore")

    api_key: SecretStr = SecretStr("")
    project_id: str = ""
    auth_url: str = "https://identitytoolkit.googleapis.com/v1"
    firestore_url: str = "https://firestore.googleapis.com/v1"
    timeout_seconds: float = 15.0


class AISettings(BaseSettings):
    """Remote narration settings (Groq backend or pydantic-ai agent)."""

    model_config = SettingsConfigDict(env_prefix="AI_", env_file=".env", extra="ignore")

    provider: Literal["backend", "agent", "local"] = "backend"
    backend_url: str = "https://daysense-backend.vercel.app"
    model: str = "google-gla:gemini-1.5-flash"
    api_key: SecretStr = SecretStr("")
    timeout_seconds: float = 30.0


class TrackingSettings(BaseSettings):
    """Sampling intervals and end-of-day timing."""

    model_config = SettingsConfigDict(env_prefix="TRACKING_", env_file=".env", extra="ignore")

    signal_source: Literal["synthetic", "tracker"] = "synthetic"
    signal_interval_seconds: int = Field(default=1800, gt=0)
    inference_interval_seconds: int = Field(default=900, gt=0)
    task_refresh_seconds: int = Field(default=300, gt=0)
    reflection_hour: int = Field(default=21, ge=0, le=23)


class DatabaseSettings(BaseSettings):
    """Local database settings."""

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")

    database_url: str = Field(
        default="sqlite:///~/.local/share/daysense/daysense.db", alias="DATABASE_URL"
    )


class Settings(BaseSettings):
    """Main DaySense settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # General
    environment: Literal["development", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    timezone: str = "UTC"
    user_id: str = Field(default="local", alias="DAYSENSE_USER_ID")

    # Sub-settings
    firebase: FirebaseSettings = Field(default_factory=FirebaseSettings)
    ai: AISettings = Field(default_factory=AISettings)
    tracking: TrackingSettings = Field(default_factory=TrackingSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)


# Global settings instance
settings = Settings()
