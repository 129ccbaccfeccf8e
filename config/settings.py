"""
Configuration settings for the application
"""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Store keys (shared across every client runtime)
USERS_KEY = "postmaster_users"
POSTS_KEY = "postmaster_posts"
CURRENT_USER_KEY = "postmaster_current_user"


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Infrastructure configuration
    database_url: str = Field(default="sqlite+aiosqlite:///./postmaster.db", alias="DATABASE_URL")

    # Generative content provider
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_text_model: str = Field(default="gpt-4o-mini", alias="OPENAI_TEXT_MODEL")
    openai_image_model: str = Field(default="gpt-image-1", alias="OPENAI_IMAGE_MODEL")
    openai_video_model: str = Field(default="sora-2", alias="OPENAI_VIDEO_MODEL")
    video_poll_seconds: float = Field(default=5.0, alias="VIDEO_POLL_SECONDS")
    video_poll_attempts: int = Field(default=120, alias="VIDEO_POLL_ATTEMPTS")

    # Synchronization timers
    sync_interval_seconds: float = Field(default=2.0, alias="SYNC_INTERVAL_SECONDS")
    due_check_interval_seconds: float = Field(default=30.0, alias="DUE_CHECK_INTERVAL_SECONDS")
    due_window_seconds: float = Field(default=60.0, alias="DUE_WINDOW_SECONDS")
    context_idle_seconds: float = Field(default=1800.0, alias="CONTEXT_IDLE_SECONDS")

    # Frontend configuration
    frontend_url: str = Field(default="http://localhost:5173", alias="FRONTEND_URL")

    # Environment configuration
    env: Optional[str] = Field(default=None, alias="ENV")


# Instantiate settings object
settings = Settings()

IS_PRODUCTION = bool(settings.env and settings.env.lower() == "production")
