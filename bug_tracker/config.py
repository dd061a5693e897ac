"""
Configuration management for the bug tracker.
"""

from typing import Dict, List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = Field(default="Bug Tracker")
    debug: bool = Field(default=False)
    environment: str = Field(default="development")

    # API
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    api_workers: int = Field(default=1)
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    # Database
    database_url: str = Field(default="sqlite:///./bug_tracker.db")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    # Query engine
    default_page_size: int = Field(default=10, ge=1)
    max_page_size: int = Field(default=100, ge=1)

    # Workflow: JSON object mapping a status to the statuses it may move to,
    # e.g. {"open": ["in_progress"], "in_progress": ["resolved", "open"]}.
    # Unset means any status may move to any other.
    status_transitions: Optional[Dict[str, List[str]]] = Field(
        default=None,
        description="Allowed status transitions; unset = permissive.",
    )


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings
