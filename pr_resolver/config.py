"""
Application configuration management.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Redis (change-set and run records, deployment queue)
    redis_url: str = "redis://localhost:6379/0"

    # Webhook
    webhook_secret: Optional[str] = None  # Signature check is skipped when unset

    # Git
    integration_branch: str = "master"
    workspace_root: str = "/tmp/pr-resolver"  # Used when a run config has no tmp dir
    git_timeout_seconds: int = 120
    cicd_git_user_name: Optional[str] = None
    cicd_git_user_email: Optional[str] = None

    # Notifications
    slack_webhook_url: Optional[str] = None
    notification_timeout_seconds: float = 10.0

    # Application
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
