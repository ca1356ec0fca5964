"""
Configuration module for the event reminder bot.
Loads environment variables and provides typed configuration.
"""

from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file
env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Telegram Bot
    bot_token: str = ""
    channel_id: Optional[int] = None  # Chat that receives every reminder

    # Reminders
    timezone: str = "Asia/Tokyo"
    scheduler_pulse_seconds: int = 60
    command_reply_timeout: float = 2.5  # seconds before a command is acknowledged

    # Event store: memory, file, github or supabase
    store_backend: Literal["memory", "file", "github", "supabase"] = "file"
    events_file: str = "data/events.json"

    # GitHub backend
    github_token: Optional[str] = None
    github_owner: Optional[str] = None
    github_repo: Optional[str] = None
    github_path: str = "data/events.json"
    github_branch: Optional[str] = None

    # Supabase backend
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    supabase_table: str = "reminder_documents"
    supabase_document_key: str = "events"

    # Keep-alive server
    host: str = "0.0.0.0"
    port: int = 8000
    environment: str = "development"  # development, staging, production
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def backend_required_fields(self) -> list:
        """Settings the configured store backend cannot run without."""
        if self.store_backend == "github":
            return ["github_token", "github_owner", "github_repo"]
        if self.store_backend == "supabase":
            return ["supabase_url", "supabase_key"]
        return []

    def validate_all_required(self) -> None:
        """
        Validate that all required settings are present.

        Raises:
            ValueError: If required fields are missing or invalid
        """
        required_fields = ["bot_token", "channel_id"] + self.backend_required_fields()

        missing = []
        for field in required_fields:
            value = getattr(self, field, None)

            if value is None or value == "":
                missing.append(field)
                continue

            # Placeholder values copied from .env.example
            if str(value).lower().startswith("your_"):
                missing.append(field)

        if missing:
            raise ValueError(
                f"Missing or invalid required configuration: "
                f"{', '.join(missing)}. "
                f"Please check your .env file and ensure all required "
                f"values are set."
            )


# Global settings instance
settings = Settings()
