"""Configuration Management."""

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Engine settings from environment."""

    model_config = SettingsConfigDict(
        env_prefix="CANVAS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    json_logs: bool = Field(default=False, description="Use JSON log format")

    # Storage
    storage_dir: str | None = Field(
        default=None, description="Directory for document files (None = in-memory)"
    )
    file_extension: str = Field(default=".canvas", description="Document file extension")

    # History
    undo_limit: int = Field(default=50, gt=0, description="Max undo steps kept")

    # Batch scripts
    batch_max_script_length: int = Field(
        default=200_000, gt=0, description="Max batch script length (characters)"
    )
    batch_max_statements: int = Field(default=500, gt=0, description="Max statements per batch")
    batch_max_depth: int = Field(default=20, gt=0, description="Max nesting of script data")

    # Attribution
    agent_name: str = Field(default="assistant", description="Default agent actor name")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
