"""Application settings and configuration."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

# Load .env file if present
load_dotenv()

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Quiz content
    quiz_dir: str | None = Field(
        default=None,
        description="Extra directory of JSON quiz definitions",
        validation_alias="QUIZ_DIR",
    )

    # Timing defaults, used when a module does not set its own limits
    default_timed_minutes: float = Field(
        default=20,
        gt=0,
        le=240,
        description="Countdown for timed mode when the module has none",
        validation_alias="DEFAULT_TIMED_MINUTES",
    )

    default_speed_minutes: float = Field(
        default=10,
        gt=0,
        le=240,
        description="Countdown for speed mode when the module has none",
        validation_alias="DEFAULT_SPEED_MINUTES",
    )

    # Output Settings
    default_output_path: str = Field(
        default="output",
        description="Directory for exported result reports",
        validation_alias="DEFAULT_OUTPUT",
    )

    log_level: str = Field(
        default="WARNING",
        description="Logging level for the CLI",
        validation_alias="LOG_LEVEL",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Accept level names in any case."""
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {v!r}")
        return level

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# Loaded once, then shared by the CLI commands
@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings object with loaded configuration
    """
    return Settings()
