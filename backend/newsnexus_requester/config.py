"""
Application configuration using Pydantic Settings.

Environment variable names follow the deployment's existing `.env` files,
so each field declares the variable it is read from.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env(name: str, env_var: str) -> AliasChoices:
    return AliasChoices(name, env_var)


class Settings(BaseSettings):
    """Settings for a single requester run."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(
        default="NewsNexusRequesterGoogleRss04",
        validation_alias=_env("app_name", "NAME_APP"),
    )
    environment: Literal["development", "testing", "production"] = Field(
        default="development",
        validation_alias=AliasChoices("environment", "NODE_ENV", "NEXT_PUBLIC_MODE"),
    )

    # Execution window (UTC)
    target_time: str = Field(
        default="23:00",
        validation_alias=_env("target_time", "GUARDRAIL_TARGET_TIME"),
        description="Daily target time of day, HH:MM (24-hour)",
    )
    window_minutes: int = Field(
        default=5,
        ge=0,
        validation_alias=_env("window_minutes", "GUARDRAIL_TARGET_WINDOW_IN_MINS"),
        description="Symmetric tolerance around the target time",
    )

    # Requester identity and input
    name_of_org: Optional[str] = Field(
        default=None,
        validation_alias=_env("name_of_org", "NAME_OF_ORG_REQUESTING_FROM"),
    )
    query_spreadsheet_path: Optional[str] = Field(
        default=None,
        validation_alias=_env(
            "query_spreadsheet_path", "PATH_AND_FILENAME_FOR_QUERY_SPREADSHEET_AUTOMATED"
        ),
    )

    # Google News RSS locale
    google_rss_hl: str = Field(default="en-US", validation_alias=_env("google_rss_hl", "GOOGLE_RSS_HL"))
    google_rss_gl: str = Field(default="US", validation_alias=_env("google_rss_gl", "GOOGLE_RSS_GL"))
    google_rss_ceid: str = Field(default="US:en", validation_alias=_env("google_rss_ceid", "GOOGLE_RSS_CEID"))

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./newsnexus10.db",
        validation_alias=_env("database_url", "DATABASE_URL"),
        description="Async database URL (SQLAlchemy format)",
    )

    # Semantic scorer (only required when it is launched)
    semantic_scorer_path: Optional[str] = Field(
        default=None,
        validation_alias=_env("semantic_scorer_path", "PATH_AND_FILENAME_TO_SEMANTIC_SCORER"),
    )
    semantic_scorer_child_name: Optional[str] = Field(
        default=None,
        validation_alias=_env("semantic_scorer_child_name", "NAME_CHILD_PROCESS_SEMANTIC_SCORER"),
    )
    semantic_scorer_dir: Optional[str] = Field(
        default=None,
        validation_alias=_env("semantic_scorer_dir", "PATH_TO_SEMANTIC_SCORER_DIR"),
    )
    semantic_scorer_keywords_file: Optional[str] = Field(
        default=None,
        validation_alias=_env(
            "semantic_scorer_keywords_file", "PATH_TO_SEMANTIC_SCORER_KEYWORDS_EXCEL_FILE"
        ),
    )
    semantic_scorer_command: str = Field(
        default="node",
        validation_alias=_env("semantic_scorer_command", "SEMANTIC_SCORER_COMMAND"),
    )

    # Logging
    log_dir: str = Field(default="./logs", validation_alias=_env("log_dir", "PATH_TO_LOGS"))
    log_max_size_mb: int = Field(default=5, ge=1, validation_alias=_env("log_max_size_mb", "LOG_MAX_SIZE"))
    log_max_files: int = Field(default=5, ge=1, validation_alias=_env("log_max_files", "LOG_MAX_FILES"))


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
