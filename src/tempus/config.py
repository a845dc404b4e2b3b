"""Configuration management."""
from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_CORPUS_DIR = Path(__file__).parent / "data"


class LoadPolicy(str, Enum):
    """What the loader does with invalid records."""
    FAIL_CLOSED = "fail_closed"  # reject the whole load
    FAIL_OPEN = "fail_open"      # keep valid records, report the rest


class Settings(BaseSettings):
    """Engine settings."""

    # Corpus
    corpus_dir: Path = Field(
        default=DEFAULT_CORPUS_DIR,
        description="Directory holding posts/, profiles/, eras/ and relationships/"
    )
    load_policy: LoadPolicy = Field(default=LoadPolicy.FAIL_CLOSED)
    enforce_author_integrity: bool = Field(
        default=False,
        description="Reject posts whose authorId has no profile"
    )

    # Query behaviour
    strict: bool = Field(
        default=False,
        description="Raise on malformed filters and stale cursors instead of ignoring them"
    )
    invert_incoming_types: bool = Field(
        default=False,
        description="Report incoming relationships with their inverse type (mentor -> student)"
    )
    feed_page_size: int = Field(default=20, ge=1)
    search_limit: int = Field(default=20, ge=1)

    # Notifications
    notification_history_limit: int = Field(default=50, ge=1)

    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_prefix="TEMPUS_", env_file=".env", extra="ignore")


def get_settings() -> Settings:
    """Get settings - environment variables take priority over .env."""
    return Settings()


settings = get_settings()
