"""Application settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ReplSettings(BaseSettings):
    """Interactive front end and logging settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="EVALEXPR_",
        case_sensitive=False,
        extra="ignore",
    )

    prompt: str = Field(default="> ")
    history_file: str | None = Field(default=None)
    log_filter: str = Field(default="warning")

    def resolve_history_file(self) -> Path | None:
        if not self.history_file:
            return None
        return Path(self.history_file).expanduser().resolve()


def load_settings() -> ReplSettings:
    """Load settings from the environment and `.env`."""
    return ReplSettings()
