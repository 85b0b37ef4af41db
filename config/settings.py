"""Application settings and configuration management."""
from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    CONFIG_PATH: str = Field(default="app_config.json")

    MAX_QUESTIONS: int = Field(default=8, ge=1)
    STAGE_TIMEOUT_S: float = Field(default=20.0, gt=0.0)
    STAGE_WORKERS: int = Field(default=8, ge=1)

    HIGH_TECHNICAL_SCORE: float = 7.0
    LOW_SCORE_THRESHOLD: float = 4.0
    SHORT_ANSWER_WORDS: int = 50
    CHATTY_ANSWER_WORDS: int = 250
    HISTORY_WINDOW: int = Field(default=4, ge=1)

    SESSION_STORE: Literal["memory", "file"] = "memory"
    CHECKPOINT_DIR: str = Field(default="data/sessions")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", validate_assignment=True)


settings = Settings()
