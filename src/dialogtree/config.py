"""Configuration management for dialogtree."""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class FlowSettings(BaseSettings):
    """Texts and defaults shared by steps and runners."""

    model_config = SettingsConfigDict(
        env_prefix="DIALOGTREE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Texts sent by steps
    exit_text: str = Field(default="Menu has been closed.", description="Sent on voluntary exit")
    inactivity_text: str = Field(
        default="Menu has been closed due to inactivity.", description="Sent when collection times out"
    )
    rejected_text: str = Field(
        default="That is not a valid input. Try again.", description="Fallback feedback for a bare Rejection"
    )

    # Collection
    exit_keywords: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["exit"], description="Inputs that end the run, comma separated or a JSON list"
    )
    duration_seconds: float = Field(default=0.0, ge=0, description="Default collection timeout, 0 disables it")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")

    @field_validator("exit_keywords", mode="before")
    @classmethod
    def _split_keywords(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        if value.lstrip().startswith("["):
            return json.loads(value)
        return [keyword.strip() for keyword in value.split(",") if keyword.strip()]

    def is_exit_keyword(self, content: str) -> bool:
        normalized = content.strip().lower()
        return any(normalized == keyword.strip().lower() for keyword in self.exit_keywords)


@lru_cache(maxsize=1)
def get_settings() -> FlowSettings:
    """Get the process-wide settings, loaded from the environment and `.env`."""
    return FlowSettings()
