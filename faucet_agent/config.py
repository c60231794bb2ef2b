"""Application configuration management."""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from faucet_agent.errors import ConfigError

PRIVATE_KEY_PATTERN = re.compile(r"^0x[a-fA-F0-9]{64}$")


class Settings(BaseSettings):
    """Runtime configuration loaded from environment or `.env`."""

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    wallet_private_key: str = Field(..., alias="WALLET_PRIVATE_KEY", repr=False)
    gemini_api_key: str = Field(..., alias="GEMINI_API_KEY", repr=False)
    gemini_model: str = Field(
        default="gemini-1.5-flash-latest",
        alias="GEMINI_MODEL",
    )
    prompt_file: Optional[Path] = Field(
        default=None,
        alias="FAUCET_PROMPT_FILE",
    )
    networks_json: Optional[Path] = Field(
        default=None,
        alias="NETWORKS_JSON",
    )

    poll_interval_seconds: float = Field(
        default=5.0,
        alias="POLL_INTERVAL_SECONDS",
        gt=0,
        le=60,
    )
    poll_timeout_seconds: float = Field(
        default=300.0,
        alias="POLL_TIMEOUT_SECONDS",
        gt=0,
        le=3600,
    )
    require_send_keyword: bool = Field(default=True, alias="REQUIRE_SEND_KEYWORD")

    log_level: str = Field(default="WARNING", alias="LOG_LEVEL")
    log_file: Optional[Path] = Field(default=None, alias="LOG_FILE")

    @field_validator("wallet_private_key")
    @classmethod
    def _check_private_key(cls, value: str) -> str:
        value = value.strip()
        if not PRIVATE_KEY_PATTERN.match(value):
            raise ValueError(
                "Invalid private key format. It must be a hex string "
                'starting with "0x" and 64 characters long.'
            )
        return value


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Return cached Settings instance, raising ConfigError on failure."""
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


__all__ = ["PRIVATE_KEY_PATTERN", "Settings", "load_settings"]
