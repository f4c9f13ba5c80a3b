from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Runtime config (follower client). Env prefix `MONDRIAN_CLIENT_`, `.env` honoured."""

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="MONDRIAN_CLIENT_", extra="ignore"
    )

    server_url: str = "ws://127.0.0.1:3001/ws"

    # Local canvas; never sent to the server
    width: int = Field(default=1920, gt=0)
    height: int = Field(default=1080, gt=0)

    sync_interval_ms: int = Field(default=30000, gt=0)
    reconnect_attempts: int = Field(default=10, ge=0)
    reconnect_delay_ms: int = Field(default=1000, ge=0)

    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_client_settings() -> ClientSettings:
    return ClientSettings()
