from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime config (broadcast server).

    - Loaded from environment variables (`MONDRIAN_*`)
    - Also reads `.env` if present (via pydantic-settings + python-dotenv)
    """

    model_config = SettingsConfigDict(env_file=".env", env_prefix="MONDRIAN_", extra="ignore")

    host: str = "0.0.0.0"
    port: int = 3001

    # Broadcast cadence
    generation_interval_ms: int = Field(default=5000, gt=0)
    # First tick waits a bit so initial connections can settle.
    startup_delay_ms: int = Field(default=1000, ge=0)
    audio_duration_s: float = Field(default=5.0, gt=0)

    # Clock resync cadence handed to the browser viewer
    sync_interval_ms: int = Field(default=30000, gt=0)

    # 0 = unlimited
    max_clients: int = Field(default=0, ge=0)

    # Upper bound for /preview.png width and height
    preview_max_side: int = Field(default=4096, gt=0)

    # Debugging
    log_level: str = "INFO"
    debug_log_msgs: bool = False


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
