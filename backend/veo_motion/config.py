from __future__ import annotations
"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Veo Motion application settings.

    Loaded from environment variables or .env file. GEMINI_API_KEY is never
    read through the cached instance: the credential host builds a fresh
    Settings at every point of use so a rotated key is picked up.
    """

    # --- Application ---
    APP_NAME: str = "Veo Motion"
    DEBUG: bool = False
    HOST: str = "127.0.0.1"
    PORT: int = 8000

    # --- Credential ---
    GEMINI_API_KEY: str = ""

    # --- Veo (Video Generation) ---
    VEO_MODEL: str = "veo-3.1-fast-generate-preview"
    VEO_RESOLUTION: str = "720p"

    # --- Polling ---
    POLL_INTERVAL: float = 5.0
    POLL_TIMEOUT: float = 600.0  # 0 disables the deadline
    POLL_MAX_TRANSIENT_ERRORS: int = 3

    # --- Download ---
    DOWNLOAD_TIMEOUT: float = 120.0

    # --- Media Volume ---
    MEDIA_VOLUME: str = "media_volume"

    # --- CORS ---
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173"

    @property
    def poll_deadline(self) -> float | None:
        return self.POLL_TIMEOUT if self.POLL_TIMEOUT > 0 else None

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton."""
    return Settings()
