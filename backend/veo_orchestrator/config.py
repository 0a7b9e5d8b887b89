from __future__ import annotations
"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings

from veo_orchestrator.services.job_submitter import DEFAULT_PROMPT_PREFIX


class Settings(BaseSettings):
    """Veo orchestrator settings.

    Loaded from environment variables or .env file.
    """

    # --- Application ---
    APP_NAME: str = "VeoOrchestrator"
    DEBUG: bool = False
    USE_MOCK_API: bool = False
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    # --- Gemini Veo (Video Generation) ---
    GEMINI_API_KEY: str = ""
    GEMINI_ENDPOINT: str = "https://generativelanguage.googleapis.com/v1beta"
    VEO_MODEL: str = "veo-3.1-fast-generate-preview"
    HTTP_TIMEOUT_SECONDS: float = 60.0

    # --- Generation defaults ---
    VIDEO_COUNT: int = 1
    VIDEO_RESOLUTION: str = "720p"
    VIDEO_ASPECT_RATIO: str = "16:9"
    PROMPT_PREFIX: str = DEFAULT_PROMPT_PREFIX

    # --- Polling ---
    POLL_INTERVAL_SECONDS: float = 5.0

    # --- Job registry ---
    JOB_RETENTION_SECONDS: float = 600.0

    # --- Mock provider ---
    MOCK_POLLS_UNTIL_DONE: int = 2

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton."""
    return Settings()
