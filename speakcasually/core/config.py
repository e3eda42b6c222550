"""
Application configuration via pydantic-settings.

Loads values from .env file with sensible defaults for local development.
Use ``get_settings()`` to obtain the cached singleton instance.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Speak Casually settings loaded from environment / .env file.

    All settings can be overridden via environment variables or a `.env` file.
    Field names map directly to env var names (case-insensitive).

    Attributes:
        database_url: Async SQLAlchemy connection string for the task table.
        storage_dir: Root directory of the object store (one subfolder per bucket).
        public_base_url: Base URL used to build public object references.
        api_base_url: Backend URL the session layer talks to.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_host: str = "0.0.0.0"  # Bind address for the FastAPI server
    app_port: int = 8000
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:8501", "http://localhost:3000"]

    # --- Storage ---
    database_url: str = "sqlite+aiosqlite:///data/speakcasually.db"
    storage_dir: str = "data/storage"
    audio_bucket: str = "audio"
    public_base_url: str = "http://localhost:8000"

    # --- Session / UI ---
    api_base_url: str = "http://localhost:8000"
    request_timeout: float = 30.0
    transcription_api_url: str = ""  # Empty = transcription demo disabled

    # --- Audio capture ---
    sample_rate: int = 16000
    channels: int = 1


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings singleton.

    Uses ``functools.lru_cache`` so the .env file is read only once.
    """
    return Settings()
