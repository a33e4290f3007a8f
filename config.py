"""Application configuration from environment variables and `.env`."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    tmdb_api_key: str = ""
    tmdb_language: str = "en-US"
    user_data_path: str = "data/user.json"
    log_level: str = "info"

    # CORS
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8501"]

    # Mood compass pipeline
    debounce_ms: int = 500
    fetch_timeout: float = 10.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
